from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0")

# Storage bounds: weights are NUMERIC(8,4), prices NUMERIC(10,2)
MAX_WEIGHT_LBS = Decimal("9999.9999")
MIN_WEIGHT_LBS = -MAX_WEIGHT_LBS
MAX_PRICE = Decimal("99999999.99")
MIN_PRICE = -MAX_PRICE


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val).strip())


def round2(amount: Decimal) -> Decimal:
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def round4(amount: Decimal) -> Decimal:
    return d(amount).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def normalize_country(code) -> str:
    """Non-string codes count as blank."""
    if not isinstance(code, str):
        return ""
    return code.strip().upper()


def normalize_region(code):
    """Blank regions mean "whole country" and are stored as NULL."""
    if not isinstance(code, str):
        return None
    code = code.strip()
    return code or None

"""
Per-row validation for rate table imports.

Numeric values are checked against their storage bounds first. Values above
the upper bound can be clamped ("auto-corrected"); values below the lower
bound cannot. Rows that pass are then checked structurally and against the
tiers already present for their location: stored ones and the ones accepted
earlier in the same batch.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from django.core.exceptions import ValidationError

from ..dataclasses import LocationKey, RowError
from ..models import Rate, ShippingOption
from .intervals import WeightRange, check_tier
from .utils import (
    MAX_PRICE,
    MAX_WEIGHT_LBS,
    MIN_PRICE,
    MIN_WEIGHT_LBS,
    ZERO,
    d,
    normalize_country,
    normalize_region,
    round2,
    round4,
)

NUMERIC_BOUNDS = {
    "min_range_lbs": (MIN_WEIGHT_LBS, MAX_WEIGHT_LBS),
    "max_range_lbs": (MIN_WEIGHT_LBS, MAX_WEIGHT_LBS),
    "flat_rate": (MIN_PRICE, MAX_PRICE),
    "min_charge": (MIN_PRICE, MAX_PRICE),
}


@dataclass
class CsvRow:
    row_number: int  # 1-based line in the file, header is line 1
    data: Dict[str, Optional[str]]

    def value(self, name: str) -> str:
        return (self.data.get(name) or "").strip()

    @property
    def method_name(self) -> str:
        return self.value("shipping_method")

    @property
    def country(self) -> str:
        return normalize_country(self.data.get("country"))

    @property
    def region(self) -> Optional[str]:
        return normalize_region(self.data.get("region"))

    def is_blank(self) -> bool:
        return all(not (v or "").strip() for v in self.data.values())

    def sort_key(self) -> Tuple:
        # Blank region sorts first; unreadable weights sort as 0
        return (self.method_name, self.country, self.region or "", safe_decimal(self.data.get("min_range_lbs")))


@dataclass
class NumericCheck:
    errors: List[str] = field(default_factory=list)
    corrections: Dict[str, str] = field(default_factory=dict)
    uncorrectable: bool = False

    @property
    def auto_correctable(self) -> bool:
        return bool(self.corrections) and not self.uncorrectable


def safe_decimal(value, default: Decimal = ZERO) -> Decimal:
    try:
        value = d(value)
    except (InvalidOperation, TypeError, ValueError):
        return default
    return value if value.is_finite() else default


def check_numeric_bounds(row: CsvRow) -> NumericCheck:
    result = NumericCheck()
    for name, (lower, upper) in NUMERIC_BOUNDS.items():
        raw = row.value(name)
        try:
            value = d(raw)
            if not value.is_finite():
                raise InvalidOperation(raw)
        except (InvalidOperation, TypeError, ValueError):
            result.errors.append(f"Invalid numeric value for {name}: {raw!r}")
            result.uncorrectable = True
            continue
        if value > upper:
            result.corrections[name] = str(upper)
            result.errors.append(
                f"{name} ({value}) exceeds maximum allowed value of {upper} (can be auto-corrected to {upper})"
            )
        elif value < lower:
            result.errors.append(f"{name} ({value}) is below minimum allowed value of {lower}")
            result.uncorrectable = True
    return result


def apply_corrections(row: CsvRow, corrections: Dict[str, str]) -> CsvRow:
    data = dict(row.data)
    data.update(corrections)
    return CsvRow(row_number=row.row_number, data=data)


def _messages(error: ValidationError) -> List[str]:
    if hasattr(error, "error_dict"):
        return [f"{name} {msg}" for name, msgs in error.message_dict.items() for msg in msgs]
    return list(error.messages)


class BatchValidator:
    """
    Validates the sorted rows of one import. Keeps the tiers accepted so far so
    that each row is also checked against its siblings in the same file.
    """

    def __init__(self, options_by_name: Dict[str, ShippingOption]):
        self.options_by_name = options_by_name
        self.accepted: List[Rate] = []
        self._batch_ranges: Dict[LocationKey, List[WeightRange]] = {}
        self._stored_ranges: Dict[LocationKey, List[WeightRange]] = {}

    def stored_ranges(self, key: LocationKey) -> List[WeightRange]:
        if key not in self._stored_ranges:
            self._stored_ranges[key] = [r.as_range() for r in Rate.objects.for_location(*key)]
        return self._stored_ranges[key]

    def validate(self, row: CsvRow) -> Optional[RowError]:
        option = self.options_by_name.get(row.method_name) if row.method_name else None
        if option is None:
            return RowError(row=row.row_number, errors=[f"Shipping method '{row.method_name}' not found"], data=row.data)

        numeric = check_numeric_bounds(row)
        if numeric.errors:
            return RowError(
                row=row.row_number,
                errors=numeric.errors,
                data=row.data,
                auto_correctable=numeric.auto_correctable,
                corrections=numeric.corrections,
            )

        rate = Rate(
            shipping_option=option,
            country=row.country,
            region=row.region,
            min_range_lbs=round4(row.value("min_range_lbs")),
            max_range_lbs=round4(row.value("max_range_lbs")),
            flat_rate=round2(row.value("flat_rate")),
            min_charge=round2(row.value("min_charge")),
        )
        try:
            rate.clean_values()
        except ValidationError as e:
            return RowError(row=row.row_number, errors=_messages(e), data=row.data)

        key: LocationKey = (option.id, rate.country, rate.region)
        batch = self._batch_ranges.setdefault(key, [])
        tier_errors = check_tier(rate.as_range(), self.stored_ranges(key) + batch)
        if tier_errors:
            return RowError(row=row.row_number, errors=tier_errors, data=row.data)

        batch.append(rate.as_range())
        self.accepted.append(rate)
        return None

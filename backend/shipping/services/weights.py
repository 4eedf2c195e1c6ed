"""Cart weight normalization: every line item is converted to pounds."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from ..dataclasses import CartItem
from .utils import ZERO, d, round2

logger = logging.getLogger(__name__)

KG_TO_LB = Decimal("2.20462")
G_TO_LB = Decimal("0.00220462")
OZ_TO_LB = Decimal("0.0625")

UNIT_MULTIPLIERS = {
    "kg": KG_TO_LB, "kgs": KG_TO_LB, "kilogram": KG_TO_LB, "kilograms": KG_TO_LB,
    "g": G_TO_LB, "gram": G_TO_LB, "grams": G_TO_LB,
    "oz": OZ_TO_LB, "ounce": OZ_TO_LB, "ounces": OZ_TO_LB,
}


def convert_to_pounds(weight: Decimal, unit: Optional[str]) -> Decimal:
    """Unknown or missing units are taken to be pounds already."""
    key = unit.strip().lower() if isinstance(unit, str) else ""
    multiplier = UNIT_MULTIPLIERS.get(key)
    if multiplier is None:
        return d(weight)
    return d(weight) * multiplier


def total_weight_lbs(items: Iterable[CartItem]) -> Decimal:
    """
    Sum quantity x unit weight across the cart, in pounds, rounded to 2 places.

    Items without variant data, weight or quantity contribute nothing; they are
    logged and skipped so a single bad line never blocks checkout.
    """
    items = list(items or [])
    if not items:
        return round2(ZERO)

    logger.info("[ShippingCalc] Calculating total weight for %s items", len(items))
    total = ZERO
    for item in items:
        if not item.has_variant:
            logger.warning("[ShippingCalc] Item %s: Skipped - no variant data", item.id)
            continue
        if item.weight is None:
            logger.warning(
                "[ShippingCalc] Item %s (variant %s), qty %s: Skipped - weight is nil",
                item.id, item.variant_id, item.quantity,
            )
            continue
        if item.quantity in (None, ""):
            logger.warning("[ShippingCalc] Item %s (variant %s): Skipped - no quantity", item.id, item.variant_id)
            continue
        try:
            quantity = int(item.quantity)
            weight = d(item.weight)
            if not weight.is_finite():
                raise InvalidOperation(item.weight)
            item_total = convert_to_pounds(weight, item.unit_of_weight) * quantity
            item_lbs = round2(item_total)
        except (InvalidOperation, TypeError, ValueError):
            logger.warning(
                "[ShippingCalc] Item %s (variant %s): Skipped - unreadable weight %r / quantity %r",
                item.id, item.variant_id, item.weight, item.quantity,
            )
            continue

        logger.info(
            "[ShippingCalc] Item %s (variant %s): %s %s x %s = %s lbs",
            item.id, item.variant_id, item.weight, item.unit_of_weight or "lb", quantity, item_lbs,
        )
        total += item_total

    total = round2(total)
    logger.info("[ShippingCalc] Total weight calculated: %s lbs", total)
    return total

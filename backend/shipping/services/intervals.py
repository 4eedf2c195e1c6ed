"""
Weight interval arithmetic shared by the row validator (batch checks) and the
Rate model (checks against stored rows).

Ranges are compared as half-open intervals ``[min, max)``: two tiers that only
touch at a boundary (0-5 and 5-10) do not overlap.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from .utils import ZERO


@dataclass(frozen=True)
class WeightRange:
    min_lbs: Decimal
    max_lbs: Decimal

    def __str__(self) -> str:
        return f"{self.min_lbs}-{self.max_lbs} lbs"

    def contains(self, weight: Decimal) -> bool:
        """Closed-interval membership used when matching a cart weight."""
        return self.min_lbs <= weight <= self.max_lbs


def overlaps(a: WeightRange, b: WeightRange) -> bool:
    return a.min_lbs < b.max_lbs and b.min_lbs < a.max_lbs


def first_overlap(candidate: WeightRange, existing: Iterable[WeightRange]) -> Optional[WeightRange]:
    for other in existing:
        if overlaps(candidate, other):
            return other
    return None


def covers_zero(ranges: Iterable[WeightRange]) -> bool:
    """True when some range in the set is the zero-based first tier."""
    return any(r.min_lbs == ZERO for r in ranges)


def check_tier(candidate: WeightRange, existing: Iterable[WeightRange]) -> list:
    """
    Validate a new tier against the tiers already present for its location.

    An empty location only accepts a tier starting at 0; otherwise the tier must
    not overlap any present tier. Returns a list of error messages.
    """
    existing = list(existing)
    errors = []
    if not existing and candidate.min_lbs != ZERO:
        errors.append("min_range_lbs must be 0 for the first rate of this shipping option and location")
    other = first_overlap(candidate, existing)
    if other is not None:
        errors.append(f"Weight range overlaps with existing rate ({other})")
    return errors

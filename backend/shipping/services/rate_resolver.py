from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..dataclasses import CandidateOption, RateTier


def matches_location_exact(rate: RateTier, country: str, region: Optional[str]) -> bool:
    return bool(rate.country == country and rate.region and rate.region == region)


def matches_country_only(rate: RateTier, country: str) -> bool:
    return rate.country == country and not rate.region


def matches_weight(rate: RateTier, weight: Decimal) -> bool:
    return rate.weight_range.contains(weight)


def find_best_rate(option: CandidateOption, country: str, region: Optional[str], weight: Decimal) -> Optional[RateTier]:
    """
    Region-specific tier first, then the country-level tier. Rates are
    pre-sorted by min weight, so on a shared boundary the lower tier wins.
    """
    for rate in option.rates:
        if matches_location_exact(rate, country, region) and matches_weight(rate, weight):
            return rate
    for rate in option.rates:
        if matches_country_only(rate, country) and matches_weight(rate, weight):
            return rate
    return None


def shipping_total(option: CandidateOption, rate: Optional[RateTier]) -> Decimal:
    if rate is None:
        return option.starting_rate
    return rate.price

"""
Checkout shipping quotes.

Given a company, a destination and the cart, returns the shipping choices the
cart should offer. The quote never raises to its caller: bad input yields an
"Invalid parameters" result and a destination without options yields the
platform default choice.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from ..dataclasses import CandidateOption, QuoteRequest, QuoteResult, ShippingChoice
from .eligibility import filter_by_subscription, user_has_active_subscription
from .options_cache import OptionsCache, options_cache
from .rate_resolver import find_best_rate, shipping_total
from .utils import ZERO, normalize_country, normalize_region, round2
from .weights import total_weight_lbs

logger = logging.getLogger(__name__)

DEFAULT_SHIPPING_TITLE = "Coordinate with the shop"
SAME_DAY_TEXT = "Available same day"


def format_delivery_time(days: int) -> str:
    if days == 0:
        return SAME_DAY_TEXT
    if days == 1:
        return "1 day"
    return f"{days} days"


def default_shipping_choice() -> ShippingChoice:
    return ShippingChoice(
        shipping_total=ZERO,
        shipping_title=DEFAULT_SHIPPING_TITLE,
        shipping_delivery_time_estimate=0,
    )


def _validation_errors(request: QuoteRequest) -> List[str]:
    errors = []
    if request.company is None:
        errors.append("company can't be blank")
    if not normalize_country(request.ship_to_country):
        errors.append("ship_to_country can't be blank")
    if not normalize_region(request.ship_to_state):
        errors.append("ship_to_state can't be blank")
    if request.items is None:
        errors.append("items can't be nil")
    return errors


def _price_choice(
    option: CandidateOption,
    country: str,
    region: Optional[str],
    weight: Decimal,
    has_subscription: bool,
) -> ShippingChoice:
    rate = find_best_rate(option, country, region, weight)
    total = shipping_total(option, rate)
    if option.free_for_subscribers and has_subscription:
        total = ZERO
    return ShippingChoice(
        shipping_total=round2(total),
        shipping_title=option.name,
        shipping_delivery_time_estimate=format_delivery_time(option.delivery_time),
    )


def compute_quote(request: QuoteRequest, cache: Optional[OptionsCache] = None) -> QuoteResult:
    errors = _validation_errors(request)
    if errors:
        logger.info("[ShippingCalc] Invalid parameters: %s", ", ".join(errors))
        return QuoteResult(success=False, error="Invalid parameters")

    cache = cache or options_cache
    company = request.company
    country = normalize_country(request.ship_to_country)
    region = normalize_region(request.ship_to_state)

    try:
        weight = total_weight_lbs(request.items)
        candidates = cache.get(company.id, country)
        has_subscription = user_has_active_subscription(company, request.subscription)
        eligible = filter_by_subscription(company, candidates, has_subscription)

        if not eligible:
            return QuoteResult(success=True, shipping_options=[default_shipping_choice()])

        seen = set()
        choices = []
        for option in eligible:
            if option.id in seen:
                continue
            seen.add(option.id)
            choices.append(_price_choice(option, country, region, weight, has_subscription))
        return QuoteResult(success=True, shipping_options=choices)
    except Exception:
        logger.exception("[ShippingCalc] Quote failed for company %s to %s/%s", getattr(company, "id", None), country, region)
        return QuoteResult(success=True, shipping_options=[default_shipping_choice()])

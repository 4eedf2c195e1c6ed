"""
Per-(company, country) cache of the candidate shipping options for a quote.

The key deliberately ignores region/state: one entry serves every region of a
country and region filtering happens on the cached rates.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from django.conf import settings
from django.core.cache import caches

from ..dataclasses import CandidateOption, RateTier
from .utils import normalize_country

logger = logging.getLogger(__name__)


def load_candidate_options(company_id: int, country: str) -> List[CandidateOption]:
    """Active options serving `country`, in the company's manual order, with rates loaded."""
    from ..models import ShippingOption  # local import to avoid circulars

    options = (
        ShippingOption.objects
        .filter(company_id=company_id)
        .active()
        .for_country(country)
        .prefetch_related("rates")
        .ordered_for_country(country)
    )
    return [
        CandidateOption(
            id=option.id,
            name=option.name,
            delivery_time=option.delivery_time,
            starting_rate=Decimal(option.starting_rate),
            free_for_subscribers=option.free_for_subscribers,
            rates=[
                RateTier(
                    id=rate.id,
                    country=rate.country,
                    region=rate.region,
                    min_range_lbs=Decimal(rate.min_range_lbs),
                    max_range_lbs=Decimal(rate.max_range_lbs),
                    flat_rate=Decimal(rate.flat_rate),
                    min_charge=Decimal(rate.min_charge),
                )
                for rate in option.rates.all()
            ],
        )
        for option in options
    ]


class OptionsCache:
    def __init__(
        self,
        loader: Callable[[int, str], List[CandidateOption]] = load_candidate_options,
        alias: str = "default",
        ttl: Optional[int] = None,
    ):
        self.loader = loader
        self.alias = alias
        self._ttl = ttl

    @property
    def ttl(self) -> int:
        return self._ttl if self._ttl is not None else settings.SHIPPING_OPTIONS_CACHE_TTL

    @property
    def backend(self):
        return caches[self.alias]

    @staticmethod
    def key(company_id: int, country: str) -> str:
        return f"shipping_opts:{company_id}:{normalize_country(country)}"

    def get(self, company_id: int, country: str) -> List[CandidateOption]:
        key = self.key(company_id, country)
        options = self.backend.get(key)
        if options is None:
            logger.info("[ShippingCalc] Cache miss for %s, querying database", key)
            options = self.loader(company_id, normalize_country(country))
            self.backend.set(key, options, self.ttl)
        return options

    def invalidate(self, company_id: int, country: str) -> None:
        self.backend.delete(self.key(company_id, country))

    def invalidate_many(self, company_id: int, countries: Iterable[str]) -> None:
        keys = [self.key(company_id, c) for c in set(countries) if c]
        if keys:
            self.backend.delete_many(keys)


options_cache = OptionsCache()

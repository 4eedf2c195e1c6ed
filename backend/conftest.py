from __future__ import annotations

from decimal import Decimal

import pytest
from django.core.cache import cache

from companies.models import Company
from shipping.models import Rate, ShippingOption


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def company(db):
    return Company.objects.create(name="Acme Goods", platform_company_id=1001)


@pytest.fixture
def perks_company(db):
    return Company.objects.create(
        name="Subscriber Shop",
        platform_company_id=2002,
        subscription_program=True,
        free_shipping_for_subscribers=True,
        settings={"subscription_api_url": "https://subs.example.com", "subscription_api_token": "dG9rZW4="},
    )


@pytest.fixture
def make_option(db):
    def _make(company, name="Standard", countries=("US",), delivery_time=3, starting_rate="5.00", **extra):
        return ShippingOption.objects.create(
            company=company,
            name=name,
            countries=list(countries),
            delivery_time=delivery_time,
            starting_rate=Decimal(starting_rate),
            **extra,
        )
    return _make


@pytest.fixture
def make_rate(db):
    def _make(option, country="US", region=None, min_lbs="0", max_lbs="5", flat_rate="10.00", min_charge="0.00"):
        return Rate.objects.create(
            shipping_option=option,
            country=country,
            region=region,
            min_range_lbs=Decimal(min_lbs),
            max_range_lbs=Decimal(max_lbs),
            flat_rate=Decimal(flat_rate),
            min_charge=Decimal(min_charge),
        )
    return _make

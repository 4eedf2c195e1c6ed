from __future__ import annotations

from decimal import Decimal

import pytest

from shipping.dataclasses import CandidateOption, CartItem, RateTier
from shipping.services.intervals import WeightRange, check_tier, overlaps
from shipping.services.rate_resolver import find_best_rate, shipping_total
from shipping.services.weights import convert_to_pounds, total_weight_lbs


def _range(lo, hi):
    return WeightRange(Decimal(lo), Decimal(hi))


def test_touching_ranges_do_not_overlap():
    assert not overlaps(_range("0", "5"), _range("5", "10"))
    assert overlaps(_range("0", "5"), _range("4.9999", "10"))
    assert overlaps(_range("2", "3"), _range("0", "10"))


def test_first_tier_must_start_at_zero():
    errors = check_tier(_range("1", "5"), [])
    assert errors == ["min_range_lbs must be 0 for the first rate of this shipping option and location"]
    assert check_tier(_range("0", "5"), []) == []


def test_overlap_error_names_existing_range():
    errors = check_tier(_range("3", "8"), [_range("0", "5")])
    assert errors == ["Weight range overlaps with existing rate (0-5 lbs)"]
    # not the first tier, so a non-zero start is fine
    assert check_tier(_range("5", "8"), [_range("0", "5")]) == []


@pytest.mark.parametrize(
    "item",
    [
        CartItem(id=1, variant_id=10, quantity=1, weight=Decimal("1000"), unit_of_weight="g"),
        CartItem(id=1, variant_id=10, quantity=1, weight=Decimal("1"), unit_of_weight="kg"),
        CartItem(id=1, variant_id=10, quantity=1, weight=Decimal("35.274"), unit_of_weight="oz"),
    ],
)
def test_equivalent_weights_in_different_units(item):
    assert total_weight_lbs([item]) == Decimal("2.20")


def test_unknown_unit_is_pounds():
    assert convert_to_pounds(Decimal("3"), "stone") == Decimal("3")
    assert convert_to_pounds(Decimal("3"), None) == Decimal("3")
    assert convert_to_pounds(Decimal("2"), " KGS ") == Decimal("4.40924")


def test_items_without_usable_data_are_skipped():
    items = [
        CartItem.from_payload({"id": 1, "quantity": 2, "variant": {"id": 7, "weight": "1.5", "unit_of_weight": "lb"}}),
        CartItem.from_payload({"id": 2, "quantity": 1}),
        CartItem.from_payload({"id": 3, "quantity": 4, "variant": {"id": 8, "weight": None}}),
        CartItem.from_payload({"id": 4, "quantity": None, "variant": {"id": 9, "weight": "5"}}),
    ]
    assert total_weight_lbs(items) == Decimal("3.00")
    assert total_weight_lbs([]) == Decimal("0.00")


def _tier(id, region, lo, hi, flat, minimum="0"):
    return RateTier(
        id=id, country="US", region=region,
        min_range_lbs=Decimal(lo), max_range_lbs=Decimal(hi),
        flat_rate=Decimal(flat), min_charge=Decimal(minimum),
    )


def _option(*rates, starting_rate="4.00"):
    return CandidateOption(
        id=1, name="Standard", delivery_time=3, starting_rate=Decimal(starting_rate),
        free_for_subscribers=False, rates=list(rates),
    )


def test_region_rate_beats_country_rate():
    option = _option(_tier(1, None, "0", "10", "20"), _tier(2, "CA", "0", "10", "15"))
    assert find_best_rate(option, "US", "CA", Decimal("3")).id == 2
    assert find_best_rate(option, "US", "NY", Decimal("3")).id == 1


def test_shared_boundary_picks_lower_tier():
    option = _option(_tier(1, None, "0", "5", "10"), _tier(2, None, "5", "10", "20"))
    assert find_best_rate(option, "US", "TX", Decimal("5")).id == 1


def test_total_uses_min_charge_or_starting_rate():
    option = _option(_tier(1, None, "0", "5", "3.00", "7.50"))
    assert shipping_total(option, find_best_rate(option, "US", "TX", Decimal("2"))) == Decimal("7.50")
    assert find_best_rate(option, "US", "TX", Decimal("50")) is None
    assert shipping_total(option, None) == Decimal("4.00")


@pytest.mark.parametrize("weight", ["NaN", "Infinity", "-Infinity", "1E+40"])
def test_non_finite_or_huge_weights_are_skipped(weight):
    items = [
        CartItem(id=1, variant_id=10, quantity=1, weight=Decimal("2"), unit_of_weight="lb"),
        CartItem(id=2, variant_id=11, quantity=1, weight=weight, unit_of_weight="lb"),
    ]
    assert total_weight_lbs(items) == Decimal("2.00")


def test_variant_that_is_not_an_object_counts_as_missing():
    item = CartItem.from_payload({"id": 1, "quantity": 1, "variant": "v-1"})
    assert not item.has_variant
    assert total_weight_lbs([item]) == Decimal("0.00")
    assert convert_to_pounds(Decimal("1"), 7) == Decimal("1")

from __future__ import annotations

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient

from shipping.models import Rate, ShippingOption

pytestmark = pytest.mark.django_db

HEADER = "shipping_method,country,region,min_range_lbs,max_range_lbs,flat_rate,min_charge"


@pytest.fixture
def staff_client(db):
    user = get_user_model().objects.create_user(username="ops", password="secret")
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def _cart_payload(company, ship_to=None, items=None):
    return {
        "cart": {
            "id": "cart-1",
            "company": {"id": company.platform_company_id, "name": company.name},
            "ship_to": ship_to if ship_to is not None else {"country_code": "US", "state": "CA"},
            "items": items if items is not None else [
                {"id": 1, "quantity": 2, "variant": {"id": 5, "weight": 1, "unit_of_weight": "kg"}},
            ],
        }
    }


def test_quote_callback_returns_choices(company, make_option, make_rate):
    option = make_option(company, name="Ground", delivery_time=2)
    make_rate(option, min_lbs="0", max_lbs="10", flat_rate="11.25")

    resp = APIClient().post("/callbacks/shipping_options", _cart_payload(company), format="json")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    [choice] = body["shipping_options"]
    assert choice["shipping_title"] == "Ground"
    assert Decimal(str(choice["shipping_total"])) == Decimal("11.25")
    assert choice["shipping_delivery_time_estimate"] == "2 days"


@pytest.mark.parametrize(
    "payload,error",
    [
        ({}, "Cart data is required"),
        ({"cart": {"id": 1}}, "Company data is required"),
    ],
)
def test_quote_callback_requires_cart_and_company(db, payload, error):
    resp = APIClient().post("/callbacks/shipping_options", payload, format="json")
    assert resp.status_code == 400
    assert resp.json()["error"] == error


def test_quote_callback_requires_state(company):
    resp = APIClient().post(
        "/callbacks/shipping_options", _cart_payload(company, ship_to={"country_code": "US"}), format="json"
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "State/Province code is required"


def test_quote_callback_unknown_company(db):
    payload = {"cart": {"company": {"id": 999}, "ship_to": {"country_code": "US", "state": "CA"}}}
    resp = APIClient().post("/callbacks/shipping_options", payload, format="json")
    assert resp.status_code == 401


def test_quote_callback_invalid_items(company):
    payload = _cart_payload(company)
    payload["cart"]["items"] = None
    resp = APIClient().post("/callbacks/shipping_options", payload, format="json")
    assert resp.status_code == 422
    assert resp.json()["error"] == "Invalid parameters"


def test_import_endpoint(company, staff_client):
    upload = SimpleUploadedFile(
        "rates.csv", (HEADER + "\nGround,US,,0,5,5.00,0\n").encode(), content_type="text/csv"
    )
    resp = staff_client.post(
        "/api/rates/import", {"company_id": company.id, "csv_file": upload}, format="multipart"
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Successfully imported 1 rate(s)"
    assert Rate.objects.count() == 1


def test_import_endpoint_reports_row_errors(company, staff_client):
    upload = SimpleUploadedFile(
        "rates.csv", (HEADER + "\nGround,US,,0,99999,5.00,0\n").encode(), content_type="text/csv"
    )
    resp = staff_client.post(
        "/api/rates/import", {"company_id": company.id, "csv_file": upload}, format="multipart"
    )
    assert resp.status_code == 422
    [row_error] = resp.json()["row_errors"]
    assert row_error["row"] == 2
    assert row_error["auto_correctable"] is True


def test_import_requires_authentication(company):
    resp = APIClient().post("/api/rates/import", {"company_id": company.id}, format="multipart")
    assert resp.status_code in (401, 403)


def test_rate_list_filters_and_paginates(company, make_option, make_rate, staff_client):
    ground = make_option(company, name="Ground", countries=["US", "CA"])
    express = make_option(company, name="Express", countries=["US"])
    make_rate(ground, country="US", min_lbs="0", max_lbs="5")
    make_rate(ground, country="US", min_lbs="5", max_lbs="10")
    make_rate(ground, country="CA", min_lbs="0", max_lbs="5")
    make_rate(express, country="US", min_lbs="0", max_lbs="5")

    resp = staff_client.get("/api/rates", {"company_id": company.id, "country": "us", "limit": 2})
    body = resp.json()
    assert resp.status_code == 200
    assert body["total_count"] == 3
    assert body["limit"] == 2
    assert [r["min_range_lbs"] for r in body["rates"]] == ["0.0000", "5.0000"]
    assert body["countries"] == ["CA", "US"]
    assert [o["name"] for o in body["shipping_options"]] == ["Express", "Ground"]

    capped = staff_client.get("/api/rates", {"company_id": company.id, "limit": 5000}).json()
    assert capped["limit"] == 2000

    by_option = staff_client.get("/api/rates", {"company_id": company.id, "shipping_option_id": express.id}).json()
    assert by_option["total_count"] == 1


def test_sort_order_endpoint(company, make_option, staff_client):
    ground = make_option(company, name="Ground")
    express = make_option(company, name="Express")

    resp = staff_client.post(
        "/api/shipping_options/sort_order",
        {"company_id": company.id, "country_code": "us",
         "positions": [{"id": express.id, "position": 0}, {"id": ground.id, "position": 1}]},
        format="json",
    )
    assert resp.status_code == 200
    names = [o.name for o in ShippingOption.objects.filter(company=company).ordered_for_country("US")]
    assert names == ["Express", "Ground"]


def test_sort_order_unknown_option_rolls_back(company, make_option, staff_client):
    ground = make_option(company, name="Ground")
    resp = staff_client.post(
        "/api/shipping_options/sort_order",
        {"company_id": company.id, "country_code": "US",
         "positions": [{"id": ground.id, "position": 7}, {"id": 424242, "position": 0}]},
        format="json",
    )
    assert resp.status_code == 422
    ground.refresh_from_db()
    assert ground.position_for_country("US") == 0


@pytest.mark.parametrize(
    "ship_to,error",
    [
        ({"country_code": 840, "state": "CA"}, "Country code is required"),
        ({"country_code": ["US"], "state": "CA"}, "Country code is required"),
        ({"country_code": "US", "state": 6}, "State/Province code is required"),
        ({"country_code": "US", "state": "   "}, "State/Province code is required"),
    ],
)
def test_quote_callback_rejects_non_text_destination(company, ship_to, error):
    resp = APIClient().post("/callbacks/shipping_options", _cart_payload(company, ship_to=ship_to), format="json")
    assert resp.status_code == 400
    assert resp.json()["error"] == error


@pytest.mark.parametrize("company_id", ["abc", [1001], {"id": 1001}])
def test_quote_callback_malformed_company_id(company, company_id):
    payload = _cart_payload(company)
    payload["cart"]["company"]["id"] = company_id
    resp = APIClient().post("/callbacks/shipping_options", payload, format="json")
    assert resp.status_code == 401


def test_quote_callback_item_with_non_object_variant(company, make_option, make_rate):
    option = make_option(company, name="Ground")
    make_rate(option, min_lbs="0", max_lbs="5", flat_rate="4.00")
    items = [
        {"id": 1, "quantity": 1, "variant": "v-1"},
        {"id": 2, "quantity": 1, "variant": {"id": 6, "weight": "2", "unit_of_weight": "lb"}},
    ]

    resp = APIClient().post("/callbacks/shipping_options", _cart_payload(company, items=items), format="json")

    assert resp.status_code == 200
    [choice] = resp.json()["shipping_options"]
    assert choice["shipping_title"] == "Ground"
    assert Decimal(str(choice["shipping_total"])) == Decimal("4.00")

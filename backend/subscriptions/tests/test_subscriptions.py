from __future__ import annotations

from datetime import datetime, timezone
from unittest import mock

import pytest
import requests
from rest_framework.test import APIClient

from subscriptions.services.cart_session import CartSessionStore
from subscriptions.services.subscription_client import (
    SubscriptionLookupError,
    SubscriptionStatusClient,
    is_active_payload,
)

pytestmark = pytest.mark.django_db

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def test_payload_activity():
    assert is_active_payload({"startDate": "2025-01-01T00:00:00", "expireDate": "2027-01-01T00:00:00"}, at=NOW)
    assert is_active_payload({"startDate": "2025-01-01T00:00:00", "expireDate": "0001-01-01T00:00:00"}, at=NOW)
    assert not is_active_payload({"startDate": "0001-01-01T00:00:00"}, at=NOW)
    assert not is_active_payload({}, at=NOW)
    assert not is_active_payload({"startDate": "2025-01-01T00:00:00", "expireDate": "2026-02-01T00:00:00"}, at=NOW)


def test_cart_session_round_trip():
    session = CartSessionStore("c-1")
    assert session.cached_email is None
    assert not session.has_active_subscription()

    session.store_login("pat@example.com", has_subscription=True)
    assert CartSessionStore("c-1").cached_email == "pat@example.com"
    assert CartSessionStore("c-1").has_active_subscription()

    session.clear_all()
    assert session.cached_email is None


def test_client_calls_service_and_caches(perks_company):
    response = mock.Mock()
    response.json.return_value = {"startDate": "2025-01-01T00:00:00", "expireDate": "0001-01-01T00:00:00"}
    response.raise_for_status.return_value = None

    with mock.patch("subscriptions.services.subscription_client.requests.get", return_value=response) as get:
        client = SubscriptionStatusClient(perks_company)
        assert client.has_active_subscription("pat@example.com")
        assert client.has_active_subscription("pat@example.com")

    get.assert_called_once()
    args, kwargs = get.call_args
    assert args[0] == "https://subs.example.com/3.0/subscription"
    assert kwargs["params"] == {"subscriptionID": "9", "customerID": "pat@example.com"}
    assert kwargs["headers"] == {"Authorization": "Basic dG9rZW4="}


def test_client_fails_closed(perks_company, monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr("subscriptions.services.subscription_client.requests.get", timeout)
    client = SubscriptionStatusClient(perks_company)
    with pytest.raises(SubscriptionLookupError):
        client._fetch("pat@example.com")
    assert client.has_active_subscription("pat@example.com") is False


def test_client_without_token_never_calls_out(company, monkeypatch, settings):
    settings.SUBSCRIPTION_API_TOKEN = ""
    monkeypatch.setattr(SubscriptionStatusClient, "_fetch", mock.Mock(side_effect=AssertionError("no call")))
    assert SubscriptionStatusClient(company).has_active_subscription("pat@example.com") is False


def _cart(company, **extra):
    return {"cart": {"id": "cart-9", "company": {"id": company.platform_company_id}, **extra}}


def test_logged_in_callback_stores_session(perks_company, monkeypatch):
    monkeypatch.setattr(SubscriptionStatusClient, "has_active_subscription", lambda self, customer: True)
    resp = APIClient().post(
        "/callbacks/cart_customer_logged_in", _cart(perks_company, email=" Pat@Example.com "), format="json"
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "has_subscription": True}
    session = CartSessionStore("cart-9")
    assert session.cached_email == "Pat@Example.com"
    assert session.has_active_subscription()


def test_logged_in_callback_skips_without_perks(company):
    resp = APIClient().post("/callbacks/cart_customer_logged_in", _cart(company, email="a@b.com"), format="json")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Subscription check skipped"
    assert CartSessionStore("cart-9").cached_email is None


def test_unknown_company_is_unauthorized(db):
    resp = APIClient().post(
        "/callbacks/cart_customer_logged_in", {"cart": {"id": "x", "company": {"id": 404}}}, format="json"
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == "Company not found with ID: 404"


@pytest.mark.parametrize("new_email,cleared", [("PAT@example.com", False), ("other@example.com", True), ("", True)])
def test_update_email_clears_on_change(perks_company, new_email, cleared):
    CartSessionStore("cart-9").store_login("pat@example.com", has_subscription=True)
    resp = APIClient().post("/callbacks/update_cart_email", _cart(perks_company, email=new_email), format="json")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "valid": True}
    assert (CartSessionStore("cart-9").cached_email is None) is cleared


def test_logout_clears_session(perks_company):
    CartSessionStore("cart-9").store_login("pat@example.com", has_subscription=True)
    resp = APIClient().post("/callbacks/customer_sessions/logout", _cart(perks_company), format="json")
    assert resp.status_code == 200
    assert not CartSessionStore("cart-9").has_active_subscription()


@pytest.mark.parametrize("new_email,cleared", [("pat@example.com", False), ("other@example.com", True)])
def test_verify_email_success_handled_like_email_update(perks_company, new_email, cleared):
    CartSessionStore("cart-9").store_login("pat@example.com", has_subscription=True)
    resp = APIClient().post("/callbacks/verify_email_success", _cart(perks_company, email=new_email), format="json")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "valid": True}
    assert (CartSessionStore("cart-9").cached_email is None) is cleared


def test_malformed_company_id_is_unauthorized(db):
    resp = APIClient().post(
        "/callbacks/cart_customer_logged_in", {"cart": {"id": "x", "company": {"id": "abc"}}}, format="json"
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == "Company not found with ID: abc"

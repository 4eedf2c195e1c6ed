from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

import requests
from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

# The subscription API reports "never subscribed" with this sentinel date
EMPTY_DATE = "0001-01-01T00:00:00"


class SubscriptionLookupError(Exception):
    """Raised when the subscription service cannot be reached or answers with an error."""
    pass


def _parse_date(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_active_payload(data: Dict, at: Optional[datetime] = None) -> bool:
    start_date = data.get("startDate")
    if not start_date or start_date == EMPTY_DATE:
        return False
    expire_date = data.get("expireDate")
    if expire_date and expire_date != EMPTY_DATE:
        if _parse_date(expire_date) < (at or datetime.now(timezone.utc)):
            return False
    return True


class SubscriptionStatusClient:
    """
    Reads a customer's subscription status from the merchant's subscription
    service. Company settings override the global defaults. Results are cached
    briefly; every failure answers False.
    """

    def __init__(self, company, timeout: Optional[float] = None) -> None:
        self.company = company
        self.base_url = company.setting("subscription_api_url", settings.SUBSCRIPTION_API_URL)
        self.auth_token = company.setting("subscription_api_token", settings.SUBSCRIPTION_API_TOKEN)
        self.subscription_id = company.setting("subscription_id", settings.SUBSCRIPTION_ID)
        self.timeout = timeout if timeout is not None else settings.SUBSCRIPTION_API_TIMEOUT

    def cache_key(self, customer_id) -> str:
        return f"subscription:{customer_id}:{self.subscription_id}"

    def _fetch(self, customer_id) -> Dict:
        try:
            resp = requests.get(
                f"{self.base_url}/3.0/subscription",
                params={"subscriptionID": self.subscription_id, "customerID": customer_id},
                headers={"Authorization": f"Basic {self.auth_token}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            raise SubscriptionLookupError(str(e)) from e

    def check(self, customer_id) -> bool:
        try:
            data = self._fetch(customer_id)
            active = is_active_payload(data)
        except (SubscriptionLookupError, ValueError) as e:
            logger.error("[Subscription] Error for customer %s: %s", customer_id, e)
            return False
        logger.info(
            "[Subscription] Customer %s subscription %s: %s (start: %s, expire: %s)",
            customer_id, self.subscription_id, active, data.get("startDate"), data.get("expireDate"),
        )
        return active

    def has_active_subscription(self, customer_id) -> bool:
        if not customer_id or not self.auth_token:
            return False
        key = self.cache_key(customer_id)
        cached = cache.get(key)
        if cached is not None:
            return cached
        active = self.check(customer_id)
        cache.set(key, active, settings.SUBSCRIPTION_STATUS_TTL)
        return active

"""Per-cart login/subscription state written by the cart callbacks."""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


class CartSessionStore:
    def __init__(self, cart_id):
        self.cart_id = cart_id

    @property
    def email_key(self) -> str:
        return f"cart:{self.cart_id}:email"

    @property
    def subscription_key(self) -> str:
        return f"cart:{self.cart_id}:has_subscription"

    def store_login(self, email: str, has_subscription: bool) -> None:
        ttl = settings.CART_SESSION_TTL
        cache.set_many({self.email_key: email, self.subscription_key: bool(has_subscription)}, ttl)
        logger.info("[CartSession] Login %s stored for cart %s (subscription=%s)", email, self.cart_id, has_subscription)

    @property
    def cached_email(self) -> Optional[str]:
        return cache.get(self.email_key)

    def has_active_subscription(self) -> bool:
        return cache.get(self.subscription_key) is True

    def clear_all(self) -> None:
        cache.delete_many([self.email_key, self.subscription_key])
        logger.info("[CartSession] Cleared session for cart %s", self.cart_id)

"""
Subscriber-only shipping options.

Subscription state is only ever read here; it is written by the cart callbacks
in the subscriptions app.
"""
from __future__ import annotations

import logging
from typing import List

from subscriptions.services.cart_session import CartSessionStore

from ..dataclasses import CandidateOption, SubscriptionContext

logger = logging.getLogger(__name__)


def user_has_active_subscription(company, context: SubscriptionContext) -> bool:
    """
    True only when the cart has a cached login whose email agrees with the
    cart's email (case-insensitive) and that login holds an active subscription.
    Any failure reading the session store counts as "not subscribed".
    """
    if context is None or not context.cart_id:
        return False
    if not company.subscriber_perks_enabled():
        return False

    try:
        session = CartSessionStore(context.cart_id)
        cached_email = session.cached_email
        cached_subscription = session.has_active_subscription()
    except Exception:
        logger.exception("[ShippingCalc] Subscription lookup failed for cart %s; treating as not subscribed", context.cart_id)
        return False

    cart_email = (context.cart_email or "").strip() or None
    logger.info(
        "[ShippingCalc] Subscription check: cart_id=%s, cart_email=%r, cached_email=%r, cached_subscription=%s",
        context.cart_id, cart_email, cached_email, cached_subscription,
    )

    if not cached_email:
        return False
    if cart_email and cart_email.lower() != cached_email.lower():
        logger.info(
            "[ShippingCalc] Email mismatch: cart_email=%s, cached_email=%s. Ignoring cached subscription state.",
            cart_email, cached_email,
        )
        return False
    return cached_subscription


def filter_by_subscription(company, options: List[CandidateOption], has_subscription: bool) -> List[CandidateOption]:
    """Drop subscriber-only options for non-subscribers of subscription-program companies."""
    if not company.subscription_program:
        return list(options)

    eligible = []
    for option in options:
        if not option.free_for_subscribers:
            eligible.append(option)
        elif has_subscription:
            logger.info("[ShippingCalc] Including subscriber-only option: %s", option.name)
            eligible.append(option)
        else:
            logger.info("[ShippingCalc] Excluding subscriber-only option: %s (user not subscribed)", option.name)
    return eligible

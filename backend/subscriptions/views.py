from __future__ import annotations

import logging

from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from companies.models import Company

from .services.cart_session import CartSessionStore
from .services.subscription_client import SubscriptionStatusClient

logger = logging.getLogger(__name__)


def _clean(value):
    value = str(value).strip() if value is not None else ""
    return value or None


class CartCallbackView(views.APIView):
    """Base for platform callbacks: unauthenticated, scoped by the cart's company id."""
    authentication_classes = []
    permission_classes = [AllowAny]

    def cart(self, request) -> dict:
        cart = request.data.get("cart") if isinstance(request.data, dict) else None
        return cart if isinstance(cart, dict) else {}

    def find_company(self, request):
        company_data = self.cart(request).get("company")
        company_id = company_data.get("id") if isinstance(company_data, dict) else None
        company = Company.objects.for_platform_id(company_id)
        if company is None:
            return None, Response(
                {"success": False, "error": f"Company not found with ID: {company_id}"},
                status=status.HTTP_401_UNAUTHORIZED,
            )
        return company, None


class CartLoggedInView(CartCallbackView):
    def post(self, request):
        company, error = self.find_company(request)
        if error:
            return error
        cart = self.cart(request)
        cart_id = cart.get("id")
        email = _clean(cart.get("email"))
        logger.info("[CartCallback:logged_in] cart_id=%s, email=%r", cart_id, email)

        if not cart_id:
            return Response({"success": False, "error": "Cart ID is required"}, status=status.HTTP_400_BAD_REQUEST)

        if not (company.subscriber_perks_enabled() and email):
            return Response({"success": True, "message": "Subscription check skipped"})

        has_subscription = SubscriptionStatusClient(company).has_active_subscription(email)
        CartSessionStore(cart_id).store_login(email, has_subscription=has_subscription)
        return Response({"success": True, "has_subscription": has_subscription})


class CartEmailUpdatedView(CartCallbackView):
    """
    Only clears state. Subscription perks are granted on login, never because
    someone typed a subscriber's email into the cart.
    """

    def post(self, request):
        company, error = self.find_company(request)
        if error:
            return error
        cart = self.cart(request)
        cart_id = cart.get("id")
        new_email = _clean(request.data.get("email") or cart.get("email"))
        logger.info("[CartCallback:update_email] cart_id=%s, new_cart_email=%r", cart_id, new_email)

        if cart_id:
            session = CartSessionStore(cart_id)
            cached_email = session.cached_email
            if new_email is None:
                session.clear_all()
            elif cached_email and new_email.lower() != cached_email.lower():
                logger.info("[CartCallback:update_email] Email changed from %s to %s", cached_email, new_email)
                session.clear_all()
        return Response({"success": True, "valid": True})


class CustomerLogoutView(CartCallbackView):
    def post(self, request):
        cart_id = self.cart(request).get("id")
        if not cart_id:
            return Response({"success": False, "error": "Cart ID is required"}, status=status.HTTP_400_BAD_REQUEST)
        company, error = self.find_company(request)
        if error:
            return error
        CartSessionStore(cart_id).clear_all()
        return Response({"success": True, "message": "Session cleared"})

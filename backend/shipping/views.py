from __future__ import annotations

import logging

from django.db import transaction
from rest_framework import status, views
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from companies.models import Company

from .dataclasses import CartItem, QuoteRequest, SubscriptionContext
from .models import Rate, ShippingOption
from .serializers import RateImportSerializer, RateListQuerySerializer, RateSerializer, SortOrderSerializer
from .services.quote_service import compute_quote
from .services.rate_import import import_rate_table

logger = logging.getLogger(__name__)


def _present(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _bad_request(error: str) -> Response:
    return Response({"success": False, "error": error}, status=status.HTTP_400_BAD_REQUEST)


class ShippingQuoteCallbackView(views.APIView):
    """Checkout callback: the platform posts the cart and renders the returned choices."""
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        cart = request.data.get("cart") if isinstance(request.data, dict) else None
        if not isinstance(cart, dict) or not cart:
            return _bad_request("Cart data is required")
        company_data = cart.get("company") or {}
        if not isinstance(company_data, dict) or not company_data:
            return _bad_request("Company data is required")

        company_id = company_data.get("id")
        company = Company.objects.for_platform_id(company_id)
        if company is None:
            return Response(
                {"success": False, "error": f"Company not found with ID: {company_id}"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        ship_to = cart.get("ship_to") or {}
        if not isinstance(ship_to, dict) or not ship_to:
            return _bad_request("Shipping address is required")
        if not _present(ship_to.get("country_code")):
            return _bad_request("Country code is required")
        if not _present(ship_to.get("state")):
            return _bad_request("State/Province code is required")

        items = cart.get("items")
        quote_request = QuoteRequest(
            company=company,
            ship_to_country=ship_to.get("country_code"),
            ship_to_state=ship_to.get("state"),
            items=[CartItem.from_payload(i) for i in items if isinstance(i, dict)] if isinstance(items, list) else None,
            subscription=SubscriptionContext(cart_id=cart.get("id"), cart_email=cart.get("email")),
        )
        result = compute_quote(quote_request)
        code = status.HTTP_200_OK if result.success else status.HTTP_422_UNPROCESSABLE_ENTITY
        return Response(result.as_dict(), status=code)


class RateImportView(views.APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        ser = RateImportSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        company = Company.objects.get(id=data["company_id"])

        result = import_rate_table(company, data.get("csv_file"), apply_corrections=data["apply_corrections"])
        code = status.HTTP_200_OK if result.success else status.HTTP_422_UNPROCESSABLE_ENTITY
        return Response(result.as_dict(), status=code)


class RateListView(views.APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ser = RateListQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        params = ser.validated_data
        company_id = params["company_id"]

        rates = (
            Rate.objects.for_company(company_id)
            .select_related("shipping_option")
            .order_by("shipping_option_id", "country", "region", "min_range_lbs")
        )
        if params.get("shipping_option_id"):
            rates = rates.filter(shipping_option_id=params["shipping_option_id"])
        if params.get("country"):
            rates = rates.for_country(params["country"])

        limit, offset = params["limit"], params["offset"]
        total_count = rates.count()
        page = rates[offset:offset + limit]

        options = ShippingOption.objects.filter(company_id=company_id).order_by("name").values("id", "name")
        countries = sorted(set(Rate.objects.for_company(company_id).values_list("country", flat=True)))
        return Response({
            "rates": RateSerializer(page, many=True).data,
            "shipping_options": list(options),
            "countries": countries,
            "total_count": total_count,
            "limit": limit,
            "offset": offset,
        })


class ShippingOptionSortOrderView(views.APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]

    def post(self, request):
        ser = SortOrderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        country = data["country_code"]

        try:
            with transaction.atomic():
                for entry in data["positions"]:
                    option = ShippingOption.objects.get(company_id=data["company_id"], id=entry["id"])
                    option.set_position_for_country(country, entry["position"])
                    option.save(update_fields=["country_sort_positions", "updated_at"])
        except ShippingOption.DoesNotExist:
            return Response(
                {"success": False, "error": "Shipping method not found"},
                status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        logger.info("[ShippingCalc] Sort order for %s updated (company %s)", country, data["company_id"])
        return Response({"success": True})

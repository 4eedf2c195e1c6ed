from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .services.intervals import WeightRange


@dataclass
class RateTier:
    """Snapshot of a stored Rate, safe to keep in the options cache."""
    id: int
    country: str
    region: Optional[str]
    min_range_lbs: Decimal
    max_range_lbs: Decimal
    flat_rate: Decimal
    min_charge: Decimal

    @property
    def weight_range(self) -> WeightRange:
        return WeightRange(self.min_range_lbs, self.max_range_lbs)

    @property
    def price(self) -> Decimal:
        return max(self.flat_rate, self.min_charge)


@dataclass
class CandidateOption:
    """Snapshot of an active ShippingOption with its rates pre-loaded."""
    id: int
    name: str
    delivery_time: int
    starting_rate: Decimal
    free_for_subscribers: bool
    rates: List[RateTier] = field(default_factory=list)


@dataclass
class CartItem:
    id: Any = None
    variant_id: Any = None
    quantity: Optional[int] = None
    weight: Optional[Decimal] = None
    unit_of_weight: Optional[str] = None
    has_variant: bool = True

    @classmethod
    def from_payload(cls, item: Dict) -> "CartItem":
        """Build from the platform's cart line item (weight lives on the variant)."""
        variant = item.get("variant")
        if not isinstance(variant, dict):
            return cls(id=item.get("id"), quantity=item.get("quantity"), has_variant=False)
        return cls(
            id=item.get("id"),
            variant_id=variant.get("id"),
            quantity=item.get("quantity"),
            weight=variant.get("weight"),
            unit_of_weight=variant.get("unit_of_weight"),
        )


@dataclass
class SubscriptionContext:
    cart_id: Any = None
    cart_email: Optional[str] = None


@dataclass
class QuoteRequest:
    company: Any
    ship_to_country: Optional[str]
    ship_to_state: Optional[str]
    items: List[CartItem] = field(default_factory=list)
    subscription: SubscriptionContext = field(default_factory=SubscriptionContext)


@dataclass
class ShippingChoice:
    shipping_total: Decimal
    shipping_title: str
    shipping_delivery_time_estimate: Any


@dataclass
class QuoteResult:
    success: bool
    shipping_options: List[ShippingChoice] = field(default_factory=list)
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "shipping_options": [asdict(c) for c in self.shipping_options],
        }
        if self.error:
            out["error"] = self.error
        return out


# (shipping_option_id, country, region)
LocationKey = Tuple[int, str, Optional[str]]


@dataclass
class RowError:
    row: int
    errors: List[str]
    data: Dict[str, Any]
    auto_correctable: bool = False
    corrections: Dict[str, str] = field(default_factory=dict)


@dataclass
class ImportResult:
    success: bool
    message: str
    imported_count: int = 0
    replaced_count: int = 0
    errors: List[str] = field(default_factory=list)
    row_errors: List[RowError] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "imported_count": self.imported_count,
            "replaced_count": self.replaced_count,
            "errors": list(self.errors),
            "row_errors": [asdict(e) for e in self.row_errors],
        }

"""
Order as handed over by checkout. The shipping core reads it and never
persists it.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Customer:
    first_name: str
    last_name: str
    phone: str
    email: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


@dataclass(frozen=True)
class OrderShippingInfo:
    address: str
    country: str = "Morocco"
    landmark: str = ""
    district_id: Optional[int] = None
    postal_code: str = ""
    notes: str = ""

    def with_district(self, district_id: int) -> "OrderShippingInfo":
        return replace(self, district_id=district_id)


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: int = 1
    price: Decimal = Decimal("0")
    size: str = ""
    variation: str = ""
    product_id: str = ""


@dataclass(frozen=True)
class PaymentOutcome:
    """What the payment provider told us on capture."""

    method: str
    order_id: str = ""
    transaction_id: str = ""
    payer_id: str = ""
    funding_source: str = ""


@dataclass(frozen=True)
class Order:
    order_number: str
    customer: Customer
    shipping: OrderShippingInfo
    items: Tuple[LineItem, ...] = ()
    total: Decimal = Decimal("0")
    payment: Optional[PaymentOutcome] = None
    exchange_delivery_code: str = ""


@dataclass(frozen=True)
class DeliveryRequest:
    """Courier payload plus the product strings to try, level by level."""

    payload: dict
    attempt_chain: Tuple[str, ...] = ()

    def for_attempt(self, level: int) -> dict:
        payload = dict(self.payload)
        if self.attempt_chain:
            payload["products"] = self.attempt_chain[level]
        return payload


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    delivery_code: str
    tracking_code: str
    used_fallback: bool = False
    label_url: Optional[str] = None
    attempts: int = 1
    data: dict = field(default_factory=dict)


def line_items(items) -> List[LineItem]:
    """Build line items from checkout dicts (``quantity``, ``size``, ``variation``...)."""
    result = []
    for item in items or []:
        result.append(
            LineItem(
                name=item.get("name") or "",
                quantity=int(item.get("quantity") or 1),
                price=Decimal(str(item.get("price") or 0)),
                size=item.get("size") or "",
                variation=item.get("variation") or item.get("variationId") or "",
                product_id=str(item.get("originalId") or item.get("id") or ""),
            )
        )
    return result

"""
Checkout pipeline: persist the order, then hand it to the courier.

Payment is authoritative. Once a payment has been captured the order is
saved whatever happens on the shipping side; a failed delivery only
leaves ``delivery_error`` set so staff can arrange it manually.
"""

import logging
import time
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction

from payment.tasks import forward_tracking_to_paypal
from shipping.conf import SenditConfig, get_sendit_config
from shipping.delivery import create_delivery
from shipping.districts import DistrictCatalogCache
from shipping.domain import DeliveryResult, PaymentOutcome
from shipping.exceptions import ShippingError
from shipping.matching import CityMatcher
from shipping.sendit import SenditClient

from .models import Order, OrderItem
from .tasks import order_created

logger = logging.getLogger(__name__)

SHIPPABLE_COUNTRIES = ("morocco", "ma")


def generate_order_number() -> str:
    stamp = int(time.time() * 1000)
    while Order.objects.filter(order_number=f"TAR-{stamp}").exists():
        stamp += 1
    return f"TAR-{stamp}"


def finalize_address(address: str, city: str) -> str:
    """Append the city unless the address already ends with it."""
    address = (address or "").strip()
    city = (city or "").strip()
    if not city or address.lower().endswith(city.lower()):
        return address
    return f"{address}, {city}" if address else city


def finalize_district(district_id, city: str, catalog, fallback_district_id: int) -> int:
    if district_id:
        return int(district_id)
    return CityMatcher(catalog, fallback_district_id).resolve_district_id(city or "")


def should_create_delivery(config: SenditConfig, country: str, district_id) -> bool:
    return (
        config.is_configured
        and (country or "").strip().lower() in SHIPPABLE_COUNTRIES
        and str(district_id or "").isdigit()
    )


def place_order(
    data: dict,
    items: Iterable[dict],
    payment: Optional[PaymentOutcome] = None,
    config: SenditConfig = None,
    catalog=None,
    client=None,
) -> Order:
    """
    Persist a checkout submission and create its courier delivery.

    ``data`` holds the cleaned checkout fields, ``items`` the cleaned line
    items. Never raises on courier failures.
    """
    config = config or get_sendit_config()
    if catalog is None:
        catalog = DistrictCatalogCache().snapshot()
    items = list(items)

    district_id = finalize_district(
        data.get("district_id"), data.get("city"), catalog, config.fallback_district_id
    )
    total = data.get("total")
    if total is None:
        total = sum((Decimal(str(i["price"])) * int(i.get("quantity") or 1) for i in items), Decimal("0"))

    with transaction.atomic():
        order = Order.objects.create(
            order_number=data.get("order_number") or generate_order_number(),
            first_name=data["first_name"],
            last_name=data["last_name"],
            email=data["email"],
            phone=data["phone"],
            address=finalize_address(data["address"], data.get("city")),
            city=data.get("city") or "",
            landmark=data.get("landmark") or "",
            postal_code=data.get("postal_code") or "",
            country=data.get("country") or "Morocco",
            notes=data.get("notes") or "",
            district_id=district_id,
            total=total,
            payment_method=payment.method if payment else data.get("payment_method") or Order.CASH_ON_DELIVERY,
            paid=payment is not None,
            paypal_order_id=payment.order_id if payment else "",
            transaction_id=payment.transaction_id if payment else "",
            payer_id=payment.payer_id if payment else "",
            funding_source=payment.funding_source if payment else "",
        )
        for item in items:
            OrderItem.objects.create(
                order=order,
                product_id=item.get("product_id") or "",
                name=item["name"],
                variation=item.get("variation") or "",
                size=item.get("size") or "",
                price=item["price"],
                quantity=item.get("quantity") or 1,
            )

    logger.info("Order %s saved (payment=%s, district=%s)", order.order_number, order.payment_method, district_id)

    if should_create_delivery(config, order.country, order.district_id):
        try:
            ship_order(order, config, client=client)
        except Exception as exc:
            # the order is committed: never fail checkout on the courier side
            logger.exception("Order %s: unexpected courier failure; order kept without tracking", order.order_number)
            order.delivery_error = str(exc) or exc.__class__.__name__
            order.save(update_fields=["delivery_error", "updated"])
    else:
        logger.info(
            "Order %s: courier delivery skipped (configured=%s, country=%s)",
            order.order_number,
            config.is_configured,
            order.country,
        )

    transaction.on_commit(lambda: order_created.delay(order.id))
    if order.tracking_code and order.payment_reference:
        transaction.on_commit(lambda: forward_tracking_to_paypal.delay(order.id))
    return order


def ship_order(order: Order, config: SenditConfig, client=None) -> Optional[DeliveryResult]:
    """Create the courier delivery for a saved order and record the outcome."""
    own_client = client is None
    if own_client:
        client = SenditClient(config)
    try:
        result = create_delivery(order.to_shipping_order(), config, client)
    except ShippingError as exc:
        logger.exception("Order %s: delivery creation failed; order kept without tracking", order.order_number)
        order.delivery_error = str(getattr(exc, "user_message", None) or exc)
        order.save(update_fields=["delivery_error", "updated"])
        return None
    finally:
        if own_client:
            client.close()

    order.tracking_code = result.tracking_code
    order.delivery_code = result.delivery_code
    order.used_fallback = result.used_fallback
    order.delivery_error = ""
    order.save(update_fields=["tracking_code", "delivery_code", "used_fallback", "delivery_error", "updated"])
    logger.info(
        "Order %s: delivery %s created after %s attempt(s)",
        order.order_number,
        result.tracking_code,
        result.attempts,
    )
    return result


def sync_delivery_status(order: Order, client) -> bool:
    """Copy the courier status onto the order. Returns True when it changed."""
    delivery = client.get_delivery(order.tracking_code) or {}
    status = delivery.get("status") or ""
    if not status or status == order.delivery_status:
        return False
    logger.info("Order %s: delivery status %s -> %s", order.order_number, order.delivery_status or "-", status)
    order.delivery_status = status
    order.save(update_fields=["delivery_status", "updated"])
    return True


def reconcile_order(order: Order, client) -> bool:
    """
    Re-link an order saved without tracking to a delivery the courier did
    create, found by its reference (the order number).
    """
    delivery = client.find_delivery_by_reference(order.order_number)
    if not delivery:
        return False
    order.tracking_code = delivery["code"]
    order.delivery_code = delivery["code"]
    order.delivery_status = delivery.get("status") or order.delivery_status
    order.delivery_error = ""
    order.save(update_fields=["tracking_code", "delivery_code", "delivery_status", "delivery_error", "updated"])
    logger.info("Order %s: re-linked to delivery %s", order.order_number, delivery["code"])
    return True

"""
Maps an ``Order`` to the courier's delivery-creation schema.

``build`` is pure: the same order and config always give the same
``DeliveryRequest``. Every validation runs before any network call.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Tuple

from .codes import CodeMapping, resolve_item_codes, size_code
from .conf import SenditConfig
from .domain import DeliveryRequest, LineItem, Order
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^0[5-7]\d{8}$")

# What the warehouse staff read on the parcel for each size code
SIZE_LABELS = {
    "S": "N.4 ou N.5 ou N.6 (54-56cm)",
    "M": "N.7 ou N.8 ou N.9 (57-59cm)",
    "L": "N.0 ou N.1 (60-61cm)",
}


def normalize_phone(phone) -> str:
    """
    Normalize a Moroccan number to the courier format ``0[5-7]XXXXXXXX``.

    Accepts ``212XXXXXXXXX``, ``0XXXXXXXXX``, nine bare digits and longer
    strings (last ten digits kept). Raises ``ValidationError`` otherwise.
    """
    raw = str(phone or "").strip()
    digits = re.sub(r"\D", "", raw)
    if not digits:
        raise ValidationError("phone", "Required field cannot be empty")

    if len(digits) in (11, 12) and digits.startswith("212"):
        normalized = "0" + digits[3:]
    elif len(digits) == 10 and digits.startswith("0"):
        normalized = digits
    elif len(digits) == 9:
        normalized = "0" + digits
    elif len(digits) >= 10:
        last10 = digits[-10:]
        normalized = last10 if last10.startswith("0") else "0" + last10[1:]
    else:
        raise ValidationError(
            "phone",
            f'Invalid phone number "{raw}": 10 digits starting with 0 expected (e.g. 0612345678)',
        )

    if not PHONE_RE.match(normalized):
        raise ValidationError(
            "phone",
            f'Invalid phone number "{raw}" -> "{normalized}": expected 06******** '
            f"(10 digits, second digit 5-7)",
        )
    return normalized


def positive_int(value, field: str) -> int:
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError(field, "Required field is missing")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(field, f'"{value}" must be a valid positive integer')
    if number <= 0:
        raise ValidationError(field, f'"{value}" must be a valid positive integer')
    return number


def validate_amount(value) -> float:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("amount", f'"{value}" must be a number')
    if not amount.is_finite() or amount < 0:
        raise ValidationError("amount", f'"{value}" must be a valid non-negative number')
    return float(amount.quantize(Decimal("0.01")))


def compose_address(shipping) -> str:
    address = (shipping.address or "").strip()
    if shipping.landmark:
        address += f" ({shipping.landmark.strip()})"
    if shipping.postal_code:
        address += f" - {shipping.postal_code.strip()}"
    return address.strip()


def describe_item(item: LineItem) -> str:
    detail = (item.name or "").split(" - ")[0] or "Product"
    if item.variation:
        detail += f" ({item.variation.replace('-', ' ').title()})"
    if item.size:
        detail += f" - Taille: {SIZE_LABELS.get(size_code(item.size), item.size)}"
    return f"{detail} x{item.quantity or 1}"


def compose_comment(order: Order):
    """Free text for the warehouse staff; nothing parses it downstream."""
    comment = (order.shipping.notes or "").strip()

    details = " | ".join(describe_item(item) for item in order.items)
    if details:
        comment = f"{comment} | PRODUITS: {details}" if comment else f"PRODUITS: {details}"

    landmark = (order.shipping.landmark or "").strip()
    if landmark and "Landmark" not in comment:
        comment = f"{comment} | Landmark: {landmark}" if comment else f"Landmark: {landmark}"

    return comment.strip() or None


def build_attempt_chain(items: Iterable[LineItem], code_map: Dict[str, CodeMapping]) -> Tuple[str, ...]:
    """
    Aggregate every item's fallback codes level by level.

    Level k holds each item's k-th code with summed quantities, as the
    courier's ``CODE:QTY;CODE:QTY`` string.
    """
    levels: List[Dict[str, int]] = []
    for item in items:
        codes = resolve_item_codes(code_map, item)
        quantity = int(item.quantity or 1)
        for level, code in enumerate(codes):
            if len(levels) <= level:
                levels.append({})
            levels[level][code] = levels[level].get(code, 0) + quantity
        logger.debug("Item %s -> %s", item.name, " -> ".join(codes))

    return tuple(
        ";".join(f"{code}:{qty}" for code, qty in level.items())
        for level in levels
    )


def build(order: Order, config: SenditConfig) -> DeliveryRequest:
    district_id = positive_int(order.shipping.district_id, "district_id")
    pickup_district_id = positive_int(config.pickup_district_id, "pickup_district_id")

    name = order.customer.full_name
    if not name:
        raise ValidationError("name", "Required field cannot be empty")
    phone = normalize_phone(order.customer.phone)
    address = compose_address(order.shipping)
    if not address:
        raise ValidationError("address", "Required field cannot be empty")
    amount = validate_amount(order.total)

    attempt_chain: Tuple[str, ...] = ()
    if config.products_from_stock and order.items:
        attempt_chain = build_attempt_chain(order.items, config.code_map)

    payload = {
        "pickup_district_id": pickup_district_id,
        "district_id": district_id,
        "name": name,
        "phone": phone,
        "address": address,
        "amount": amount,
        "allow_open": 1 if config.allow_open else 0,
        "allow_try": 1 if config.allow_try else 0,
        "products_from_stock": 1 if config.products_from_stock else 0,
        "option_exchange": 1 if config.option_exchange else 0,
        "comment": compose_comment(order),
        "reference": (order.order_number or "").strip() or None,
        "products": attempt_chain[0] if attempt_chain else None,
        "delivery_exchange_id": None,
    }

    if config.products_from_stock and config.packaging_id:
        try:
            packaging_id = int(config.packaging_id)
        except (TypeError, ValueError):
            packaging_id = 0
        if packaging_id > 0:
            payload["packaging_id"] = packaging_id

    if config.option_exchange and (order.exchange_delivery_code or "").strip():
        payload["delivery_exchange_id"] = order.exchange_delivery_code.strip()

    logger.info(
        "Built courier payload for %s: district=%s attempts=%s",
        payload["reference"],
        district_id,
        len(attempt_chain) or 1,
    )
    return DeliveryRequest(payload=payload, attempt_chain=attempt_chain)

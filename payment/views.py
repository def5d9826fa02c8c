import json
import logging
from decimal import Decimal, InvalidOperation

import httpx
from django.contrib.admin.views.decorators import staff_member_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .paypal import PayPalClient, PayPalError, get_paypal_config, mad_to_usd

logger = logging.getLogger(__name__)


def _json_body(request) -> dict:
    try:
        body = json.loads(request.body or b"{}")
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@require_GET
def paypal_config(request):
    """Public settings the PayPal button needs. Never exposes the secret."""
    config = get_paypal_config()
    return JsonResponse(
        {
            "client_id": config.client_id or None,
            "use_sandbox": config.use_sandbox,
            "mad_to_usd_rate": float(config.mad_to_usd_rate),
        }
    )


@require_POST
def paypal_create_order(request):
    body = _json_body(request)
    try:
        total = Decimal(str(body.get("total")))
    except InvalidOperation:
        return JsonResponse({"success": False, "message": "Invalid total"}, status=400)
    if not total.is_finite() or total <= 0:
        return JsonResponse({"success": False, "message": "Invalid total"}, status=400)

    try:
        with PayPalClient() as paypal:
            data = paypal.create_order(
                total,
                item_count=int(body.get("item_count") or 1),
                reference=body.get("reference") or "",
            )
    except (PayPalError, httpx.HTTPError):
        logger.exception("PayPal order creation failed for %s MAD", total)
        return JsonResponse({"success": False, "message": "PayPal unavailable"}, status=502)

    return JsonResponse(
        {
            "success": True,
            "id": data.get("id"),
            "status": data.get("status"),
            "amount_usd": str(mad_to_usd(total, paypal.config.mad_to_usd_rate)),
        }
    )


@staff_member_required
@require_POST
def paypal_add_tracking(request):
    """Manually forward a tracking number to PayPal."""
    body = _json_body(request)
    transaction_id = body.get("order_id") or body.get("transaction_id")
    tracking_number = body.get("tracking_number")
    if not transaction_id or not tracking_number:
        return JsonResponse({"success": False, "message": "Missing order_id or tracking_number"}, status=400)

    try:
        with PayPalClient() as paypal:
            data = paypal.add_tracking(transaction_id, tracking_number, carrier=body.get("carrier") or "OTHER")
    except PayPalError as exc:
        logger.warning("PayPal tracking refused for %s: %s", transaction_id, exc.message)
        return JsonResponse(
            {"success": False, "message": "Failed to add tracking", "details": exc.data},
            status=exc.status_code or 502,
        )
    except httpx.HTTPError:
        logger.exception("PayPal tracking failed for %s", transaction_id)
        return JsonResponse({"success": False, "message": "PayPal unavailable"}, status=502)

    return JsonResponse({"success": True, "data": data})

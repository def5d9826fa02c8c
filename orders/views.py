import json
import logging

import httpx
from django.http import JsonResponse
from django.utils.translation import gettext as _
from django.views.decorators.http import require_POST

from payment.paypal import PayPalClient, PayPalError

from .forms import LineItemForm, OrderCreateForm
from .models import Order
from .services import place_order

logger = logging.getLogger(__name__)


def _error(message, status=400, **extra):
    return JsonResponse({"success": False, "message": message, **extra}, status=status)


@require_POST
def order_create(request):
    """
    Checkout submission (JSON). PayPal orders are captured here before
    anything is saved; cash-on-delivery orders are saved unpaid.
    """
    try:
        body = json.loads(request.body or b"{}")
    except ValueError:
        return _error(_("Invalid JSON body."))

    form = OrderCreateForm(body)
    if not form.is_valid():
        return _error(_("Please complete all required fields."), errors=form.errors.get_json_data())

    items = []
    for raw in body.get("items") or []:
        item_form = LineItemForm(raw)
        if not item_form.is_valid():
            return _error(_("Invalid cart item."), errors=item_form.errors.get_json_data())
        items.append(item_form.cleaned_data)
    if not items:
        return _error(_("Your cart is empty."))

    payment = None
    if form.cleaned_data["payment_method"] == Order.PAYPAL:
        paypal_order_id = body.get("paypal_order_id")
        if not paypal_order_id:
            return _error(_("Missing PayPal order."))
        try:
            with PayPalClient() as paypal:
                payment = paypal.capture_order(paypal_order_id)
        except (PayPalError, httpx.HTTPError):
            logger.exception("Capture failed for PayPal order %s", paypal_order_id)
            return _error(_("Payment could not be captured."), status=402)

    order = place_order(form.cleaned_data, items, payment)

    return JsonResponse(
        {
            "success": True,
            "order_number": order.order_number,
            "tracking_code": order.tracking_code or None,
            "used_fallback": order.used_fallback,
            "delivery_error": order.delivery_error or None,
        },
        status=201,
    )

import logging

from celery import shared_task

from orders.models import Order
from payment.paypal import PayPalClient, PayPalError

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(PayPalError,),
    retry_kwargs={"max_retries": 3, "countdown": 60},
)
def forward_tracking_to_paypal(self, order_id: int) -> int:
    """
    Tell PayPal the parcel shipped. Best-effort: the order is never touched
    whatever PayPal answers. Returns 1 if the tracker was added, 0 if skipped.
    """
    try:
        order = Order.objects.get(id=order_id)
    except Order.DoesNotExist:
        logger.warning("forward_tracking_to_paypal: Order %s not found", order_id)
        return 0

    if not order.tracking_code or not order.payment_reference:
        logger.info("forward_tracking_to_paypal: Order %s has nothing to forward", order.order_number)
        return 0

    with PayPalClient() as paypal:
        paypal.add_tracking(order.payment_reference, order.tracking_code)

    logger.info(
        "forward_tracking_to_paypal: order=%s transaction=%s tracking=%s",
        order.order_number,
        order.payment_reference,
        order.tracking_code,
    )
    return 1

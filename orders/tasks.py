import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext as _

from orders.models import Order
from shipping.conf import get_sendit_config
from shipping.exceptions import ShippingError
from shipping.sendit import SenditClient

logger = logging.getLogger(__name__)

# Courier statuses after which a delivery no longer changes
FINAL_DELIVERY_STATUSES = ("DELIVERED", "LIVRÉ", "RETURNED", "CANCELED", "CANCELLED", "REFUSED")

# Orphaned deliveries older than this are left to staff
RECONCILE_WINDOW = timedelta(days=7)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_kwargs={"max_retries": 5, "countdown": 60},
    rate_limit="5/m",
)
def order_created(self, order_id: int) -> int:
    """
    Send an e-mail confirmation when an order is saved, with the courier
    tracking code when the delivery was created.
    """
    try:
        order = Order.objects.get(id=order_id)
    except Order.DoesNotExist:
        logger.warning("order_created: Order %s not found", order_id)
        return 0

    subject = _("Order confirmation - %(number)s") % {"number": order.order_number}
    lines = [
        _("Dear %(name)s,") % {"name": order.first_name},
        "",
        _("Thank you for your order."),
        _("Your order reference is %(number)s.") % {"number": order.order_number},
    ]
    if order.tracking_code:
        lines.append(_("Tracking code: %(code)s") % {"code": order.tracking_code})
    else:
        lines.append(_("We will send you the tracking code once your parcel is registered."))
    lines += ["", _("Kind regards,"), settings.SHOP_NAME]

    from_email = settings.DEFAULT_FROM_EMAIL
    connection = get_connection()

    email = EmailMultiAlternatives(
        subject=subject,
        body="\n".join(lines),
        from_email=from_email,
        to=[order.email],
        reply_to=[from_email],
        connection=connection,
    )

    sent = email.send(fail_silently=False)

    logger.info(
        "order_created: sent=%s order=%s to=%s",
        sent,
        order.order_number,
        order.email,
    )

    return 1 if sent else 0


@shared_task(
    bind=True,
    autoretry_for=(ShippingError,),
    retry_kwargs={"max_retries": 3, "countdown": 300},
)
def sync_delivery_statuses(self) -> int:
    """Refresh ``delivery_status`` of every order still in transit."""
    from orders.services import sync_delivery_status

    config = get_sendit_config()
    if not config.is_configured:
        logger.warning("sync_delivery_statuses: Sendit credentials missing; skipping")
        return 0

    orders = Order.objects.exclude(tracking_code="").exclude(
        delivery_status__in=FINAL_DELIVERY_STATUSES
    )
    updated = 0
    with SenditClient(config) as sendit:
        for order in orders.iterator():
            try:
                updated += int(sync_delivery_status(order, sendit))
            except ShippingError:
                logger.warning("sync_delivery_statuses: could not fetch %s", order.tracking_code)

    logger.info("sync_delivery_statuses: %s orders updated", updated)
    return updated


@shared_task(
    bind=True,
    autoretry_for=(ShippingError,),
    retry_kwargs={"max_retries": 3, "countdown": 300},
)
def reconcile_deliveries(self) -> int:
    """
    Look up the courier for recent Moroccan orders whose delivery creation
    failed, in case the courier registered the parcel anyway.
    """
    from orders.services import SHIPPABLE_COUNTRIES, reconcile_order

    config = get_sendit_config()
    if not config.is_configured:
        logger.warning("reconcile_deliveries: Sendit credentials missing; skipping")
        return 0

    shippable = Q()
    for country in SHIPPABLE_COUNTRIES:
        shippable |= Q(country__iexact=country)
    orders = (
        Order.objects.filter(shippable, tracking_code="", district_id__isnull=False)
        .exclude(delivery_error="")
        .filter(created__gte=timezone.now() - RECONCILE_WINDOW)
    )
    relinked = 0
    with SenditClient(config) as sendit:
        for order in orders.iterator():
            try:
                relinked += int(reconcile_order(order, sendit))
            except ShippingError:
                logger.warning("reconcile_deliveries: lookup failed for %s", order.order_number)

    logger.info("reconcile_deliveries: %s orders re-linked", relinked)
    return relinked

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from shipping.domain import Customer, LineItem, Order as ShippingOrder, OrderShippingInfo, PaymentOutcome


class Order(models.Model):
    PAYPAL = "paypal"
    CASH_ON_DELIVERY = "cash_on_delivery"
    PAYMENT_METHODS = [
        (PAYPAL, _("PayPal")),
        (CASH_ON_DELIVERY, _("Cash on delivery")),
    ]

    order_number = models.CharField(_("order number"), max_length=40, unique=True)
    first_name = models.CharField(_("first name"), max_length=50)
    last_name = models.CharField(_("last name"), max_length=50)
    email = models.EmailField(_("e-mail"))
    phone = models.CharField(_("phone"), max_length=30)

    address = models.CharField(_("address"), max_length=250)
    city = models.CharField(_("city"), max_length=100, blank=True)
    landmark = models.CharField(_("landmark"), max_length=250, blank=True)
    postal_code = models.CharField(_("postal code"), max_length=20, blank=True)
    country = models.CharField(_("country"), max_length=50, blank=True, default="Morocco")
    notes = models.TextField(_("notes"), blank=True)
    district_id = models.PositiveIntegerField(_("district"), null=True, blank=True)

    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    created = models.DateTimeField(auto_now_add=True)
    updated = models.DateTimeField(auto_now=True)

    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS, default=CASH_ON_DELIVERY)
    paid = models.BooleanField(default=False)
    paypal_order_id = models.CharField(max_length=64, blank=True)
    transaction_id = models.CharField(max_length=64, blank=True)
    payer_id = models.CharField(max_length=64, blank=True)
    funding_source = models.CharField(max_length=30, blank=True)

    tracking_code = models.CharField(max_length=64, blank=True, db_index=True)
    delivery_code = models.CharField(max_length=64, blank=True)
    delivery_status = models.CharField(max_length=50, blank=True)
    delivery_error = models.TextField(blank=True)
    used_fallback = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created"]
        indexes = [
            models.Index(fields=["-created"], name="orders_created_idx"),
        ]

    def __str__(self):
        return f"Order {self.order_number}"

    def get_total_cost(self) -> Decimal:
        return sum((item.get_cost() for item in self.items.all()), Decimal("0"))

    @property
    def payment_reference(self) -> str:
        """Id PayPal expects for tracking: the capture id, else the order id."""
        return self.transaction_id or self.paypal_order_id

    def to_shipping_order(self) -> ShippingOrder:
        payment = None
        if self.payment_method == self.PAYPAL:
            payment = PaymentOutcome(
                method=self.PAYPAL,
                order_id=self.paypal_order_id,
                transaction_id=self.transaction_id,
                payer_id=self.payer_id,
                funding_source=self.funding_source,
            )
        return ShippingOrder(
            order_number=self.order_number,
            customer=Customer(
                first_name=self.first_name,
                last_name=self.last_name,
                phone=self.phone,
                email=self.email,
            ),
            shipping=OrderShippingInfo(
                address=self.address,
                country=self.country,
                landmark=self.landmark,
                district_id=self.district_id,
                postal_code=self.postal_code,
                notes=self.notes,
            ),
            items=tuple(item.to_line_item() for item in self.items.all()),
            total=self.total,
            payment=payment,
        )


class OrderItem(models.Model):
    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product_id = models.CharField(max_length=100, blank=True)
    name = models.CharField(max_length=200)
    variation = models.CharField(max_length=100, blank=True)
    size = models.CharField(max_length=50, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)

    def __str__(self):
        return str(self.id)

    def get_cost(self) -> Decimal:
        return self.price * self.quantity

    def to_line_item(self) -> LineItem:
        return LineItem(
            name=self.name,
            quantity=self.quantity,
            price=self.price,
            size=self.size,
            variation=self.variation,
            product_id=self.product_id,
        )

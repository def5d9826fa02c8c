from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=40, unique=True, verbose_name="order number")),
                ("first_name", models.CharField(max_length=50, verbose_name="first name")),
                ("last_name", models.CharField(max_length=50, verbose_name="last name")),
                ("email", models.EmailField(max_length=254, verbose_name="e-mail")),
                ("phone", models.CharField(max_length=30, verbose_name="phone")),
                ("address", models.CharField(max_length=250, verbose_name="address")),
                ("city", models.CharField(blank=True, max_length=100, verbose_name="city")),
                ("landmark", models.CharField(blank=True, max_length=250, verbose_name="landmark")),
                ("postal_code", models.CharField(blank=True, max_length=20, verbose_name="postal code")),
                ("country", models.CharField(blank=True, default="Morocco", max_length=50, verbose_name="country")),
                ("notes", models.TextField(blank=True, verbose_name="notes")),
                ("district_id", models.PositiveIntegerField(blank=True, null=True, verbose_name="district")),
                ("total", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("updated", models.DateTimeField(auto_now=True)),
                ("payment_method", models.CharField(choices=[("paypal", "PayPal"), ("cash_on_delivery", "Cash on delivery")], default="cash_on_delivery", max_length=20)),
                ("paid", models.BooleanField(default=False)),
                ("paypal_order_id", models.CharField(blank=True, max_length=64)),
                ("transaction_id", models.CharField(blank=True, max_length=64)),
                ("payer_id", models.CharField(blank=True, max_length=64)),
                ("funding_source", models.CharField(blank=True, max_length=30)),
                ("tracking_code", models.CharField(blank=True, db_index=True, max_length=64)),
                ("delivery_code", models.CharField(blank=True, max_length=64)),
                ("delivery_status", models.CharField(blank=True, max_length=50)),
                ("delivery_error", models.TextField(blank=True)),
                ("used_fallback", models.BooleanField(default=False)),
            ],
            options={
                "ordering": ["-created"],
                "indexes": [models.Index(fields=["-created"], name="orders_created_idx")],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_id", models.CharField(blank=True, max_length=100)),
                ("name", models.CharField(max_length=200)),
                ("variation", models.CharField(blank=True, max_length=100)),
                ("size", models.CharField(blank=True, max_length=50)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order")),
            ],
        ),
    ]

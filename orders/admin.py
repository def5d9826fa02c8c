from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        "order_number",
        "first_name",
        "last_name",
        "city",
        "payment_method",
        "paid",
        "tracking_code",
        "delivery_status",
        "created",
    ]
    list_filter = ["paid", "payment_method", "delivery_status", "created"]
    search_fields = ["order_number", "email", "phone", "tracking_code"]
    inlines = [OrderItemInline]

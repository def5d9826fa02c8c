from django.urls import path

from . import views

app_name = "payment"
urlpatterns = [
    path("paypal/config/", views.paypal_config, name="paypal-config"),
    path("paypal/orders/", views.paypal_create_order, name="paypal-create"),
    path("paypal/tracking/", views.paypal_add_tracking, name="paypal-tracking"),
]

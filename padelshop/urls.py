"""
URL configuration for padelshop project.
"""

from django.contrib import admin
from django.urls import include, path
from django.conf.urls.i18n import i18n_patterns
from django.utils.translation import gettext_lazy as _

urlpatterns = [
    # Needed for {% url 'set_language' %} and Django language switching
    path("i18n/", include("django.conf.urls.i18n")),
    # Keep the JSON API OUTSIDE i18n so the checkout script hits stable URLs
    path("api/shipping/", include(("shipping.urls", "shipping"), namespace="shipping")),
    path("api/orders/", include(("orders.urls", "orders"), namespace="orders")),
    path("api/payment/", include(("payment.urls", "payment"), namespace="payment")),
]

urlpatterns += i18n_patterns(
    path(_("admin/"), admin.site.urls),
)

from django import forms
from django.utils.translation import gettext_lazy as _

from .models import Order


class OrderCreateForm(forms.ModelForm):
    total = forms.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)

    class Meta:
        model = Order
        fields = [
            "first_name",
            "last_name",
            "email",
            "phone",
            "address",
            "city",
            "landmark",
            "postal_code",
            "country",
            "notes",
            "district_id",
            "payment_method",
        ]


class LineItemForm(forms.Form):
    name = forms.CharField(max_length=200)
    quantity = forms.IntegerField(min_value=1, required=False)
    price = forms.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    size = forms.CharField(max_length=50, required=False)
    variation = forms.CharField(max_length=100, required=False)
    product_id = forms.CharField(max_length=100, required=False, label=_("Product"))

    def clean_quantity(self):
        return self.cleaned_data["quantity"] or 1

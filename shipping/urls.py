from django.urls import path

from . import views

app_name = "shipping"
urlpatterns = [
    path("districts/", views.district_list, name="districts"),
    path("districts/suggest/", views.district_suggestions, name="suggest"),
    path("districts/quote/", views.district_quote, name="quote"),
]

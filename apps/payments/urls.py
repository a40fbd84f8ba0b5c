from django.urls import path  # type: ignore

from .views import StripeWebhookView

app_name = "payments"

urlpatterns = [
    path("stripe/", StripeWebhookView.as_view(), name="stripe-webhook"),
]

"""URL routing for the anonymous guest API."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import PropertyQuoteView, PublicBookingCancelView, PublicBookingCreateView, PublicBookingDetailView

app_name = "public"

urlpatterns = [
    path("bookings/", PublicBookingCreateView.as_view(), name="booking-create"),
    path("bookings/<str:code>/", PublicBookingDetailView.as_view(), name="booking-detail"),
    path("bookings/<str:code>/cancel/", PublicBookingCancelView.as_view(), name="booking-cancel"),
    path("properties/<int:property_id>/quote/", PropertyQuoteView.as_view(), name="property-quote"),
]

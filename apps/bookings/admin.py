"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "confirmation_code",
        "property",
        "guest_name",
        "status",
        "payment_status",
        "payment_issue",
        "check_in",
        "check_out",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "payment_status", "payment_issue", "check_in")
    search_fields = ("confirmation_code", "property__title", "guest_email", "guest_name")
    # Workflow and money change only through the command handlers
    readonly_fields = (
        "confirmation_code",
        "property",
        "check_in",
        "check_out",
        "status",
        "payment_status",
        "nights",
        "nightly_rate",
        "base_amount",
        "cleaning_fee",
        "total_amount",
        "deposit_amount",
        "balance_amount",
        "gateway_hold_ref",
        "gateway_charge_ref",
        "gateway_refund_ref",
        "hold_released_at",
        "deposit_paid",
        "deposit_paid_at",
        "balance_paid",
        "balance_paid_at",
        "balance_payment_method",
        "access_credential",
        "credential_assigned_at",
        "created_at",
        "updated_at",
    )

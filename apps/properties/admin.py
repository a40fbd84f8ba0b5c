"""Admin registrations for properties."""

from __future__ import annotations

from django.contrib import admin

from .models import Property


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "owner",
        "status",
        "base_price",
        "cleaning_fee",
        "deposit_fraction",
        "min_nights",
        "max_nights",
        "rotating_codes_enabled",
    )
    list_filter = ("status", "rotating_codes_enabled", "currency")
    search_fields = ("title", "address_line", "owner__email", "owner__username")
    readonly_fields = ("calendar_version", "created_at", "updated_at")

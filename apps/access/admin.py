"""Admin registrations for access credentials."""

from __future__ import annotations

from django.contrib import admin

from .models import AccessCredential, CredentialRotation


@admin.register(AccessCredential)
class AccessCredentialAdmin(admin.ModelAdmin):
    list_display = ("property", "order_index", "label", "masked_code", "is_active", "usage_count", "last_used_at")
    list_filter = ("is_active",)
    search_fields = ("property__title", "label")
    readonly_fields = ("usage_count", "last_used_at", "created_at", "updated_at")
    exclude = ("code",)


@admin.register(CredentialRotation)
class CredentialRotationAdmin(admin.ModelAdmin):
    list_display = ("property", "cursor", "updated_at")
    readonly_fields = ("cursor", "updated_at")

from __future__ import annotations

from django.contrib import admin

from .models import PaymentTransaction


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ("booking", "kind", "amount", "currency", "succeeded", "gateway_ref", "created_at")
    list_filter = ("kind", "succeeded")
    search_fields = ("booking__confirmation_code", "gateway_ref")
    readonly_fields = [f.name for f in PaymentTransaction._meta.fields]

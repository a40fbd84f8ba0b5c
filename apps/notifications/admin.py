from __future__ import annotations

from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "event_type", "booking_code", "title", "is_read", "created_at")
    list_filter = ("event_type", "is_read")
    search_fields = ("booking_code", "title", "user__email")

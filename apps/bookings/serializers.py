"""Serializers for the booking API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class BookingRequestSerializer(serializers.Serializer):
    """Guest's stay request. Date rules are checked by the availability checker, not here."""

    property_id = serializers.IntegerField(min_value=1)
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    guests_count = serializers.IntegerField(min_value=1, default=1)
    guest_name = serializers.CharField(max_length=255)
    guest_email = serializers.EmailField()
    guest_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    guest_message = serializers.CharField(required=False, allow_blank=True, default="", max_length=2000)


class QuoteQuerySerializer(serializers.Serializer):
    check_in = serializers.DateField()
    check_out = serializers.DateField()


class PublicBookingSerializer(serializers.ModelSerializer):
    """Redacted view for guests: no internal ids, no gateway references, nobody else's data."""

    property_title = serializers.ReadOnlyField(source="property.title")

    class Meta:
        model = Booking
        fields = [
            "confirmation_code",
            "property_title",
            "status",
            "payment_status",
            "check_in",
            "check_out",
            "nights",
            "guests_count",
            "guest_name",
            "nightly_rate",
            "base_amount",
            "cleaning_fee",
            "total_amount",
            "deposit_amount",
            "balance_amount",
            "currency",
            "deposit_paid",
            "balance_paid",
            "host_message",
            "created_at",
        ]
        read_only_fields = fields


class HostBookingSerializer(serializers.ModelSerializer):
    """Full booking view for the property owner."""

    property_id = serializers.ReadOnlyField(source="property.id")
    property_title = serializers.ReadOnlyField(source="property.title")
    access_credential = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "confirmation_code",
            "property_id",
            "property_title",
            "status",
            "payment_status",
            "payment_issue",
            "payment_issue_detail",
            "check_in",
            "check_out",
            "nights",
            "guests_count",
            "guest_name",
            "guest_email",
            "guest_phone",
            "guest_message",
            "nightly_rate",
            "base_amount",
            "cleaning_fee",
            "total_amount",
            "deposit_amount",
            "balance_amount",
            "currency",
            "deposit_paid",
            "deposit_paid_at",
            "balance_paid",
            "balance_paid_at",
            "balance_payment_method",
            "gateway_hold_ref",
            "hold_released_at",
            "access_credential",
            "credential_assigned_at",
            "host_message",
            "cancellation_reason",
            "cancelled_by",
            "cancelled_at",
            "approved_at",
            "declined_at",
            "confirmed_at",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_access_credential(self, obj: Booking):
        credential = obj.access_credential
        if credential is None:
            return None
        return {
            "id": credential.id,
            "label": credential.label,
            "code": credential.code,
            "order_index": credential.order_index,
        }


class DeclineSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=1000)


class MarkBalancePaidSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(
        choices=Booking.PaymentMethod.choices,
        default=Booking.PaymentMethod.CASH,
    )
    deposit_collected = serializers.BooleanField(required=False, default=False)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=500)


class GuestCancelSerializer(CancelSerializer):
    guest_email = serializers.EmailField()

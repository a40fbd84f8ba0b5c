"""Serializers for the host credential API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.models import Booking

from .models import MIN_CODE_LENGTH, AccessCredential


class AccessCredentialSerializer(serializers.ModelSerializer):
    """Credential as the owner sees it: code in clear text."""

    class Meta:
        model = AccessCredential
        fields = [
            "id",
            "code",
            "label",
            "order_index",
            "is_active",
            "usage_count",
            "last_used_at",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AccessCredentialWriteSerializer(serializers.ModelSerializer):
    code = serializers.CharField(min_length=MIN_CODE_LENGTH, max_length=64, trim_whitespace=True)

    class Meta:
        model = AccessCredential
        fields = ["code", "label", "is_active", "notes"]

    def validate_code(self, value: str) -> str:
        instance = self.instance
        if instance is not None and value != instance.code and instance.usage_count > 0:
            raise serializers.ValidationError(
                "Code has already been handed out; add a new credential instead."
            )
        return value


class CredentialReorderSerializer(serializers.Serializer):
    credential_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)

    def validate_credential_ids(self, value):  # type: ignore
        if len(set(value)) != len(value):
            raise serializers.ValidationError("Duplicate credential ids.")
        return value


class CredentialHistorySerializer(serializers.ModelSerializer):
    """One assignment: which booking got which code, and when."""

    credential_id = serializers.ReadOnlyField(source="access_credential.id")
    credential_label = serializers.ReadOnlyField(source="access_credential.label")

    class Meta:
        model = Booking
        fields = [
            "confirmation_code",
            "guest_name",
            "check_in",
            "check_out",
            "status",
            "credential_id",
            "credential_label",
            "credential_assigned_at",
        ]
        read_only_fields = fields

"""Access credential models."""

from __future__ import annotations

import builtins

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.infrastructure.encryption import mask_secret
from shared.infrastructure.fields import EncryptedCharField

MIN_CODE_LENGTH = 4


class AccessCredentialQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def rotation_order(self):
        return self.order_by("order_index", "id")


class AccessCredential(models.Model):
    """
    A door code or lock PIN belonging to one property.

    Never deleted while a booking references it; hosts deactivate instead.
    """

    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="access_credentials",
    )
    code = EncryptedCharField(
        max_length=64,
        help_text=_("Stored encrypted; decrypted only for the owner and the guest it is assigned to."),
    )
    label = models.CharField(max_length=100, blank=True)
    order_index = models.PositiveIntegerField()
    is_active = models.BooleanField(default=True)
    last_used_at = models.DateTimeField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AccessCredentialQuerySet.as_manager()

    class Meta:
        verbose_name = _("Access credential")
        verbose_name_plural = _("Access credentials")
        ordering = ["property", "order_index"]
        constraints = [
            models.UniqueConstraint(
                fields=["property", "order_index"],
                name="access_credential_unique_order",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "is_active", "order_index"], name="credential_rotation_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.label or 'Code'} #{self.order_index} ({mask_secret(self.code)})"

    @builtins.property
    def masked_code(self) -> str:
        return mask_secret(self.code)


class CredentialRotation(models.Model):
    """Per-property rotation cursor. Created on first assignment."""

    property = models.OneToOneField(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="credential_rotation",
    )
    cursor = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Credential rotation")
        verbose_name_plural = _("Credential rotations")

    def __str__(self) -> str:
        return f"Rotation for property {self.property_id} at {self.cursor}"

"""Payment ledger."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class PaymentTransaction(models.Model):
    """One row per gateway call. Audit trail only; the booking's payment fields are authoritative."""

    class Kind(models.TextChoices):
        HOLD = "hold", _("Hold")
        CAPTURE = "capture", _("Capture")
        RELEASE = "release", _("Release")
        REFUND = "refund", _("Refund")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payment_transactions",
    )
    kind = models.CharField(max_length=20, choices=Kind.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3)
    succeeded = models.BooleanField(default=False)
    gateway_ref = models.CharField(max_length=255, blank=True)
    error_message = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment transaction")
        verbose_name_plural = _("Payment transactions")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["booking", "kind"], name="payment_tx_booking_kind_idx"),
        ]

    def __str__(self) -> str:
        result = "ok" if self.succeeded else "failed"
        return f"{self.kind} {self.amount} {self.currency} ({result})"

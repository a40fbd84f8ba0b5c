"""Booking models for the direct-booking engine."""

from __future__ import annotations

import builtins
import secrets
import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.base import EventRecorder
from shared.domain.value_objects import DateRange, Money

from .domain.exceptions import MoneyDrift
from .domain.state_machine import (
    ACTIVE_STATUSES,
    BookingStatus,
    PaymentStatus,
    validate_combination,
)

STATUS_CHOICES = [(s.value, s.name.title()) for s in BookingStatus]
PAYMENT_STATUS_CHOICES = [(s.value, s.name.title()) for s in PaymentStatus]


class BookingQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status__in=[s.value for s in ACTIVE_STATUSES])

    def overlapping(self, dates: DateRange):
        # Half-open ranges: a checkout on day X does not block a check-in on day X
        return self.filter(check_in__lt=dates.end_date, check_out__gt=dates.start_date)

    def for_owner(self, user):
        return self.filter(property__owner=user)


class Booking(EventRecorder, models.Model):
    """A guest's stay request and everything that happened to it afterwards."""

    class CancelledBy(models.TextChoices):
        GUEST = "guest", _("Guest")
        HOST = "host", _("Host")
        SYSTEM = "system", _("System")

    class PaymentMethod(models.TextChoices):
        CASH = "cash", _("Cash")
        CARD = "card", _("Card")
        BANK_TRANSFER = "bank_transfer", _("Bank transfer")
        OTHER = "other", _("Other")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    confirmation_code = models.CharField(max_length=20, unique=True, editable=False)
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="bookings",
    )

    # Stay
    check_in = models.DateField()
    check_out = models.DateField()
    nights = models.PositiveSmallIntegerField()
    guests_count = models.PositiveSmallIntegerField(default=1)
    guest_name = models.CharField(max_length=255)
    guest_email = models.EmailField()
    guest_phone = models.CharField(max_length=32, blank=True)
    guest_message = models.TextField(blank=True)

    # Money, frozen at creation
    nightly_rate = models.DecimalField(max_digits=10, decimal_places=2)
    base_amount = models.DecimalField(max_digits=12, decimal_places=2)
    cleaning_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    deposit_amount = models.DecimalField(max_digits=12, decimal_places=2)
    balance_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    deposit_paid = models.BooleanField(default=False)
    deposit_paid_at = models.DateTimeField(null=True, blank=True)
    balance_paid = models.BooleanField(default=False)
    balance_paid_at = models.DateTimeField(null=True, blank=True)
    balance_payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        blank=True,
    )

    # Workflow and money are tracked separately
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=BookingStatus.REQUESTED.value,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default=PaymentStatus.PENDING.value,
    )
    payment_issue = models.BooleanField(
        default=False,
        help_text=_("Payment needs manual follow-up by the host."),
    )
    payment_issue_detail = models.CharField(max_length=500, blank=True)

    # Gateway linkage; the hold reference is set once and never cleared
    gateway_hold_ref = models.CharField(max_length=255, null=True, blank=True, unique=True)
    gateway_charge_ref = models.CharField(max_length=255, blank=True)
    gateway_refund_ref = models.CharField(max_length=255, blank=True)
    hold_released_at = models.DateTimeField(null=True, blank=True)

    # Access
    access_credential = models.ForeignKey(
        "access.AccessCredential",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bookings",
    )
    credential_assigned_at = models.DateTimeField(null=True, blank=True)

    # Audit
    host_message = models.TextField(blank=True)
    cancellation_reason = models.CharField(max_length=500, blank=True)
    cancelled_by = models.CharField(max_length=20, choices=CancelledBy.choices, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    declined_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    pre_stay_processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "check_in", "check_out"], name="booking_property_dates_idx"),
            models.Index(fields=["status", "check_in"], name="booking_status_checkin_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.confirmation_code} ({self.status})"

    @staticmethod
    def generate_confirmation_code() -> str:
        return f"{settings.BOOKING_CONFIRMATION_PREFIX}-{secrets.token_hex(4).upper()}"

    @builtins.property
    def dates(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    @builtins.property
    def deposit(self) -> Money:
        return Money(self.deposit_amount, self.currency)

    @builtins.property
    def balance(self) -> Money:
        return Money(self.balance_amount, self.currency)

    @builtins.property
    def has_open_hold(self) -> bool:
        """A hold was opened and is neither captured nor released."""
        return bool(self.gateway_hold_ref) and not self.deposit_paid and self.hold_released_at is None

    def flag_payment_issue(self, detail: str) -> None:
        self.payment_issue = True
        self.payment_issue_detail = detail[:500]

    def validate_integrity(self) -> None:
        """Reject states no transition may produce."""
        if Decimal(self.deposit_amount) + Decimal(self.balance_amount) != Decimal(self.total_amount):
            raise MoneyDrift(self.deposit_amount, self.balance_amount, self.total_amount)
        validate_combination(self.status, self.payment_status)

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.confirmation_code:
            self.confirmation_code = self.generate_confirmation_code()
        if self.check_in and self.check_out:
            self.nights = (self.check_out - self.check_in).days
        self.validate_integrity()
        super().save(*args, **kwargs)

    def event_payload(self) -> dict:
        """Denormalized fields shared by every booking event."""
        return {
            "aggregate_id": self.id,
            "booking_id": self.id,
            "confirmation_code": self.confirmation_code,
            "property_id": self.property_id,
            "property_title": self.property.title,
            "guest_name": self.guest_name,
            "guest_email": self.guest_email,
            "host_email": self.property.owner.email,
            "check_in": self.check_in,
            "check_out": self.check_out,
            "nights": self.nights,
            "total_amount": self.total_amount,
            "deposit_amount": self.deposit_amount,
            "balance_amount": self.balance_amount,
            "currency": self.currency,
        }

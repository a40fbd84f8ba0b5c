"""Property records referenced by the booking engine.

The booking core only reads these rows: the nightly rate card, the
stay-length bounds, the deposit fraction and the rotation flag. Properties
are maintained by hosts through the Django admin.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import SUPPORTED_CURRENCIES

CURRENCY_CHOICES = [(code, code) for code in SUPPORTED_CURRENCIES]


def default_deposit_fraction() -> Decimal:
    return Decimal(str(settings.BOOKING_DEPOSIT_FRACTION))


def default_pre_stay_notice_days() -> int:
    return settings.BOOKING_PRE_STAY_WINDOW_DAYS


class Property(models.Model):
    """A rental unit bookable directly by guests."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="properties",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    address_line = models.CharField(max_length=255, blank=True)

    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Nightly rate."),
    )
    cleaning_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="USD")
    deposit_fraction = models.DecimalField(
        max_digits=4,
        decimal_places=3,
        default=default_deposit_fraction,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
        help_text=_("Share of the stay total charged as deposit on approval."),
    )
    min_nights = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    max_nights = models.PositiveSmallIntegerField(default=30, validators=[MinValueValidator(1)])
    max_guests = models.PositiveSmallIntegerField(default=2, validators=[MinValueValidator(1)])

    rotating_codes_enabled = models.BooleanField(
        default=False,
        help_text=_("Hand out the next access code from the rotation to every stay."),
    )
    pre_stay_notice_days = models.PositiveSmallIntegerField(
        default=default_pre_stay_notice_days,
        help_text=_("Days before check-in when the access code and arrival notice go out."),
    )

    # Bumped on every booking insertion; compare-and-swap token for creation.
    calendar_version = models.PositiveIntegerField(default=0, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Property")
        verbose_name_plural = _("Properties")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "status"], name="property_owner_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_nights__gte=models.F("min_nights")),
                name="property_stay_bounds_valid",
            ),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def is_bookable(self) -> bool:
        return self.status == self.Status.ACTIVE

    def deactivate(self) -> None:
        if self.status == self.Status.ACTIVE:
            self.status = self.Status.INACTIVE
            self.updated_at = timezone.now()
            self.save(update_fields=["status", "updated_at"])

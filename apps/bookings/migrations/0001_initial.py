import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("access", "0001_initial"),
        ("properties", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("confirmation_code", models.CharField(editable=False, max_length=20, unique=True)),
                ("check_in", models.DateField()),
                ("check_out", models.DateField()),
                ("nights", models.PositiveSmallIntegerField()),
                ("guests_count", models.PositiveSmallIntegerField(default=1)),
                ("guest_name", models.CharField(max_length=255)),
                ("guest_email", models.EmailField(max_length=254)),
                ("guest_phone", models.CharField(blank=True, max_length=32)),
                ("guest_message", models.TextField(blank=True)),
                ("nightly_rate", models.DecimalField(decimal_places=2, max_digits=10)),
                ("base_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("cleaning_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("deposit_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("balance_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("deposit_paid", models.BooleanField(default=False)),
                ("deposit_paid_at", models.DateTimeField(blank=True, null=True)),
                ("balance_paid", models.BooleanField(default=False)),
                ("balance_paid_at", models.DateTimeField(blank=True, null=True)),
                ("balance_payment_method", models.CharField(blank=True, choices=[("cash", "Cash"), ("card", "Card"), ("bank_transfer", "Bank transfer"), ("other", "Other")], max_length=20)),
                ("status", models.CharField(choices=[("requested", "Requested"), ("approved", "Approved"), ("declined", "Declined"), ("confirmed", "Confirmed"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="requested", max_length=20)),
                ("payment_status", models.CharField(choices=[("pending", "Pending"), ("partial", "Partial"), ("paid", "Paid"), ("refunded", "Refunded")], default="pending", max_length=20)),
                ("payment_issue", models.BooleanField(default=False, help_text="Payment needs manual follow-up by the host.")),
                ("payment_issue_detail", models.CharField(blank=True, max_length=500)),
                ("gateway_hold_ref", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("gateway_charge_ref", models.CharField(blank=True, max_length=255)),
                ("gateway_refund_ref", models.CharField(blank=True, max_length=255)),
                ("hold_released_at", models.DateTimeField(blank=True, null=True)),
                ("credential_assigned_at", models.DateTimeField(blank=True, null=True)),
                ("host_message", models.TextField(blank=True)),
                ("cancellation_reason", models.CharField(blank=True, max_length=500)),
                ("cancelled_by", models.CharField(blank=True, choices=[("guest", "Guest"), ("host", "Host"), ("system", "System")], max_length=20)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("declined_at", models.DateTimeField(blank=True, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("pre_stay_processed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("access_credential", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="access.accesscredential")),
                ("property", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="properties.property")),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["property", "check_in", "check_out"], name="booking_property_dates_idx"),
                    models.Index(fields=["status", "check_in"], name="booking_status_checkin_idx"),
                ],
                "constraints": [models.CheckConstraint(condition=models.Q(("check_out__gt", models.F("check_in"))), name="booking_valid_dates")],
            },
        ),
    ]

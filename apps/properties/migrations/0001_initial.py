from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import apps.properties.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("active", "Active"), ("inactive", "Inactive")], default="active", max_length=20)),
                ("address_line", models.CharField(blank=True, max_length=255)),
                ("base_price", models.DecimalField(decimal_places=2, help_text="Nightly rate.", max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal("0.00"))])),
                ("cleaning_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal("0.00"))])),
                ("currency", models.CharField(choices=[("USD", "USD"), ("EUR", "EUR"), ("GBP", "GBP"), ("CAD", "CAD"), ("AUD", "AUD")], default="USD", max_length=3)),
                ("deposit_fraction", models.DecimalField(decimal_places=3, default=apps.properties.models.default_deposit_fraction, help_text="Share of the stay total charged as deposit on approval.", max_digits=4, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("1"))])),
                ("min_nights", models.PositiveSmallIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("max_nights", models.PositiveSmallIntegerField(default=30, validators=[django.core.validators.MinValueValidator(1)])),
                ("max_guests", models.PositiveSmallIntegerField(default=2, validators=[django.core.validators.MinValueValidator(1)])),
                ("rotating_codes_enabled", models.BooleanField(default=False, help_text="Hand out the next access code from the rotation to every stay.")),
                ("pre_stay_notice_days", models.PositiveSmallIntegerField(default=apps.properties.models.default_pre_stay_notice_days, help_text="Days before check-in when the access code and arrival notice go out.")),
                ("calendar_version", models.PositiveIntegerField(default=0, editable=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="properties", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Property",
                "verbose_name_plural": "Properties",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["owner", "status"], name="property_owner_status_idx")],
                "constraints": [models.CheckConstraint(condition=models.Q(("max_nights__gte", models.F("min_nights"))), name="property_stay_bounds_valid")],
            },
        ),
    ]

import django.db.models.deletion
from django.db import migrations, models

import shared.infrastructure.fields


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("properties", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="AccessCredential",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", shared.infrastructure.fields.EncryptedCharField(help_text="Stored encrypted; decrypted only for the owner and the guest it is assigned to.", max_length=64)),
                ("label", models.CharField(blank=True, max_length=100)),
                ("order_index", models.PositiveIntegerField()),
                ("is_active", models.BooleanField(default=True)),
                ("last_used_at", models.DateTimeField(blank=True, null=True)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("property", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="access_credentials", to="properties.property")),
            ],
            options={
                "verbose_name": "Access credential",
                "verbose_name_plural": "Access credentials",
                "ordering": ["property", "order_index"],
                "indexes": [models.Index(fields=["property", "is_active", "order_index"], name="credential_rotation_idx")],
                "constraints": [models.UniqueConstraint(fields=("property", "order_index"), name="access_credential_unique_order")],
            },
        ),
        migrations.CreateModel(
            name="CredentialRotation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("cursor", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("property", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="credential_rotation", to="properties.property")),
            ],
            options={
                "verbose_name": "Credential rotation",
                "verbose_name_plural": "Credential rotations",
            },
        ),
    ]

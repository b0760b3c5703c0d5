import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(db_index=True, max_length=200)),
                ("description", models.TextField(max_length=5000)),
                (
                    "event_type",
                    models.CharField(
                        choices=[("normal", "Normal"), ("merchandise", "Merchandise")],
                        db_index=True,
                        default="normal",
                        max_length=20,
                    ),
                ),
                (
                    "eligibility",
                    models.CharField(
                        choices=[("all", "Everyone"), ("iiit-only", "IIIT only"), ("non-iiit-only", "Non-IIIT only")],
                        default="all",
                        max_length=20,
                    ),
                ),
                ("tags", models.JSONField(blank=True, default=list)),
                ("registration_deadline", models.DateTimeField(blank=True, null=True)),
                ("event_start_date", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("event_end_date", models.DateTimeField(blank=True, null=True)),
                (
                    "registration_limit",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Leave empty for unlimited.",
                        null=True,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "current_registrations",
                    models.PositiveIntegerField(
                        default=0, editable=False, help_text="Number of confirmed registrations."
                    ),
                ),
                (
                    "registration_fee",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "custom_form",
                    models.JSONField(blank=True, default=list, help_text="Form fields for normal events."),
                ),
                ("item_details", models.TextField(blank=True, default="", max_length=2000)),
                (
                    "purchase_limit",
                    models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "total_stock",
                    models.PositiveIntegerField(default=0, editable=False, help_text="Sum of the variant stock."),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("published", "Published"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("venue", models.CharField(blank=True, default="", max_length=255)),
                ("image_url", models.URLField(blank=True, default="", max_length=1000)),
                ("external_links", models.JSONField(blank=True, default=list)),
                (
                    "organizer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="organized_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["event_start_date", "-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("registration_limit__isnull", True))
                        | models.Q(("current_registrations__lte", models.F("registration_limit"))),
                        name="event_registrations_within_limit",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="MerchandiseVariant",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(max_length=100)),
                ("size", models.CharField(blank=True, default="", max_length=20)),
                ("color", models.CharField(blank=True, default="", max_length=50)),
                ("additional_info", models.CharField(blank=True, default="", max_length=255)),
                ("stock", models.PositiveIntegerField(default=0)),
                ("price_modifier", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="variants", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("ticket_id", models.CharField(editable=False, max_length=32, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                            ("awaiting_approval", "Awaiting approval"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("payment_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("form_responses", models.JSONField(blank=True, default=dict)),
                ("variant_name", models.CharField(blank=True, default="", max_length=100)),
                ("quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("total_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("payment_proof_url", models.URLField(blank=True, default="", max_length=1000)),
                ("payment_proof_uploaded_at", models.DateTimeField(blank=True, null=True)),
                ("payment_proof_note", models.TextField(blank=True, default="", max_length=1000)),
                (
                    "approval_status",
                    models.CharField(
                        blank=True,
                        choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")],
                        max_length=20,
                        null=True,
                    ),
                ),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("review_comment", models.TextField(blank=True, default="", max_length=1000)),
                (
                    "qr_code",
                    models.TextField(blank=True, default="", help_text="PNG data URL of the ticket QR code."),
                ),
                ("attended", models.BooleanField(db_index=True, default=False)),
                ("attended_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True, default="", max_length=1000)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="events.event"
                    ),
                ),
                (
                    "participant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="registrations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="registrations",
                        to="events.merchandisevariant",
                    ),
                ),
                (
                    "reviewed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_registrations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "checked_in_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="checked_in_registrations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["event", "status"], name="ix_registration_event_status")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("event", "participant"), name="unique_event_participant_registration"
                    )
                ],
            },
        ),
    ]

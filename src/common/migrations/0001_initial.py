import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies: list[tuple[str, str]] = []

    operations = [
        migrations.CreateModel(
            name="EmailLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("to", models.EmailField(db_index=True, max_length=254)),
                ("subject", models.TextField(db_index=True)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("general", "General"),
                            ("ticket", "Ticket"),
                            ("order_received", "Order received"),
                            ("order_approved", "Order approved"),
                            ("order_rejected", "Order rejected"),
                            ("organizer_credentials", "Organizer credentials"),
                        ],
                        db_index=True,
                        default="general",
                        max_length=30,
                    ),
                ),
                ("attachment_count", models.PositiveSmallIntegerField(default=0)),
                ("sent_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("compressed_body", models.BinaryField(blank=True, null=True)),
                ("compressed_html", models.BinaryField(blank=True, null=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["to", "sent_at"], name="ix_emaillog_to_sentat"),
                    models.Index(fields=["kind", "sent_at"], name="ix_emaillog_kind_sentat"),
                ],
            },
        ),
    ]

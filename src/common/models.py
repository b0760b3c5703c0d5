import gzip
import typing as t
import uuid

from django.db import models


class TimeStampedModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Override the save method to call full_clean before saving."""
        self.full_clean()
        super().save(*args, **kwargs)


class EmailLog(TimeStampedModel):
    class Kind(models.TextChoices):
        GENERAL = "general", "General"
        TICKET = "ticket", "Ticket"
        ORDER_RECEIVED = "order_received", "Order received"
        ORDER_APPROVED = "order_approved", "Order approved"
        ORDER_REJECTED = "order_rejected", "Order rejected"
        ORGANIZER_CREDENTIALS = "organizer_credentials", "Organizer credentials"

    to = models.EmailField(db_index=True)
    subject = models.TextField(db_index=True)
    kind = models.CharField(max_length=30, choices=Kind.choices, default=Kind.GENERAL, db_index=True)
    attachment_count = models.PositiveSmallIntegerField(default=0)
    sent_at = models.DateTimeField(auto_now_add=True, db_index=True)
    compressed_body = models.BinaryField(null=True, blank=True)
    compressed_html = models.BinaryField(null=True, blank=True)

    def set_body(self, body: str) -> None:
        """Compress and set text."""
        self.compressed_body = gzip.compress(body.encode())

    def set_html(self, html_body: str) -> None:
        """Compress and set html."""
        self.compressed_html = gzip.compress(html_body.encode())

    @property
    def body(self) -> str | None:
        """Decompress and return text."""
        if self.compressed_body:
            return gzip.decompress(self.compressed_body).decode()
        return None

    @property
    def html(self) -> str | None:
        """Decompress and return html."""
        if self.compressed_html:
            return gzip.decompress(self.compressed_html).decode()
        return None

    def __str__(self) -> str:
        return f"{self.get_kind_display()} email to: {self.to}"

    class Meta:
        indexes = [
            models.Index(fields=["to", "sent_at"], name="ix_emaillog_to_sentat"),
            models.Index(fields=["kind", "sent_at"], name="ix_emaillog_kind_sentat"),
        ]

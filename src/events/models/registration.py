import typing as t
from decimal import Decimal

from django.db import models

from accounts.models import FelicityUser
from common.models import TimeStampedModel

from .event import Event, MerchandiseVariant


class RegistrationQuerySet(models.QuerySet["Registration"]):
    def active(self) -> t.Self:
        """Registrations that hold (or may still hold) a seat: confirmed or pending."""
        return self.filter(status__in=Registration.ACTIVE_STATUSES)

    def confirmed(self) -> t.Self:
        """Confirmed registrations."""
        return self.filter(status=Registration.Status.CONFIRMED)

    def awaiting_approval(self) -> t.Self:
        """Merchandise orders whose payment proof still has to be reviewed."""
        return self.filter(
            status=Registration.Status.PENDING, payment_status=Registration.PaymentStatus.AWAITING_APPROVAL
        )

    def full(self) -> t.Self:
        """Join everything the API schemas need."""
        return self.select_related("event", "participant", "variant", "reviewed_by", "checked_in_by")


class RegistrationManager(models.Manager["Registration"]):
    def get_queryset(self) -> RegistrationQuerySet:
        """Get the custom queryset."""
        return RegistrationQuerySet(self.model, using=self._db)

    def active(self) -> RegistrationQuerySet:
        """Registrations that hold (or may still hold) a seat."""
        return self.get_queryset().active()

    def full(self) -> RegistrationQuerySet:
        """Join everything the API schemas need."""
        return self.get_queryset().full()


class Registration(TimeStampedModel):
    """A participant's registration for an event. Doubles as the ticket once confirmed.

    Registrations are never deleted. Cancellation and rejection are terminal statuses. Attendance is
    tracked by ``attended``/``attended_at`` and does not change the status.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        CANCELLED = "cancelled", "Cancelled"
        REJECTED = "rejected", "Rejected"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"
        AWAITING_APPROVAL = "awaiting_approval", "Awaiting approval"

    class ApprovalStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    ACTIVE_STATUSES = (Status.CONFIRMED, Status.PENDING)

    ticket_id = models.CharField(max_length=32, unique=True, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="registrations")
    participant = models.ForeignKey(FelicityUser, on_delete=models.CASCADE, related_name="registrations")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)

    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )
    payment_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))

    form_responses = models.JSONField(default=dict, blank=True)

    variant = models.ForeignKey(
        MerchandiseVariant, on_delete=models.SET_NULL, null=True, blank=True, related_name="registrations"
    )
    variant_name = models.CharField(max_length=100, blank=True, default="")
    quantity = models.PositiveIntegerField(null=True, blank=True)
    total_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    payment_proof_url = models.URLField(max_length=1000, blank=True, default="")
    payment_proof_uploaded_at = models.DateTimeField(null=True, blank=True)
    payment_proof_note = models.TextField(blank=True, default="", max_length=1000)

    approval_status = models.CharField(max_length=20, choices=ApprovalStatus.choices, null=True, blank=True)
    reviewed_by = models.ForeignKey(
        FelicityUser, on_delete=models.SET_NULL, null=True, blank=True, related_name="reviewed_registrations"
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_comment = models.TextField(blank=True, default="", max_length=1000)

    qr_code = models.TextField(blank=True, default="", help_text="PNG data URL of the ticket QR code.")

    attended = models.BooleanField(default=False, db_index=True)
    attended_at = models.DateTimeField(null=True, blank=True)
    checked_in_by = models.ForeignKey(
        FelicityUser, on_delete=models.SET_NULL, null=True, blank=True, related_name="checked_in_registrations"
    )

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, default="", max_length=1000)

    objects = RegistrationManager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["event", "participant"], name="unique_event_participant_registration"),
        ]
        indexes = [
            models.Index(fields=["event", "status"], name="ix_registration_event_status"),
        ]

    def __str__(self) -> str:
        return f"{self.ticket_id} ({self.status})"

    @property
    def is_merchandise_order(self) -> bool:
        """Whether this registration is a merchandise purchase."""
        return self.quantity is not None

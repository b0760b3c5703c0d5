import typing as t
from datetime import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q, Subquery, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from accounts.models import FelicityUser
from common.models import TimeStampedModel


class EventQuerySet(models.QuerySet["Event"]):
    def published(self) -> t.Self:
        """Events participants can browse."""
        return self.filter(status=Event.EventStatus.PUBLISHED)

    def owned_by(self, user: FelicityUser) -> t.Self:
        """Events created by the given organizer."""
        return self.filter(organizer=user)

    def with_organizer(self) -> t.Self:
        """Join the organizer and its profile."""
        return self.select_related("organizer", "organizer__organizer_profile")

    def finished(self, now: datetime | None = None) -> t.Self:
        """Published events whose end date has passed."""
        now = now or timezone.now()
        return self.published().filter(event_end_date__isnull=False, event_end_date__lte=now)


class EventManager(models.Manager["Event"]):
    def get_queryset(self) -> EventQuerySet:
        """Get the custom queryset."""
        return EventQuerySet(self.model, using=self._db)

    def published(self) -> EventQuerySet:
        """Events participants can browse."""
        return self.get_queryset().published()

    def owned_by(self, user: FelicityUser) -> EventQuerySet:
        """Events created by the given organizer."""
        return self.get_queryset().owned_by(user)


class Event(TimeStampedModel):
    class EventType(models.TextChoices):
        NORMAL = "normal", "Normal"
        MERCHANDISE = "merchandise", "Merchandise"

    class Eligibility(models.TextChoices):
        ALL = "all", "Everyone"
        IIIT_ONLY = "iiit-only", "IIIT only"
        NON_IIIT_ONLY = "non-iiit-only", "Non-IIIT only"

    class EventStatus(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"
        CANCELLED = "cancelled", "Cancelled"
        COMPLETED = "completed", "Completed"

    organizer = models.ForeignKey(FelicityUser, on_delete=models.CASCADE, related_name="organized_events")
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(max_length=5000)
    event_type = models.CharField(max_length=20, choices=EventType.choices, default=EventType.NORMAL, db_index=True)
    eligibility = models.CharField(max_length=20, choices=Eligibility.choices, default=Eligibility.ALL)
    tags = models.JSONField(default=list, blank=True)

    registration_deadline = models.DateTimeField(null=True, blank=True)
    event_start_date = models.DateTimeField(null=True, blank=True, db_index=True)
    event_end_date = models.DateTimeField(null=True, blank=True)

    registration_limit = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)], help_text="Leave empty for unlimited."
    )
    current_registrations = models.PositiveIntegerField(
        default=0, editable=False, help_text="Number of confirmed registrations."
    )
    registration_fee = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0"), validators=[MinValueValidator(Decimal("0"))]
    )

    custom_form = models.JSONField(default=list, blank=True, help_text="Form fields for normal events.")

    item_details = models.TextField(blank=True, default="", max_length=2000)
    purchase_limit = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    total_stock = models.PositiveIntegerField(default=0, editable=False, help_text="Sum of the variant stock.")

    status = models.CharField(max_length=20, choices=EventStatus.choices, default=EventStatus.DRAFT, db_index=True)
    venue = models.CharField(max_length=255, blank=True, default="")
    image_url = models.URLField(max_length=1000, blank=True, default="")
    external_links = models.JSONField(default=list, blank=True)

    objects = EventManager()

    class Meta:
        ordering = ["event_start_date", "-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(registration_limit__isnull=True) | Q(current_registrations__lte=F("registration_limit")),
                name="event_registrations_within_limit",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        """Dates must be complete and ordered once an event leaves the draft state.

        The fee must also keep every variant price at zero or above.
        """
        if self.status != self.EventStatus.DRAFT:
            validate_event_dates(self.registration_deadline, self.event_start_date, self.event_end_date)
        if (
            not self._state.adding
            and self.registration_fee is not None
            and self.variants.filter(price_modifier__lt=-self.registration_fee).exists()
        ):
            raise ValidationError({"registration_fee": "The fee would make a variant price negative."})

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Keep total_stock in sync with the variants."""
        if not self._state.adding and self.event_type == self.EventType.MERCHANDISE:
            self.total_stock = self.variants.aggregate(total=Coalesce(Sum("stock"), 0))["total"]
            update_fields = kwargs.get("update_fields")
            if update_fields is not None and "total_stock" not in update_fields:
                kwargs["update_fields"] = [*update_fields, "total_stock"]
        super().save(*args, **kwargs)

    def refresh_total_stock(self) -> None:
        """Recompute total_stock in the database and reload it.

        Must be called inside the transaction that mutated the variant stock.
        """
        variant_total = (
            MerchandiseVariant.objects.filter(event=models.OuterRef("pk"))
            .values("event")
            .annotate(total=Sum("stock"))
            .values("total")
        )
        Event.objects.filter(pk=self.pk).update(total_stock=Coalesce(Subquery(variant_total), 0))
        self.refresh_from_db(fields=["total_stock"])

    @property
    def is_merchandise(self) -> bool:
        """Whether this event sells merchandise."""
        return self.event_type == self.EventType.MERCHANDISE

    def is_ongoing(self, now: datetime | None = None) -> bool:
        """A published event is ongoing between its start and end date."""
        now = now or timezone.now()
        return (
            self.status == self.EventStatus.PUBLISHED
            and self.event_start_date is not None
            and self.event_end_date is not None
            and self.event_start_date <= now < self.event_end_date
        )


def validate_event_dates(
    registration_deadline: datetime | None, event_start_date: datetime | None, event_end_date: datetime | None
) -> None:
    """Raise a ValidationError unless all three dates are set and deadline < start < end."""
    if registration_deadline is None or event_start_date is None or event_end_date is None:
        missing = {
            field: f"{label} is required."
            for field, label, value in (
                ("registration_deadline", "Registration deadline", registration_deadline),
                ("event_start_date", "Event start date", event_start_date),
                ("event_end_date", "Event end date", event_end_date),
            )
            if value is None
        }
        raise ValidationError(missing)
    errors: dict[str, str] = {}
    if registration_deadline >= event_start_date:
        errors["registration_deadline"] = "Registration deadline must be before the event start date."
    if event_start_date >= event_end_date:
        errors["event_end_date"] = "Event end date must be after the event start date."
    if errors:
        raise ValidationError(errors)


class MerchandiseVariant(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="variants")
    name = models.CharField(max_length=100)
    size = models.CharField(max_length=20, blank=True, default="")
    color = models.CharField(max_length=50, blank=True, default="")
    additional_info = models.CharField(max_length=255, blank=True, default="")
    stock = models.PositiveIntegerField(default=0)
    price_modifier = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.event.name} - {self.name}"

    def clean(self) -> None:
        """A variant never sells below zero."""
        if self.event_id and self.price_modifier is not None and self.unit_price < 0:
            raise ValidationError({"price_modifier": "The price modifier cannot make the variant price negative."})

    @property
    def unit_price(self) -> Decimal:
        """The event fee plus this variant's price modifier."""
        return self.event.registration_fee + self.price_modifier

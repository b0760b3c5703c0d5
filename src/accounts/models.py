import re
import typing as t
import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models

from common.models import TimeStampedModel


class FelicityUserQueryset(models.QuerySet["FelicityUser"]):
    """Queryset for FelicityUser."""

    def participants(self) -> t.Self:
        """Only participant accounts."""
        return self.filter(role=FelicityUser.Role.PARTICIPANT)

    def organizers(self) -> t.Self:
        """Only organizer accounts."""
        return self.filter(role=FelicityUser.Role.ORGANIZER)


class FelicityUserManager(UserManager["FelicityUser"]):
    def get_queryset(self) -> FelicityUserQueryset:
        """Get queryset for FelicityUser."""
        return FelicityUserQueryset(self.model)

    def create_superuser(  # type: ignore[override]
        self, username: str, email: str | None = None, password: str | None = None, **extra_fields: t.Any
    ) -> "FelicityUser":
        """Superusers are platform admins."""
        extra_fields.setdefault("role", FelicityUser.Role.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class FelicityUser(AbstractUser):
    class Role(models.TextChoices):
        PARTICIPANT = "participant", "Participant"
        ORGANIZER = "organizer", "Organizer"
        ADMIN = "admin", "Admin"

    class ParticipantType(models.TextChoices):
        IIIT = "iiit", "IIIT"
        NON_IIIT = "non-iiit", "Non-IIIT"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.PARTICIPANT, db_index=True)
    participant_type = models.CharField(
        max_length=10,
        choices=ParticipantType.choices,
        null=True,
        blank=True,
        help_text="Only set for participants. Derived from the email domain at sign-up.",
    )
    contact_number = models.CharField(max_length=20, blank=True, default="")
    college_name = models.CharField(max_length=255, blank=True, default="")

    objects = FelicityUserManager()  # type: ignore[misc]

    class Meta:
        ordering = ["username"]

    @property
    def display_name(self) -> str:
        """Display name."""
        return self.get_display_name()

    def get_display_name(self) -> str:
        """Returns the organizer name for organizers, else the full name with a username fallback."""
        if self.role == self.Role.ORGANIZER and hasattr(self, "organizer_profile"):
            return self.organizer_profile.name
        return self.get_full_name() or re.sub(r"(\W|_)+", " ", self.username.split("@")[0]).title()

    @property
    def is_participant(self) -> bool:
        """Participants register for events."""
        return self.role == self.Role.PARTICIPANT

    @property
    def is_organizer(self) -> bool:
        """Organizers own and run events."""
        return self.role == self.Role.ORGANIZER

    @property
    def is_platform_admin(self) -> bool:
        """Admins provision organizers."""
        return self.role == self.Role.ADMIN or self.is_superuser


def participant_type_for_email(email: str) -> FelicityUser.ParticipantType:
    """Derive the participant type from the email domain.

    Any address on one of the configured IIIT domains (or a subdomain of one) is an IIIT participant.
    """
    domain = email.rsplit("@", 1)[-1].strip().lower()
    for iiit_domain in settings.IIIT_EMAIL_DOMAINS:
        iiit_domain = iiit_domain.strip().lower()
        if domain == iiit_domain or domain.endswith(f".{iiit_domain}"):
            return FelicityUser.ParticipantType.IIIT
    return FelicityUser.ParticipantType.NON_IIIT


class OrganizerProfile(TimeStampedModel):
    class Category(models.TextChoices):
        TECHNICAL = "technical", "Technical"
        CULTURAL = "cultural", "Cultural"
        SPORTS = "sports", "Sports"
        LITERARY = "literary", "Literary"
        GAMING = "gaming", "Gaming"
        OTHER = "other", "Other"

    user = models.OneToOneField(FelicityUser, on_delete=models.CASCADE, related_name="organizer_profile")
    name = models.CharField(max_length=200)
    category = models.CharField(max_length=20, choices=Category.choices, default=Category.OTHER)
    description = models.TextField(blank=True, default="", max_length=2000)
    contact_email = models.EmailField()
    contact_number = models.CharField(max_length=20, blank=True, default="")
    discord_webhook = models.URLField(
        blank=True, default="", help_text="Discord webhook that gets an announcement when an event is published."
    )
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        FelicityUser, on_delete=models.SET_NULL, null=True, blank=True, related_name="created_organizers"
    )

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

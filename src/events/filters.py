from uuid import UUID

from django.db.models import Q
from django.utils import timezone
from ninja import Field, FilterSchema

from events.models import Event, Registration


class EventFilterSchema(FilterSchema):
    event_type: Event.EventType | None = None
    eligibility: Event.Eligibility | None = None
    organizer: UUID | None = Field(None, q="organizer_id")  # type: ignore[call-overload]
    upcoming: bool | None = None

    def filter_upcoming(self, upcoming: bool | None) -> Q:
        """Helper to find events that have not ended yet."""
        if upcoming:
            return Q(event_end_date__gte=timezone.now()) | Q(event_end_date__isnull=True)
        return Q()


class RegistrationFilterSchema(FilterSchema):
    status: Registration.Status | None = None
    event_type: Event.EventType | None = Field(None, q="event__event_type")  # type: ignore[call-overload]
    attended: bool | None = None

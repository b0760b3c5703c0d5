from uuid import UUID

from django.db.models import QuerySet
from django.http import HttpResponse
from ninja import Query
from ninja_extra import api_controller, route, status
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate
from ninja_extra.searching import Searching, searching
from ninja_jwt.authentication import JWTAuth

from accounts.permissions import IsParticipant
from common.authentication import OptionalAuth
from common.controllers import UserAwareController
from common.schema import ErrorResponse
from common.throttling import WriteThrottle
from events import filters, models, schema
from events.exceptions import EventNotFoundError
from events.service import calendar_utils, event_lifecycle
from events.service.registration_service import RegistrationService, response_message


@api_controller("/events", auth=OptionalAuth(), tags=["Events"])
class EventController(UserAwareController):
    def get_one(self, event_id: UUID) -> models.Event:
        """A published event, or 404."""
        event = models.Event.objects.published().with_organizer().prefetch_related("variants").filter(pk=event_id)
        if not (found := event.first()):
            raise EventNotFoundError()
        return found

    @route.get("/", url_name="list_events", response=PaginatedResponseSchema[schema.EventInListSchema])
    @paginate(PageNumberPaginationExtra, page_size=20)
    @searching(Searching, search_fields=["name", "description", "organizer__organizer_profile__name"])
    def list_events(
        self,
        params: filters.EventFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Event]:
        """Browse published events, soonest first.

        Filter by event_type (normal or merchandise), eligibility and organizer. Set upcoming=true to hide
        events that already ended. Supports text search on name, description and organizer name.
        """
        return event_lifecycle.list_published_events(params)

    @route.get("/{event_id}", url_name="get_event", response=schema.EventDetailSchema)
    def get_event(self, event_id: UUID) -> models.Event:
        """Retrieve a published event.

        Logged-in participants also see whether they are eligible and whether they already registered.
        """
        return self.get_one(event_id)

    @route.post(
        "/{event_id}/register",
        url_name="register_for_event",
        response={201: schema.RegistrationCreatedSchema, 400: ErrorResponse, 403: ErrorResponse, 409: ErrorResponse},
        auth=JWTAuth(),
        permissions=[IsParticipant()],
        throttle=WriteThrottle(),
    )
    def register(
        self, event_id: UUID, payload: schema.RegistrationIntentSchema
    ) -> tuple[int, schema.RegistrationCreatedSchema]:
        """Register for a normal event or place a merchandise order.

        Normal events and free merchandise are confirmed right away and the ticket is emailed. Paid
        merchandise orders stay pending until a payment proof is uploaded and approved by the organizer.
        """
        event = models.Event.objects.filter(pk=event_id).first()
        if event is None:
            raise EventNotFoundError()
        registration = RegistrationService(event=event, participant=self.user()).register(payload)
        registration = models.Registration.objects.full().get(pk=registration.pk)
        return status.HTTP_201_CREATED, schema.RegistrationCreatedSchema(
            message=response_message(registration),
            registration=schema.RegistrationSchema.from_orm(registration),
        )

    @route.get("/{event_id}/calendar.ics", url_name="event_ics")
    def get_event_ics(self, event_id: UUID):  # type: ignore[no-untyped-def]
        """Download the event as an .ics file, with a reminder one hour before it starts."""
        event = self.get_one(event_id)
        response = HttpResponse(calendar_utils.generate_ics(event), content_type="text/calendar; charset=utf-8")
        response["Content-Disposition"] = f'attachment; filename="{calendar_utils.ics_filename(event)}"'
        return response

    @route.get("/{event_id}/calendar-links", url_name="event_calendar_links", response=schema.CalendarLinksSchema)
    def get_calendar_links(self, event_id: UUID) -> dict[str, str]:
        """Google Calendar and Outlook links to add the event to a calendar."""
        return calendar_utils.calendar_links(self.get_one(event_id))

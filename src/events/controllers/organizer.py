import typing as t
from uuid import UUID

from django.db.models import QuerySet
from ninja import Query
from ninja_extra import api_controller, route, status
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate
from ninja_extra.searching import Searching, searching
from ninja_jwt.authentication import JWTAuth

from accounts.permissions import IsOrganizer
from common.controllers import UserAwareController
from common.schema import ErrorResponse
from common.throttling import CheckInThrottle, UserDefaultThrottle, WriteThrottle
from events import filters, models, schema
from events.controllers.permissions import EventOwnerPermission
from events.service import check_in_service, event_lifecycle, payment_service, registration_service


@api_controller(
    "/organizer/events",
    auth=JWTAuth(),
    permissions=[IsOrganizer(), EventOwnerPermission()],
    tags=["Organizer"],
    throttle=WriteThrottle(),
)
class OrganizerEventController(UserAwareController):
    """Event management, payment review and check-in for the organizer who owns the event."""

    def get_queryset(self) -> QuerySet[models.Event]:
        """The events of the current organizer."""
        return event_lifecycle.list_organizer_events(self.user())

    def get_one(self, event_id: UUID) -> models.Event:
        """Wrapper helper. Checks ownership through the object permissions."""
        return t.cast(
            models.Event,
            self.get_object_or_exception(
                models.Event.objects.get_queryset().with_organizer().prefetch_related("variants"), pk=event_id
            ),
        )

    @route.post(
        "/",
        url_name="create_event",
        response={201: schema.OrganizerEventSchema, 400: ErrorResponse},
    )
    def create_event(self, payload: schema.EventCreateSchema) -> tuple[int, models.Event]:
        """Create an event as draft (default) or publish it right away.

        Publishing requires registration_deadline < event_start_date < event_end_date. Merchandise events
        may define their variants here.
        """
        event = event_lifecycle.create_event(self.user(), payload)
        return status.HTTP_201_CREATED, self.get_one(event.pk)

    @route.get(
        "/",
        url_name="list_organizer_events",
        response=PaginatedResponseSchema[schema.OrganizerEventSchema],
        throttle=UserDefaultThrottle(),
    )
    @paginate(PageNumberPaginationExtra, page_size=20)
    @searching(Searching, search_fields=["name", "description"])
    def list_events(self) -> QuerySet[models.Event]:
        """List your events in every status, newest first."""
        return self.get_queryset()

    @route.get(
        "/{event_id}",
        url_name="get_organizer_event",
        response=schema.OrganizerEventSchema,
        throttle=UserDefaultThrottle(),
    )
    def get_event(self, event_id: UUID) -> models.Event:
        """Retrieve one of your events."""
        return self.get_one(event_id)

    @route.patch(
        "/{event_id}",
        url_name="update_event",
        response={200: schema.OrganizerEventSchema, 400: ErrorResponse},
    )
    def update_event(self, event_id: UUID, payload: schema.EventEditSchema) -> models.Event:
        """Partially update an event.

        Drafts can be edited freely. Once published only description, venue, image, links and status can
        change; the registration deadline can be extended, the limit raised, and the form edited until
        the first registration. Ongoing and completed events only accept a status change, cancelled
        events nothing. Status moves draft → published → cancelled or completed.
        """
        event = event_lifecycle.update_event(self.get_one(event_id), payload)
        return self.get_one(event.pk)

    @route.delete("/{event_id}", url_name="delete_event", response={204: None, 400: ErrorResponse})
    def delete_event(self, event_id: UUID) -> tuple[int, None]:
        """Delete an event without confirmed or pending registrations."""
        event_lifecycle.delete_event(self.get_one(event_id))
        return status.HTTP_204_NO_CONTENT, None

    @route.get(
        "/{event_id}/registrations",
        url_name="list_event_registrations",
        response=PaginatedResponseSchema[schema.AdminRegistrationSchema],
        throttle=UserDefaultThrottle(),
    )
    @paginate(PageNumberPaginationExtra, page_size=50)
    @searching(
        Searching,
        search_fields=["ticket_id", "participant__email", "participant__first_name", "participant__last_name"],
    )
    def list_registrations(
        self,
        event_id: UUID,
        params: filters.RegistrationFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Registration]:
        """List the registrations of an event. Filter by status or attended, search by ticket id or participant."""
        return registration_service.list_event_registrations(self.get_one(event_id), params)

    @route.get(
        "/{event_id}/pending-payments",
        url_name="list_pending_payments",
        response=list[schema.AdminRegistrationSchema],
        throttle=UserDefaultThrottle(),
    )
    def list_pending_payments(self, event_id: UUID) -> QuerySet[models.Registration]:
        """Merchandise orders whose payment proof waits for review."""
        return payment_service.list_pending_payments(self.get_one(event_id))

    @route.post(
        "/{event_id}/payments/{registration_id}",
        url_name="review_payment",
        response={200: schema.AdminRegistrationSchema, 400: ErrorResponse, 404: ErrorResponse, 409: ErrorResponse},
    )
    def review_payment(
        self, event_id: UUID, registration_id: UUID, payload: schema.PaymentReviewSchema
    ) -> models.Registration:
        """Approve or reject the payment of a merchandise order.

        Approving takes the stock, counts the registration and emails the ticket. It fails with 409 when the
        variant has sold out in the meantime. Rejecting takes nothing.
        """
        event = self.get_one(event_id)
        registration = payment_service.review_payment(event, str(registration_id), self.user(), payload)
        return models.Registration.objects.full().get(pk=registration.pk)

    @route.post(
        "/{event_id}/scan",
        url_name="scan_ticket",
        response={200: schema.CheckInResponseSchema, 400: ErrorResponse, 404: ErrorResponse},
        throttle=CheckInThrottle(),
    )
    def scan_ticket(self, event_id: UUID, payload: schema.CheckInRequestSchema) -> check_in_service.CheckInResult:
        """Check a ticket in by its QR payload or by the ticket id typed in by hand.

        Scanning a ticket twice is not an error: already_checked_in is true and checked_in_at is the time
        of the first scan.
        """
        return check_in_service.check_in(
            self.get_one(event_id), self.user(), qr_data=payload.qr_data, ticket_id=payload.ticket_id
        )

    @route.post(
        "/{event_id}/registrations/{registration_id}/attendance",
        url_name="mark_attendance",
        response={200: schema.CheckInResponseSchema, 400: ErrorResponse, 404: ErrorResponse},
        throttle=CheckInThrottle(),
    )
    def mark_attendance(self, event_id: UUID, registration_id: UUID) -> check_in_service.CheckInResult:
        """Mark a confirmed registration as attended from the attendee list."""
        return check_in_service.mark_attendance(self.get_one(event_id), registration_id, self.user())

    @route.get(
        "/{event_id}/attendance",
        url_name="attendance_stats",
        response=schema.AttendanceStatsSchema,
        throttle=UserDefaultThrottle(),
    )
    def attendance_stats(self, event_id: UUID) -> check_in_service.AttendanceStats:
        """Attendance numbers of the confirmed registrations, with the attendee list."""
        return check_in_service.attendance_stats(self.get_one(event_id))

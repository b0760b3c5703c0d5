from uuid import UUID

from django.db.models import QuerySet
from ninja import Query
from ninja_extra import api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate
from ninja_jwt.authentication import JWTAuth

from accounts.permissions import IsParticipant
from common.controllers import UserAwareController
from common.schema import ErrorResponse
from common.throttling import UserDefaultThrottle, WriteThrottle
from events import filters, models, schema
from events.exceptions import RegistrationNotFoundError
from events.service import payment_service, registration_service


@api_controller(
    "/registrations",
    auth=JWTAuth(),
    permissions=[IsParticipant()],
    tags=["Registrations"],
    throttle=WriteThrottle(),
)
class ParticipantRegistrationController(UserAwareController):
    """A participant's own registrations, tickets and merchandise orders."""

    def get_queryset(self) -> QuerySet[models.Registration]:
        """Only the current participant's registrations."""
        return models.Registration.objects.full().filter(participant=self.user())

    def get_one(self, registration_id: UUID) -> models.Registration:
        """Wrapper helper."""
        if not (registration := self.get_queryset().filter(pk=registration_id).first()):
            raise RegistrationNotFoundError()
        return registration

    @route.get(
        "/",
        url_name="list_my_registrations",
        response=PaginatedResponseSchema[schema.RegistrationSchema],
        throttle=UserDefaultThrottle(),
    )
    @paginate(PageNumberPaginationExtra, page_size=20)
    def list_registrations(
        self,
        params: filters.RegistrationFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Registration]:
        """List your registrations and orders, newest first. Filter by status, event_type or attended."""
        return registration_service.list_participant_registrations(self.user(), params)

    @route.get(
        "/{registration_id}",
        url_name="get_my_registration",
        response={200: schema.RegistrationSchema, 404: ErrorResponse},
        throttle=UserDefaultThrottle(),
    )
    def get_registration(self, registration_id: UUID) -> models.Registration:
        """Retrieve one of your registrations, including the ticket QR code once confirmed."""
        return self.get_one(registration_id)

    @route.post(
        "/{registration_id}/cancel",
        url_name="cancel_registration",
        response={200: schema.RegistrationSchema, 400: ErrorResponse, 404: ErrorResponse},
    )
    def cancel(self, registration_id: UUID, payload: schema.CancelRegistrationSchema) -> models.Registration:
        """Cancel a confirmed registration or a pending order before the event starts.

        A confirmed registration frees its seat, and merchandise stock is put back.
        """
        registration = registration_service.cancel_registration(self.get_one(registration_id), payload.reason)
        return self.get_one(registration.pk)

    @route.post(
        "/{registration_id}/payment-proof",
        url_name="upload_payment_proof",
        response={200: schema.RegistrationSchema, 400: ErrorResponse, 404: ErrorResponse},
    )
    def upload_payment_proof(self, registration_id: UUID, payload: schema.PaymentProofSchema) -> models.Registration:
        """Attach the payment proof of a pending merchandise order. The order then awaits the organizer's review."""
        registration = payment_service.upload_payment_proof(self.get_one(registration_id), payload)
        return self.get_one(registration.pk)

"""The registration state machine.

::

    register ──► confirmed ──────────────► cancelled
         │           ▲
         └─► pending ┼─(payment approved)
                 │   └─(payment rejected)─► rejected
                 └─────────────────────────► cancelled

Normal events and free merchandise are confirmed at once. Paid merchandise stays pending until the
organizer approves the payment proof (see ``payment_service``).
"""

import typing as t
from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from accounts.models import FelicityUser
from events import filters, schema
from events.exceptions import (
    AlreadyRegisteredError,
    EventFullError,
    EventNotFoundError,
    EventNotOpenError,
    InputValidationError,
    InsufficientStockError,
    NotCancellableError,
    NotEligibleError,
    RegistrationClosedError,
)
from events.models import Event, MerchandiseVariant, Registration
from events.service import eligibility, inventory, notification_service
from events.service.qr_codec import generate_ticket_qr
from events.service.ticket_ids import generate_unique_ticket_id

logger = structlog.get_logger(__name__)

DEFAULT_VARIANT_NAME = "Default"
PENDING_MESSAGE = "Order placed! Please upload payment proof to complete your purchase."
CONFIRMED_MESSAGE = "Registration successful! Check your email for the ticket."


class RegistrationService:
    def __init__(self, *, event: Event, participant: FelicityUser) -> None:
        """Registration of one participant for one event."""
        self.event = event
        self.participant = participant

    @transaction.atomic
    def register(self, intent: schema.RegistrationIntentSchema) -> Registration:
        """Create the registration.

        The event row stays locked until commit, so concurrent registrations for the same event run one
        after the other. The counter and stock updates are conditional, and the (event, participant)
        unique constraint is the final guard against duplicates.

        Raises:
            EventNotOpenError, RegistrationClosedError, NotEligibleError, AlreadyRegisteredError,
            EventFullError: when a precondition fails, in this order.
            InputValidationError: for a bad form or merchandise selection.
            InsufficientStockError: when the selected variant cannot cover the quantity.
        """
        try:
            self.event = Event.objects.select_for_update().get(pk=self.event.pk)
        except Event.DoesNotExist as e:
            raise EventNotFoundError() from e
        self._check_preconditions()

        registration = Registration(
            ticket_id=generate_unique_ticket_id(),
            event=self.event,
            participant=self.participant,
            status=Registration.Status.CONFIRMED,
            payment_status=Registration.PaymentStatus.COMPLETED,
            payment_amount=self.event.registration_fee,
        )
        if self.event.is_merchandise:
            self._prepare_merchandise(registration, intent)
        else:
            registration.form_responses = validate_form_responses(self.event.custom_form, intent.form_responses)

        self._insert(registration)

        if registration.status == Registration.Status.CONFIRMED:
            if registration.variant_id and registration.quantity:
                if not inventory.deduct_stock(self.event, registration.variant_id, registration.quantity):
                    raise InsufficientStockError()
            inventory.reserve_seat(self.event)
            attach_qr_code(registration)
            notification_service.notify_registration_confirmed(registration)
        else:
            notification_service.notify_order_received(registration)

        logger.info(
            "registration_created",
            registration_id=str(registration.id),
            event_id=str(self.event.id),
            participant_id=str(self.participant.id),
            status=registration.status,
        )
        return registration

    def _check_preconditions(self) -> None:
        event = self.event
        if event.status != Event.EventStatus.PUBLISHED:
            raise EventNotOpenError()
        if event.registration_deadline is None or timezone.now() >= event.registration_deadline:
            raise RegistrationClosedError()
        if not eligibility.is_eligible(self.participant.participant_type, event.eligibility):
            raise NotEligibleError()
        if Registration.objects.filter(event=event, participant=self.participant).exists():
            raise AlreadyRegisteredError()
        if not eligibility.has_capacity(event):
            raise EventFullError()

    def _prepare_merchandise(self, registration: Registration, intent: schema.RegistrationIntentSchema) -> None:
        event = self.event
        quantity = intent.quantity
        if quantity > event.purchase_limit:
            raise InputValidationError(f"Purchase limit is {event.purchase_limit} per person.")

        if event.variants.exists():
            if intent.variant_id is None:
                raise InputValidationError("Please select a variant.")
            variant = MerchandiseVariant.objects.filter(pk=intent.variant_id, event=event).first()
            if variant is None:
                raise InputValidationError("Invalid variant selected.")
            if variant.stock < quantity:
                raise InsufficientStockError()
            registration.variant = variant
            registration.variant_name = variant.name
            total_price = (event.registration_fee + variant.price_modifier) * quantity
        else:
            registration.variant_name = DEFAULT_VARIANT_NAME
            total_price = event.registration_fee * quantity

        registration.quantity = quantity
        registration.total_price = total_price
        registration.payment_amount = total_price
        if total_price > Decimal("0"):
            # stock is only taken when the payment gets approved
            registration.status = Registration.Status.PENDING
            registration.payment_status = Registration.PaymentStatus.PENDING

    def _insert(self, registration: Registration) -> None:
        try:
            with transaction.atomic():
                registration.save()
        except (IntegrityError, DjangoValidationError) as e:
            if Registration.objects.filter(event=self.event, participant=self.participant).exists():
                raise AlreadyRegisteredError() from e
            raise


def response_message(registration: Registration) -> str:
    """The message shown after registering."""
    if registration.status == Registration.Status.PENDING:
        return PENDING_MESSAGE
    return CONFIRMED_MESSAGE


def validate_form_responses(
    custom_form: list[dict[str, t.Any]], responses: dict[str, t.Any] | None
) -> dict[str, t.Any]:
    """Check that every required form field has an answer and return the responses unchanged.

    Responses are keyed by field label.
    """
    responses = responses or {}
    missing = [
        field["label"]
        for field in custom_form
        if field.get("required") and _is_blank(responses.get(field["label"]))
    ]
    if missing:
        raise InputValidationError(f"Missing required fields: {', '.join(missing)}.")
    return responses


def _is_blank(value: t.Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def attach_qr_code(registration: Registration) -> None:
    """Render and store the ticket QR code. A rendering failure is logged and leaves the QR empty."""
    try:
        registration.qr_code = generate_ticket_qr(registration)
    except Exception:
        logger.exception("qr_code_render_failed", registration_id=str(registration.id))
        return
    Registration.objects.filter(pk=registration.pk).update(qr_code=registration.qr_code, updated_at=timezone.now())


@transaction.atomic
def cancel_registration(registration: Registration, reason: str = "") -> Registration:
    """Cancel a confirmed or pending registration before the event starts.

    A confirmed registration gives its seat back and, for merchandise, its stock. Pending orders never
    took either.

    Raises:
        NotCancellableError: if the registration is not active, was attended or the event has started.
    """
    event = Event.objects.select_for_update().get(pk=registration.event_id)
    registration = Registration.objects.select_for_update().get(pk=registration.pk)
    if (
        registration.status not in Registration.ACTIVE_STATUSES
        or registration.attended
        or (event.event_start_date is not None and timezone.now() >= event.event_start_date)
    ):
        raise NotCancellableError()

    was_confirmed = registration.status == Registration.Status.CONFIRMED
    registration.status = Registration.Status.CANCELLED
    registration.cancelled_at = timezone.now()
    registration.cancellation_reason = reason
    update_fields = ["status", "cancelled_at", "cancellation_reason", "updated_at"]
    if not was_confirmed:
        # an unpaid order leaves the organizer's review queue for good
        registration.payment_status = Registration.PaymentStatus.FAILED
        registration.approval_status = None
        update_fields += ["payment_status", "approval_status"]
    registration.save(update_fields=update_fields)

    if was_confirmed:
        inventory.release_seat(event)
        if registration.variant_id and registration.quantity:
            inventory.restore_stock(event, registration.variant_id, registration.quantity)

    notification_service.notify_registration_cancelled(registration)
    logger.info(
        "registration_cancelled",
        registration_id=str(registration.id),
        event_id=str(event.id),
        released_seat=was_confirmed,
    )
    return registration


def list_participant_registrations(
    participant: FelicityUser, params: filters.RegistrationFilterSchema | None = None
) -> QuerySet[Registration]:
    """A participant's own registrations, newest first."""
    qs = Registration.objects.full().filter(participant=participant).order_by("-created_at")
    return params.filter(qs) if params else qs


def list_event_registrations(
    event: Event, params: filters.RegistrationFilterSchema | None = None
) -> QuerySet[Registration]:
    """All registrations of an event, newest first."""
    qs = Registration.objects.full().filter(event=event).order_by("-created_at")
    return params.filter(qs) if params else qs

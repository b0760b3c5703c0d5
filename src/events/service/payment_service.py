"""Manual payment approval for paid merchandise orders.

A pending order moves to ``awaiting_approval`` once the participant uploads a payment proof. The organizer
then approves it (stock is taken, the seat is counted, the ticket is issued) or rejects it.
"""

import structlog
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from accounts.models import FelicityUser
from events import schema
from events.exceptions import (
    InputValidationError,
    InvalidTransitionError,
    OversoldError,
    PaymentAlreadyCompletedError,
    RegistrationNotFoundError,
)
from events.models import Event, Registration
from events.service import inventory, notification_service
from events.service.registration_service import attach_qr_code

logger = structlog.get_logger(__name__)

APPROVE = "approve"
REJECT = "reject"
DEFAULT_APPROVAL_COMMENT = "Payment approved"
DEFAULT_REJECTION_COMMENT = "Payment rejected"


@transaction.atomic
def upload_payment_proof(registration: Registration, payload: schema.PaymentProofSchema) -> Registration:
    """Attach a payment proof to a pending merchandise order.

    Raises:
        InvalidTransitionError: for normal events or orders that are not pending.
        PaymentAlreadyCompletedError: if the order has been paid already.
    """
    registration = Registration.objects.select_for_update().select_related("event").get(pk=registration.pk)
    if not registration.event.is_merchandise:
        raise InvalidTransitionError("Payment proof is only required for merchandise orders.")
    if registration.payment_status == Registration.PaymentStatus.COMPLETED:
        raise PaymentAlreadyCompletedError()
    if (
        registration.status != Registration.Status.PENDING
        or registration.payment_status != Registration.PaymentStatus.PENDING
    ):
        raise InvalidTransitionError("Payment proof can only be uploaded for pending orders.")

    registration.payment_proof_url = str(payload.image_url)
    registration.payment_proof_note = payload.note
    registration.payment_proof_uploaded_at = timezone.now()
    registration.payment_status = Registration.PaymentStatus.AWAITING_APPROVAL
    registration.approval_status = Registration.ApprovalStatus.PENDING
    registration.save(
        update_fields=[
            "payment_proof_url",
            "payment_proof_note",
            "payment_proof_uploaded_at",
            "payment_status",
            "approval_status",
            "updated_at",
        ]
    )
    logger.info("payment_proof_uploaded", registration_id=str(registration.id))
    return registration


def list_pending_payments(event: Event) -> QuerySet[Registration]:
    """Orders of an event waiting for the organizer's review, newest first."""
    return Registration.objects.full().filter(event=event).awaiting_approval().order_by("-created_at")


def review_payment(
    event: Event, registration_id: str, reviewer: FelicityUser, payload: schema.PaymentReviewSchema
) -> Registration:
    """Approve or reject an order's payment.

    Raises:
        InputValidationError: for an unknown action.
    """
    action = payload.action.lower()
    if action == APPROVE:
        return approve_payment(event, registration_id, reviewer, payload.comment)
    if action == REJECT:
        return reject_payment(event, registration_id, reviewer, payload.comment)
    raise InputValidationError("Invalid action. Use 'approve' or 'reject'.")


def _get_awaiting_registration(event: Event, registration_id: str) -> Registration:
    registration = (
        Registration.objects.select_for_update()
        .select_related("event", "participant")
        .filter(pk=registration_id, event=event)
        .first()
    )
    if registration is None:
        raise RegistrationNotFoundError()
    if registration.status != Registration.Status.PENDING:
        raise InvalidTransitionError(f"Registration is {registration.status}, not pending.")
    if registration.payment_status != Registration.PaymentStatus.AWAITING_APPROVAL:
        raise InvalidTransitionError("Payment is not awaiting approval.")
    return registration


@transaction.atomic
def approve_payment(event: Event, registration_id: str, reviewer: FelicityUser, comment: str = "") -> Registration:
    """Confirm a paid order.

    The stock is taken now, not when the order was placed. If other approvals have used the stock up in
    the meantime the approval fails with ``OversoldError`` and the order stays awaiting approval.

    Raises:
        RegistrationNotFoundError: if the registration does not belong to the event.
        InvalidTransitionError: if the payment is not awaiting approval.
        OversoldError: if the variant no longer has enough stock.
        EventFullError: if the event filled up in the meantime.
    """
    event = Event.objects.select_for_update().get(pk=event.pk)
    registration = _get_awaiting_registration(event, registration_id)

    if registration.variant_id and registration.quantity:
        if not inventory.deduct_stock(event, registration.variant_id, registration.quantity):
            logger.warning(
                "payment_approval_oversold",
                registration_id=str(registration.id),
                variant_id=str(registration.variant_id),
                quantity=registration.quantity,
            )
            raise OversoldError()
    inventory.reserve_seat(event)

    registration.status = Registration.Status.CONFIRMED
    registration.payment_status = Registration.PaymentStatus.COMPLETED
    registration.approval_status = Registration.ApprovalStatus.APPROVED
    registration.reviewed_by = reviewer
    registration.reviewed_at = timezone.now()
    registration.review_comment = comment or DEFAULT_APPROVAL_COMMENT
    registration.save(
        update_fields=[
            "status",
            "payment_status",
            "approval_status",
            "reviewed_by",
            "reviewed_at",
            "review_comment",
            "updated_at",
        ]
    )
    attach_qr_code(registration)
    notification_service.notify_order_approved(registration)
    logger.info("payment_approved", registration_id=str(registration.id), reviewer_id=str(reviewer.id))
    return registration


@transaction.atomic
def reject_payment(event: Event, registration_id: str, reviewer: FelicityUser, comment: str = "") -> Registration:
    """Reject a paid order. No stock or seat was taken, so nothing is given back.

    Raises:
        RegistrationNotFoundError: if the registration does not belong to the event.
        InvalidTransitionError: if the payment is not awaiting approval.
    """
    registration = _get_awaiting_registration(event, registration_id)
    registration.status = Registration.Status.REJECTED
    registration.payment_status = Registration.PaymentStatus.FAILED
    registration.approval_status = Registration.ApprovalStatus.REJECTED
    registration.reviewed_by = reviewer
    registration.reviewed_at = timezone.now()
    registration.review_comment = comment or DEFAULT_REJECTION_COMMENT
    registration.save(
        update_fields=[
            "status",
            "payment_status",
            "approval_status",
            "reviewed_by",
            "reviewed_at",
            "review_comment",
            "updated_at",
        ]
    )
    notification_service.notify_order_rejected(registration)
    logger.info("payment_rejected", registration_id=str(registration.id), reviewer_id=str(reviewer.id))
    return registration

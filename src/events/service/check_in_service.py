"""Check-in at the door: QR scans, manual ticket ids and attendance statistics."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from accounts.models import FelicityUser
from events.exceptions import InputValidationError, RegistrationNotFoundError, WrongEventError, WrongStatusError
from events.models import Event, Registration
from events.service import notification_service
from events.service.qr_codec import decode_credential
from events.service.ticket_ids import normalize_ticket_id

logger = structlog.get_logger(__name__)

CHECKED_IN_MESSAGE = "Check-in successful."
ALREADY_CHECKED_IN_MESSAGE = "Already checked in."


@dataclass(frozen=True)
class CheckInResult:
    registration: Registration
    already_checked_in: bool
    checked_in_at: datetime | None

    @property
    def message(self) -> str:
        return ALREADY_CHECKED_IN_MESSAGE if self.already_checked_in else CHECKED_IN_MESSAGE


def resolve_ticket_id(event: Event, qr_data: str | None = None, ticket_id: str | None = None) -> str:
    """Pick the ticket id to check in. A manually entered id wins over the QR payload.

    Raises:
        InputValidationError: if neither is given.
        InvalidCredentialError: if the QR payload cannot be decoded.
        WrongEventError: if the QR code belongs to another event.
    """
    if ticket_id and ticket_id.strip():
        return normalize_ticket_id(ticket_id)
    if not qr_data:
        raise InputValidationError("Provide either QR data or a ticket id.")
    credential = decode_credential(qr_data)
    if credential.event_id != str(event.id):
        raise WrongEventError()
    return normalize_ticket_id(credential.ticket_id)


def check_in(
    event: Event, scanned_by: FelicityUser, qr_data: str | None = None, ticket_id: str | None = None
) -> CheckInResult:
    """Check a ticket in at the door of ``event``."""
    resolved = resolve_ticket_id(event, qr_data=qr_data, ticket_id=ticket_id)
    return _mark(event, scanned_by, ticket_id=resolved)


def mark_attendance(event: Event, registration_id: UUID, marked_by: FelicityUser) -> CheckInResult:
    """Mark a registration as attended by its id, from the organizer's attendee list."""
    return _mark(event, marked_by, pk=registration_id)


@transaction.atomic
def _mark(event: Event, scanned_by: FelicityUser, **lookup: object) -> CheckInResult:
    """Set the attendance flag under a row lock.

    Scanning the same ticket twice is not an error: the second scan reports the original check-in time
    and changes nothing.

    Raises:
        RegistrationNotFoundError: if the ticket does not belong to the event.
        WrongStatusError: if the registration is not confirmed.
    """
    registration = (
        Registration.objects.select_for_update()
        .select_related("participant")
        .filter(event=event, **lookup)
        .first()
    )
    if registration is None:
        raise RegistrationNotFoundError()
    if registration.status != Registration.Status.CONFIRMED:
        raise WrongStatusError(f"Registration is {registration.status}, not confirmed.")

    if registration.attended:
        logger.info("check_in_repeated", registration_id=str(registration.id), event_id=str(event.id))
        return CheckInResult(
            registration=registration, already_checked_in=True, checked_in_at=registration.attended_at
        )

    registration.attended = True
    registration.attended_at = timezone.now()
    registration.checked_in_by = scanned_by
    registration.save(update_fields=["attended", "attended_at", "checked_in_by", "updated_at"])
    notification_service.notify_checked_in(registration)
    logger.info(
        "check_in_completed",
        registration_id=str(registration.id),
        event_id=str(event.id),
        scanned_by=str(scanned_by.id),
    )
    return CheckInResult(registration=registration, already_checked_in=False, checked_in_at=registration.attended_at)


@dataclass(frozen=True)
class AttendanceStats:
    total: int
    attended: int
    not_attended: int
    attendance_rate: int
    registrations: list[Registration]


def attendance_stats(event: Event) -> AttendanceStats:
    """Attendance of the confirmed registrations of an event."""
    registrations = Registration.objects.full().filter(event=event).confirmed().order_by("-attended", "created_at")
    total = registrations.count()
    attended = registrations.filter(attended=True).count()
    return AttendanceStats(
        total=total,
        attended=attended,
        not_attended=total - attended,
        attendance_rate=round(attended / total * 100) if total else 0,
        registrations=list(registrations),
    )

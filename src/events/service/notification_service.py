"""Best-effort side effects of registration state changes.

Everything here runs after the surrounding transaction commits. A failure is logged and never reaches the
caller: the state change it follows has already been committed.
"""

import typing as t
from uuid import UUID

import structlog
from django.db import transaction

from events import tasks
from events.models import Event, Registration
from events.signals import realtime_event

logger = structlog.get_logger(__name__)


class RealtimeEventName:
    REGISTRATION_CONFIRMED = "registration.confirmed"
    REGISTRATION_CANCELLED = "registration.cancelled"
    REGISTRATION_REJECTED = "registration.rejected"
    ATTENDEE_CHECKED_IN = "attendee.checked_in"


def on_commit_best_effort(side_effect: str, func: t.Callable[..., t.Any], *args: t.Any, **kwargs: t.Any) -> None:
    """Run ``func`` once the current transaction commits, logging (and swallowing) any failure."""

    def _run() -> None:
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception("side_effect_failed", side_effect=side_effect)

    transaction.on_commit(_run)


def event_channel(event_id: UUID | str) -> str:
    """The realtime channel of an event."""
    return f"event:{event_id}"


def _send_realtime(event_id: UUID | str, name: str, payload: dict[str, t.Any]) -> None:
    responses = realtime_event.send_robust(sender=Event, channel=event_channel(event_id), name=name, payload=payload)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.warning(
                "realtime_receiver_failed", receiver=getattr(receiver, "__name__", str(receiver)), event_name=name
            )


def emit_realtime(event_id: UUID | str, name: str, payload: dict[str, t.Any]) -> None:
    """Emit a realtime event on the event's channel after commit."""
    on_commit_best_effort(f"realtime:{name}", _send_realtime, event_id, name, payload)


def registration_payload(registration: Registration) -> dict[str, t.Any]:
    """The payload shared by all registration realtime events."""
    return {
        "registration_id": str(registration.id),
        "ticket_id": registration.ticket_id,
        "participant_id": str(registration.participant_id),
        "status": registration.status,
    }


def notify_registration_confirmed(registration: Registration) -> None:
    """Mail the ticket and announce the confirmation."""
    on_commit_best_effort("ticket_email", tasks.send_ticket_email.delay, str(registration.id))
    emit_realtime(registration.event_id, RealtimeEventName.REGISTRATION_CONFIRMED, registration_payload(registration))


def notify_order_received(registration: Registration) -> None:
    """Tell the participant the order awaits payment proof and approval."""
    on_commit_best_effort("order_received_email", tasks.send_order_received_email.delay, str(registration.id))


def notify_order_approved(registration: Registration) -> None:
    """Mail the ticket of an approved order and announce the confirmation."""
    on_commit_best_effort("order_approved_email", tasks.send_order_approved_email.delay, str(registration.id))
    emit_realtime(registration.event_id, RealtimeEventName.REGISTRATION_CONFIRMED, registration_payload(registration))


def notify_order_rejected(registration: Registration) -> None:
    """Tell the participant the order was rejected."""
    on_commit_best_effort("order_rejected_email", tasks.send_order_rejected_email.delay, str(registration.id))
    emit_realtime(registration.event_id, RealtimeEventName.REGISTRATION_REJECTED, registration_payload(registration))


def notify_registration_cancelled(registration: Registration) -> None:
    """Announce a cancellation."""
    emit_realtime(registration.event_id, RealtimeEventName.REGISTRATION_CANCELLED, registration_payload(registration))


def notify_checked_in(registration: Registration) -> None:
    """Announce an attendee entering."""
    payload = registration_payload(registration) | {
        "attended_at": registration.attended_at.isoformat() if registration.attended_at else None
    }
    emit_realtime(registration.event_id, RealtimeEventName.ATTENDEE_CHECKED_IN, payload)


def notify_event_published(event: Event) -> None:
    """Post the announcement webhook of a freshly published event."""
    on_commit_best_effort("event_announcement", tasks.announce_event_published.delay, str(event.id))

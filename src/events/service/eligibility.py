"""Pure eligibility and capacity predicates.

These functions have no side effects. The registration flow uses them as preconditions and the browsing
schemas expose them read-only.
"""

from datetime import datetime

from django.utils import timezone

from accounts.models import FelicityUser
from events.models import Event


def is_eligible(participant_type: str | None, eligibility: str) -> bool:
    """Whether a participant of ``participant_type`` may register for an event with ``eligibility``."""
    match eligibility:
        case Event.Eligibility.ALL:
            return True
        case Event.Eligibility.IIIT_ONLY:
            return participant_type == FelicityUser.ParticipantType.IIIT
        case Event.Eligibility.NON_IIIT_ONLY:
            return participant_type == FelicityUser.ParticipantType.NON_IIIT
        case _:
            return False


def has_capacity(event: Event) -> bool:
    """Events without a limit never fill up."""
    if event.registration_limit is None:
        return True
    return event.current_registrations < event.registration_limit


def is_registration_open(event: Event, now: datetime | None = None) -> bool:
    """Published, before the deadline and not full."""
    now = now or timezone.now()
    return (
        event.status == Event.EventStatus.PUBLISHED
        and event.registration_deadline is not None
        and now < event.registration_deadline
        and has_capacity(event)
    )


def has_merchandise_stock(event: Event) -> bool | None:
    """Whether any variant still has stock. ``None`` for normal events."""
    if not event.is_merchandise:
        return None
    return event.total_stock > 0

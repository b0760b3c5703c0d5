"""Ticket id generation.

Ticket ids look like ``FEL`` + base36(epoch milliseconds) + 4 random base36 characters, all upper-case,
e.g. ``FELM1ABCDEFQ7ZK``. They are typed in by hand at the door, so lookups normalize the input first.
"""

import secrets
import string
from datetime import datetime

import structlog
from django.conf import settings
from django.utils import timezone

from events.exceptions import TicketIdGenerationError
from events.models import Registration

logger = structlog.get_logger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_uppercase
RANDOM_SUFFIX_LENGTH = 4


def to_base36(number: int) -> str:
    """Encode a non-negative integer in upper-case base36."""
    if number < 0:
        raise ValueError("Only non-negative numbers can be encoded.")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_ticket_id(now: datetime | None = None) -> str:
    """Build a candidate ticket id. Uniqueness is not checked here."""
    now = now or timezone.now()
    timestamp = to_base36(int(now.timestamp() * 1000))
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(RANDOM_SUFFIX_LENGTH))
    return f"{settings.TICKET_ID_PREFIX}{timestamp}{suffix}".upper()


def generate_unique_ticket_id() -> str:
    """Generate a ticket id that is not in use yet.

    The check is a best effort: the unique index on ``Registration.ticket_id`` has the final word.

    Raises:
        TicketIdGenerationError: if every attempt collided with an existing ticket.
    """
    max_attempts = settings.TICKET_ID_MAX_ATTEMPTS
    for attempt in range(1, max_attempts + 1):
        candidate = generate_ticket_id()
        if not Registration.objects.filter(ticket_id=candidate).exists():
            return candidate
        logger.warning("ticket_id_collision", ticket_id=candidate, attempt=attempt)
    logger.error("ticket_id_generation_exhausted", attempts=max_attempts)
    raise TicketIdGenerationError()


def normalize_ticket_id(raw: str) -> str:
    """Normalize manually entered ticket ids."""
    return raw.strip().upper()

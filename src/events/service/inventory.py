"""Atomic mutations of the shared counters: ``Event.current_registrations`` and ``MerchandiseVariant.stock``.

Every function issues a single conditional ``UPDATE``. None of them reads a counter into Python first.
Callers must run them inside the transaction of the status change that justifies the mutation.
"""

from uuid import UUID

import structlog
from django.db.models import F

from events.exceptions import EventFullError
from events.models import Event, MerchandiseVariant

logger = structlog.get_logger(__name__)


def reserve_seat(event: Event) -> None:
    """Increment the registration counter if the event is not full.

    Raises:
        EventFullError: if the limit has been reached.
    """
    qs = Event.objects.filter(pk=event.pk)
    if event.registration_limit is not None:
        qs = qs.filter(current_registrations__lt=F("registration_limit"))
    if not qs.update(current_registrations=F("current_registrations") + 1):
        raise EventFullError()
    event.refresh_from_db(fields=["current_registrations"])


def release_seat(event: Event) -> None:
    """Decrement the registration counter, never below zero."""
    updated = Event.objects.filter(pk=event.pk, current_registrations__gt=0).update(
        current_registrations=F("current_registrations") - 1
    )
    if not updated:
        logger.warning("release_seat_on_empty_counter", event_id=str(event.pk))
    event.refresh_from_db(fields=["current_registrations"])


def deduct_stock(event: Event, variant_id: UUID, quantity: int) -> bool:
    """Take ``quantity`` items of a variant if that many are left.

    Returns:
        bool: whether the stock was deducted.
    """
    updated = MerchandiseVariant.objects.filter(pk=variant_id, event=event, stock__gte=quantity).update(
        stock=F("stock") - quantity
    )
    if updated:
        event.refresh_total_stock()
    return bool(updated)


def restore_stock(event: Event, variant_id: UUID, quantity: int) -> None:
    """Put ``quantity`` items of a variant back."""
    MerchandiseVariant.objects.filter(pk=variant_id, event=event).update(stock=F("stock") + quantity)
    event.refresh_total_stock()

"""Event creation, editing, status transitions and deletion.

What an organizer may edit depends on where the event is in its lifecycle:

==========================  ==========================================================================
status                      editable fields
==========================  ==========================================================================
draft                       everything
published, not started      ``PUBLISHED_EDITABLE_FIELDS``; the deadline may only move later, the limit
                            may only grow, the form is frozen once someone registered
published (ongoing)         status only
completed                   status only
cancelled                   nothing
==========================  ==========================================================================
"""

import typing as t
from datetime import datetime

import structlog
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from accounts.models import FelicityUser
from events import filters, schema
from events.exceptions import EventLockedError, FieldLockedError, InputValidationError, InvalidTransitionError
from events.models import Event, MerchandiseVariant
from events.models.event import validate_event_dates
from events.service import notification_service

logger = structlog.get_logger(__name__)

DRAFT_EDITABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "event_type",
        "eligibility",
        "registration_deadline",
        "event_start_date",
        "event_end_date",
        "registration_limit",
        "registration_fee",
        "tags",
        "custom_form",
        "item_details",
        "purchase_limit",
        "variants",
        "status",
        "venue",
        "image_url",
        "external_links",
    }
)
PUBLISHED_EDITABLE_FIELDS = frozenset(
    {
        "description",
        "status",
        "venue",
        "image_url",
        "external_links",
        "registration_deadline",
        "registration_limit",
        "custom_form",
    }
)
STATUS_ONLY_FIELDS = frozenset({"status"})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Event.EventStatus.DRAFT: frozenset({Event.EventStatus.PUBLISHED}),
    Event.EventStatus.PUBLISHED: frozenset({Event.EventStatus.CANCELLED, Event.EventStatus.COMPLETED}),
}

# model fields that are not nullable but may come in as null
BLANK_DEFAULTS: dict[str, t.Any] = {"venue": "", "image_url": "", "item_details": "", "tags": [], "external_links": []}


def editable_fields(event: Event, now: datetime | None = None) -> frozenset[str]:
    """The fields an organizer may change right now.

    Raises:
        EventLockedError: for cancelled events.
    """
    match event.status:
        case Event.EventStatus.CANCELLED:
            raise EventLockedError("Cancelled events cannot be edited.")
        case Event.EventStatus.DRAFT:
            return DRAFT_EDITABLE_FIELDS
        case Event.EventStatus.PUBLISHED if not event.is_ongoing(now):
            return PUBLISHED_EDITABLE_FIELDS
        case _:
            return STATUS_ONLY_FIELDS


def check_transition(current: str, target: str) -> None:
    """Raise InvalidTransitionError unless ``current`` may move to ``target``. Same status is a no-op."""
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(f"Cannot change status from {current} to {target}.")


def _normalize(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Turn schema values into model values."""
    values = {}
    for field, value in data.items():
        if value is None and field in BLANK_DEFAULTS:
            value = BLANK_DEFAULTS[field]
        elif field == "image_url":
            value = str(value)
        elif field == "external_links":
            value = [str(link) for link in value]
        values[field] = value
    return values


def _validate_publishable(event: Event) -> None:
    try:
        validate_event_dates(event.registration_deadline, event.event_start_date, event.event_end_date)
    except DjangoValidationError as e:
        raise InputValidationError(_messages(e)) from e


def _messages(error: DjangoValidationError) -> str:
    if hasattr(error, "message_dict"):
        return " ".join(message for messages in error.message_dict.values() for message in messages)
    return " ".join(error.messages)


def _save(event: Event, update_fields: list[str] | None = None) -> None:
    try:
        event.save(update_fields=update_fields)
    except DjangoValidationError as e:
        raise InputValidationError(_messages(e)) from e


def _create_variants(event: Event, variants: list[dict[str, t.Any]]) -> None:
    for variant in variants:
        try:
            MerchandiseVariant.objects.create(event=event, **variant)
        except DjangoValidationError as e:
            raise InputValidationError(_messages(e)) from e
    event.refresh_total_stock()


@transaction.atomic
def create_event(organizer: FelicityUser, payload: schema.EventCreateSchema) -> Event:
    """Create a draft or directly published event.

    Publishing right away requires complete, ordered dates and posts the announcement webhook.

    Raises:
        InputValidationError: for incomplete dates of a published event or variants on a normal event.
    """
    data = payload.model_dump(exclude={"variants"})
    data = _normalize({field: value for field, value in data.items() if value is not None})
    event = Event(organizer=organizer, **data)
    if event.status == Event.EventStatus.PUBLISHED:
        _validate_publishable(event)
    if payload.variants and not event.is_merchandise:
        raise InputValidationError("Only merchandise events can have variants.")
    _save(event)
    if payload.variants:
        _create_variants(event, [variant.model_dump() for variant in payload.variants])

    if event.status == Event.EventStatus.PUBLISHED:
        notification_service.notify_event_published(event)
    logger.info("event_created", event_id=str(event.id), organizer_id=str(organizer.id), status=event.status)
    return event


def _check_published_edits(event: Event, changes: dict[str, t.Any]) -> None:
    if "registration_deadline" in changes:
        deadline = changes["registration_deadline"]
        if deadline is None or (event.registration_deadline and deadline < event.registration_deadline):
            raise InputValidationError("The registration deadline can only be extended.")
        if event.event_start_date and deadline >= event.event_start_date:
            raise InputValidationError("The registration deadline must be before the event start date.")
    if "registration_limit" in changes:
        limit = changes["registration_limit"]
        if event.registration_limit is not None and limit is not None and limit < event.registration_limit:
            raise InputValidationError("The registration limit can only be increased.")
    if "custom_form" in changes and event.registrations.active().exists():
        raise FieldLockedError(["custom_form"])


@transaction.atomic
def update_event(event: Event, payload: schema.EventEditSchema) -> Event:
    """Apply a partial update, enforcing the lifecycle edit rules.

    Only the fields present in the payload are considered. The first move into ``published`` re-validates
    the dates and posts the announcement webhook.

    Raises:
        EventLockedError: if the event is cancelled.
        FieldLockedError: if the payload touches fields that are locked in the current status.
        InputValidationError: for a shrinking deadline or limit, or dates that do not allow publishing.
        InvalidTransitionError: for a status change that is not allowed.
    """
    event = Event.objects.select_for_update().get(pk=event.pk)
    changes = payload.model_dump(exclude_unset=True)
    locked = set(changes) - editable_fields(event)
    if locked:
        raise FieldLockedError(locked)
    if event.status == Event.EventStatus.PUBLISHED:
        _check_published_edits(event, changes)

    was_published = event.status == Event.EventStatus.PUBLISHED
    if "status" in changes:
        check_transition(event.status, changes["status"])
    variants = changes.pop("variants", None)
    for field, value in _normalize(changes).items():
        setattr(event, field, value)
    if variants is not None:
        if not event.is_merchandise:
            raise InputValidationError("Only merchandise events can have variants.")
        event.variants.all().delete()
        _create_variants(event, variants)

    publishing = not was_published and event.status == Event.EventStatus.PUBLISHED
    if publishing:
        _validate_publishable(event)
    if changes:
        _save(event, update_fields=[*changes, "updated_at"])

    if publishing:
        notification_service.notify_event_published(event)
    logger.info("event_updated", event_id=str(event.id), fields=sorted(changes), status=event.status)
    return event


@transaction.atomic
def delete_event(event: Event) -> None:
    """Delete an event nobody holds a registration for.

    Raises:
        EventLockedError: if confirmed or pending registrations exist.
    """
    event = Event.objects.select_for_update().get(pk=event.pk)
    if event.registrations.active().exists():
        raise EventLockedError("Cannot delete an event with active registrations.")
    event_id = str(event.id)
    event.delete()
    logger.info("event_deleted", event_id=event_id)


def list_published_events(params: filters.EventFilterSchema | None = None) -> QuerySet[Event]:
    """Events participants can browse, soonest first."""
    qs = Event.objects.published().with_organizer().prefetch_related("variants").order_by("event_start_date")
    return params.filter(qs) if params else qs


def list_organizer_events(organizer: FelicityUser) -> QuerySet[Event]:
    """All events of an organizer, newest first."""
    return Event.objects.owned_by(organizer).with_organizer().prefetch_related("variants").order_by("-created_at")

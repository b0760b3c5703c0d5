"""Celery tasks of the events app: transactional emails, the publish announcement and housekeeping."""

import base64
import typing as t

import requests
import structlog
from celery import shared_task
from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone

from common.models import EmailLog
from common.tasks import send_email
from events.models import Event, Registration

logger = structlog.get_logger(__name__)


def _registration(registration_id: str) -> Registration:
    return Registration.objects.select_related("event", "participant", "variant").get(pk=registration_id)


def _qr_attachment(registration: Registration) -> list[dict[str, t.Any]]:
    from events.service.qr_codec import data_url_to_png, generate_ticket_qr

    qr_code = registration.qr_code or generate_ticket_qr(registration)
    content = base64.b64encode(data_url_to_png(qr_code)).decode()
    return [{"filename": f"{registration.ticket_id}.png", "content": content, "mimetype": "image/png"}]


def _send_registration_email(
    registration: Registration,
    subject: str,
    template: str,
    kind: str,
    *,
    with_qr: bool = False,
    **extra: t.Any,
) -> None:
    context = {
        "participant_name": registration.participant.get_display_name(),
        "event": registration.event,
        "registration": registration,
        "frontend_base_url": settings.FRONTEND_BASE_URL,
        **extra,
    }
    body = render_to_string(f"events/emails/{template}.txt", context)
    html_body = render_to_string(f"events/emails/{template}.html", context)
    send_email(
        to=registration.participant.email,
        subject=subject,
        body=body,
        html_body=html_body,
        attachments=_qr_attachment(registration) if with_qr else None,
        kind=kind,
    )
    logger.info("registration_email_sent", template=template, registration_id=str(registration.id))


@shared_task
def send_ticket_email(registration_id: str) -> None:
    """Mail the ticket (with its QR code) of a confirmed registration."""
    registration = _registration(registration_id)
    subject = f"Your ticket for {registration.event.name}"
    _send_registration_email(registration, subject, "ticket_confirmation", EmailLog.Kind.TICKET, with_qr=True)


@shared_task
def send_order_received_email(registration_id: str) -> None:
    """Mail the summary of a merchandise order awaiting payment approval."""
    registration = _registration(registration_id)
    subject = f"Merchandise order received – {registration.event.name}"
    _send_registration_email(registration, subject, "merchandise_order_received", EmailLog.Kind.ORDER_RECEIVED)


@shared_task
def send_order_approved_email(registration_id: str) -> None:
    """Mail the ticket of an approved merchandise order."""
    registration = _registration(registration_id)
    subject = f"Order Approved – {registration.event.name}"
    _send_registration_email(
        registration, subject, "merchandise_order_approved", EmailLog.Kind.ORDER_APPROVED, with_qr=True
    )


@shared_task
def send_order_rejected_email(registration_id: str) -> None:
    """Mail the rejection of a merchandise order."""
    registration = _registration(registration_id)
    subject = f"Order Rejected – {registration.event.name}"
    _send_registration_email(registration, subject, "merchandise_order_rejected", EmailLog.Kind.ORDER_REJECTED)


def build_announcement(event: Event) -> dict[str, t.Any]:
    """Build the Discord embed announcing a published event."""
    organizer_name = event.organizer.get_display_name()
    description = event.description[:200] + ("..." if len(event.description) > 200 else "")
    event_date = "TBA"
    if event.event_start_date:
        start = timezone.localtime(event.event_start_date)
        event_date = f"{start:%A, %B} {start.day}, {start:%Y}"
    fee = f"₹{event.registration_fee}" if event.registration_fee > 0 else "Free"
    return {
        "embeds": [
            {
                "title": f"🎉 New Event: {event.name}",
                "description": description,
                "color": 0x6366F1,
                "fields": [
                    {"name": "📅 Event Date", "value": event_date, "inline": True},
                    {"name": "📍 Venue", "value": event.venue or "TBA", "inline": True},
                    {"name": "💰 Fee", "value": fee, "inline": True},
                ],
                "url": f"{settings.FRONTEND_BASE_URL}/events/{event.id}",
                "footer": {"text": f"Organized by {organizer_name}"},
                "timestamp": timezone.now().isoformat(),
            }
        ]
    }


@shared_task
def announce_event_published(event_id: str) -> None:
    """POST the announcement of a freshly published event to the organizer's webhook, if any."""
    event = Event.objects.get_queryset().with_organizer().get(pk=event_id)
    profile = getattr(event.organizer, "organizer_profile", None)
    if profile is None or not profile.discord_webhook:
        logger.info("event_announcement_skipped", event_id=event_id, reason="no_webhook")
        return
    response = requests.post(
        profile.discord_webhook, json=build_announcement(event), timeout=settings.WEBHOOK_TIMEOUT_SECONDS
    )
    response.raise_for_status()
    logger.info("event_announcement_sent", event_id=event_id, status_code=response.status_code)


@shared_task
def complete_finished_events() -> int:
    """Mark published events whose end date has passed as completed."""
    count = Event.objects.get_queryset().finished().update(
        status=Event.EventStatus.COMPLETED, updated_at=timezone.now()
    )
    if count:
        logger.info("events_auto_completed", count=count)
    return count

"""Calendar export: .ics files and "add to calendar" deep links."""

import re
import typing as t
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

from django.conf import settings
from django.utils import timezone
from ics import Calendar
from ics import Event as ICSEvent
from ics.alarm import DisplayAlarm
from ics.attendee import Organizer

from events.exceptions import InputValidationError
from events.models import Event

PRODID = "-//Felicity//Event Management//EN"
DESCRIPTION_MAX_LENGTH = 500
REMINDER_BEFORE = timedelta(hours=1)
GOOGLE_CALENDAR_URL = "https://www.google.com/calendar/render"
OUTLOOK_CALENDAR_URL = "https://outlook.live.com/calendar/0/deeplink/compose"


def format_ics_date(value: datetime) -> str:
    """Format a datetime in UTC as ``YYYYMMDDTHHMMSSZ``."""
    return value.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def _require_dates(event: Event) -> tuple[datetime, datetime]:
    if event.event_start_date is None or event.event_end_date is None:
        raise InputValidationError("Event dates are not set yet.")
    return event.event_start_date, event.event_end_date


def _organizer(event: Event) -> Organizer:
    profile = getattr(event.organizer, "organizer_profile", None)
    email = (profile.contact_email if profile else "") or event.organizer.email
    return Organizer(email=email, common_name=event.organizer.get_display_name())


def generate_ics(event: Event) -> bytes:
    """Generates an iCalendar (.ics) file for this event, with a reminder one hour before it starts.

    Raises:
        InputValidationError: if the event has no start or end date.
    """
    start, end = _require_dates(event)
    c = Calendar(creator=PRODID)
    c.scale = "GREGORIAN"
    c.method = "PUBLISH"

    e = ICSEvent()
    e.uid = f"{event.id}@{settings.CALENDAR_UID_DOMAIN}"
    e.name = event.name
    e.begin = start
    e.end = end
    e.created = timezone.now()
    e.description = event.description[:DESCRIPTION_MAX_LENGTH]
    if event.venue:
        e.location = event.venue
    e.organizer = _organizer(event)
    e.status = "CONFIRMED"
    e.alarms.append(DisplayAlarm(trigger=-REMINDER_BEFORE, display_text="Event reminder"))

    c.events.add(e)
    return t.cast(bytes, c.serialize().encode("utf-8"))


def ics_filename(event: Event) -> str:
    """A filesystem-safe file name for the event's .ics file."""
    return re.sub(r"[^a-zA-Z0-9]", "_", event.name) + ".ics"


def calendar_links(event: Event) -> dict[str, str]:
    """Google Calendar and Outlook deep links prefilled with the event."""
    start, end = _require_dates(event)
    details = event.description[:DESCRIPTION_MAX_LENGTH]
    google = {
        "action": "TEMPLATE",
        "text": event.name,
        "dates": f"{format_ics_date(start)}/{format_ics_date(end)}",
        "details": details,
        "location": event.venue,
        "sf": "true",
        "output": "xml",
    }
    outlook = {
        "subject": event.name,
        "startdt": start.astimezone(UTC).isoformat(),
        "enddt": end.astimezone(UTC).isoformat(),
        "body": details,
        "location": event.venue,
    }
    return {
        "google_calendar_url": f"{GOOGLE_CALENDAR_URL}?{urlencode(google)}",
        "outlook_url": f"{OUTLOOK_CALENDAR_URL}?{urlencode(outlook)}",
    }

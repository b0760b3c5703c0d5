from datetime import UTC, datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from events.exceptions import InputValidationError
from events.models import Event
from events.service import calendar_utils

pytestmark = pytest.mark.django_db


def test_format_ics_date_converts_to_utc() -> None:
    ist = timezone(timedelta(hours=5, minutes=30))
    assert calendar_utils.format_ics_date(datetime(2025, 2, 7, 18, 30, tzinfo=ist)) == "20250207T130000Z"


class TestGenerateIcs:
    def test_generate_ics(self, event: Event) -> None:
        ics_content = calendar_utils.generate_ics(event)

        assert isinstance(ics_content, bytes)
        ics_str = ics_content.decode("utf-8")
        assert "BEGIN:VCALENDAR" in ics_str
        assert "END:VCALENDAR" in ics_str
        assert "BEGIN:VEVENT" in ics_str
        assert calendar_utils.PRODID in ics_str
        assert f"UID:{event.id}@felicity.iiit.ac.in" in ics_str
        assert "Robo Wars" in ics_str
        assert "Himalaya Hall" in ics_str
        assert "robotics@clubs.test" in ics_str
        assert "BEGIN:VALARM" in ics_str

    def test_description_is_truncated(self, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(description="x" * 600)
        event.refresh_from_db()

        ics_str = calendar_utils.generate_ics(event).decode("utf-8")

        unfolded = ics_str.replace("\r\n ", "")
        assert "x" * 500 in unfolded
        assert "x" * 501 not in unfolded

    def test_no_location_without_venue(self, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(venue="")
        event.refresh_from_db()

        assert "LOCATION" not in calendar_utils.generate_ics(event).decode("utf-8")

    def test_requires_dates(self, event: Event) -> None:
        event.event_start_date = None

        with pytest.raises(InputValidationError):
            calendar_utils.generate_ics(event)


def test_ics_filename(event: Event) -> None:
    event.name = "Robo Wars: Finals!"
    assert calendar_utils.ics_filename(event) == "Robo_Wars__Finals_.ics"


def test_calendar_links(event: Event) -> None:
    start = datetime(2025, 3, 1, 10, 0, tzinfo=UTC)
    event.event_start_date = start
    event.event_end_date = start + timedelta(hours=2)

    links = calendar_utils.calendar_links(event)

    google = urlparse(links["google_calendar_url"])
    google_params = parse_qs(google.query)
    assert links["google_calendar_url"].startswith(calendar_utils.GOOGLE_CALENDAR_URL)
    assert google_params["action"] == ["TEMPLATE"]
    assert google_params["text"] == ["Robo Wars"]
    assert google_params["dates"] == ["20250301T100000Z/20250301T120000Z"]
    assert google_params["location"] == ["Himalaya Hall"]

    outlook_params = parse_qs(urlparse(links["outlook_url"]).query)
    assert links["outlook_url"].startswith(calendar_utils.OUTLOOK_CALENDAR_URL)
    assert outlook_params["subject"] == ["Robo Wars"]
    assert outlook_params["startdt"] == ["2025-03-01T10:00:00+00:00"]
    assert outlook_params["enddt"] == ["2025-03-01T12:00:00+00:00"]

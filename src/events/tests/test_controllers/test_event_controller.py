"""Tests for browsing events and registering."""

import orjson
import pytest
from django.shortcuts import reverse  # type: ignore[attr-defined]
from django.test.client import Client

from accounts.models import FelicityUser
from events.models import Event, MerchandiseVariant, Registration
from events.service import registration_service

pytestmark = pytest.mark.django_db


class TestListEvents:
    def test_anonymous_sees_published_events(self, client: Client, event: Event, merch_event: Event) -> None:
        Event.objects.create(organizer=event.organizer, name="Secret draft", description="Not yet.")

        response = client.get(reverse("api:list_events"))

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert {e["name"] for e in data["results"]} == {"Robo Wars", "Felicity T-shirt"}
        robo = next(e for e in data["results"] if e["name"] == "Robo Wars")
        assert robo["organizer_name"] == "Robotics Club"
        assert robo["is_registration_open"] is True
        assert robo["has_merchandise_stock"] is None

    def test_filter_by_event_type(self, client: Client, event: Event, merch_event: Event) -> None:
        response = client.get(reverse("api:list_events"), {"event_type": "merchandise"})

        assert [e["name"] for e in response.json()["results"]] == ["Felicity T-shirt"]

    def test_search(self, client: Client, event: Event, merch_event: Event) -> None:
        response = client.get(reverse("api:list_events"), {"search": "wars"})

        assert [e["name"] for e in response.json()["results"]] == ["Robo Wars"]


class TestGetEvent:
    def test_anonymous(self, client: Client, event: Event) -> None:
        response = client.get(reverse("api:get_event", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(event.pk)
        assert data["is_eligible"] is None
        assert data["is_registered"] is None

    def test_participant_sees_own_state(
        self, participant_client: Client, event: Event, confirmed_registration: Registration
    ) -> None:
        response = participant_client.get(reverse("api:get_event", kwargs={"event_id": event.pk}))

        data = response.json()
        assert data["is_eligible"] is True
        assert data["is_registered"] is True
        assert data["current_registrations"] == 1

    def test_draft_is_not_found(self, client: Client, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(status=Event.EventStatus.DRAFT)

        response = client.get(reverse("api:get_event", kwargs={"event_id": event.pk}))

        assert response.status_code == 404
        assert response.json()["code"] == "event_not_found"

    def test_merchandise_event_lists_variants(
        self, client: Client, merch_event: Event, variant: MerchandiseVariant
    ) -> None:
        response = client.get(reverse("api:get_event", kwargs={"event_id": merch_event.pk}))

        data = response.json()
        assert data["total_stock"] == 2
        assert data["has_merchandise_stock"] is True
        assert data["variants"][0]["name"] == "Black M"


class TestRegister:
    def url(self, event: Event) -> str:
        return reverse("api:register_for_event", kwargs={"event_id": event.pk})

    def test_register(self, participant_client: Client, event: Event, participant: FelicityUser) -> None:
        response = participant_client.post(self.url(event), data=orjson.dumps({}), content_type="application/json")

        assert response.status_code == 201, response.content
        data = response.json()
        assert data["message"] == registration_service.CONFIRMED_MESSAGE
        assert data["registration"]["status"] == "confirmed"
        assert data["registration"]["event"]["id"] == str(event.pk)
        assert data["registration"]["qr_code"].startswith("data:image/png;base64,")
        assert Registration.objects.filter(event=event, participant=participant).exists()

    def test_merchandise_order(
        self, participant_client: Client, merch_event: Event, variant: MerchandiseVariant
    ) -> None:
        payload = {"variant_id": str(variant.pk), "quantity": 2}

        response = participant_client.post(
            self.url(merch_event), data=orjson.dumps(payload), content_type="application/json"
        )

        assert response.status_code == 201, response.content
        data = response.json()
        assert data["message"] == registration_service.PENDING_MESSAGE
        assert data["registration"]["status"] == "pending"
        assert data["registration"]["total_price"] == "200.00"

    def test_duplicate_registration(
        self, participant_client: Client, event: Event, confirmed_registration: Registration
    ) -> None:
        response = participant_client.post(self.url(event), data=orjson.dumps({}), content_type="application/json")

        assert response.status_code == 409
        assert response.json() == {
            "code": "already_registered",
            "detail": "You are already registered for this event.",
        }

    def test_not_eligible(self, participant_client: Client, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(eligibility=Event.Eligibility.IIIT_ONLY)

        response = participant_client.post(self.url(event), data=orjson.dumps({}), content_type="application/json")

        assert response.status_code == 403
        assert response.json()["code"] == "not_eligible"

    def test_event_full(self, participant_client: Client, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(registration_limit=1, current_registrations=1)

        response = participant_client.post(self.url(event), data=orjson.dumps({}), content_type="application/json")

        assert response.status_code == 409
        assert response.json()["code"] == "event_full"

    def test_missing_form_answer(self, participant_client: Client, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(custom_form=[{"label": "Team name", "required": True}])

        response = participant_client.post(self.url(event), data=orjson.dumps({}), content_type="application/json")

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
        assert "Team name" in response.json()["detail"]

    def test_organizers_cannot_register(self, organizer_client: Client, event: Event) -> None:
        response = organizer_client.post(self.url(event), data=orjson.dumps({}), content_type="application/json")

        assert response.status_code == 403

    def test_anonymous_cannot_register(self, client: Client, event: Event) -> None:
        response = client.post(self.url(event), data=orjson.dumps({}), content_type="application/json")

        assert response.status_code == 401


class TestCalendar:
    def test_download_ics(self, client: Client, event: Event) -> None:
        response = client.get(reverse("api:event_ics", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/calendar")
        assert response["Content-Disposition"] == 'attachment; filename="Robo_Wars.ics"'
        assert b"BEGIN:VCALENDAR" in response.content

    def test_calendar_links(self, client: Client, event: Event) -> None:
        response = client.get(reverse("api:event_calendar_links", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        data = response.json()
        assert data["google_calendar_url"].startswith("https://www.google.com/calendar/render?")
        assert data["outlook_url"].startswith("https://outlook.live.com/calendar/0/deeplink/compose?")

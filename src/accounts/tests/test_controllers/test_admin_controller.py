import orjson
import pytest
from django.shortcuts import reverse  # type: ignore[attr-defined]
from django.test.client import Client

from accounts.models import FelicityUser, OrganizerProfile

pytestmark = pytest.mark.django_db


def test_create_organizer(admin_client_jwt: Client) -> None:
    payload = {"login_email": "drama@clubs.test", "password": "Initial-pass-123", "name": "Drama Club"}

    response = admin_client_jwt.post(
        reverse("api:create_organizer"), data=orjson.dumps(payload), content_type="application/json"
    )

    assert response.status_code == 201, response.content
    data = response.json()
    assert data["name"] == "Drama Club"
    assert data["user"]["email"] == "drama@clubs.test"
    assert FelicityUser.objects.get(email="drama@clubs.test").role == FelicityUser.Role.ORGANIZER


def test_list_organizers(admin_client_jwt: Client, organizer: FelicityUser) -> None:
    response = admin_client_jwt.get(reverse("api:list_organizers"))

    assert response.status_code == 200
    assert [o["name"] for o in response.json()] == ["Robotics Club"]


def test_deactivate_organizer(admin_client_jwt: Client, organizer: FelicityUser) -> None:
    profile = OrganizerProfile.objects.get(user=organizer)
    url = reverse("api:set_organizer_active", kwargs={"organizer_id": profile.pk})

    response = admin_client_jwt.post(url, data=orjson.dumps({"is_active": False}), content_type="application/json")

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    organizer.refresh_from_db()
    assert organizer.is_active is False


@pytest.mark.parametrize("client_fixture", ["participant_client", "organizer_client"])
def test_only_platform_admins(client_fixture: str, request: pytest.FixtureRequest) -> None:
    client: Client = request.getfixturevalue(client_fixture)

    response = client.get(reverse("api:list_organizers"))

    assert response.status_code == 403

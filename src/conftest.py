import secrets
import string
import typing as t
from datetime import datetime, timedelta
from decimal import Decimal

import faker
import pytest
from django.test.client import Client
from django.utils import timezone
from ninja_jwt.tokens import RefreshToken
from pytest import MonkeyPatch

from accounts.models import FelicityUser, OrganizerProfile
from events.models import Event, MerchandiseVariant


@pytest.fixture(autouse=True)
def increase_rate_limit(monkeypatch: MonkeyPatch) -> None:
    """Increase the rate limits so tests never hit them."""
    for throttle in (
        "AnonDefaultThrottle",
        "UserDefaultThrottle",
        "AuthThrottle",
        "UserRegistrationThrottle",
        "WriteThrottle",
        "CheckInThrottle",
    ):
        monkeypatch.setattr(f"common.throttling.{throttle}.rate", "10000/min")


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously.

    This ensures that Celery tasks run immediately in the same process,
    allowing tests to verify their side effects without async complications.
    """
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class FelicityUserFactory:
    """Factory for creating FelicityUser instances for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> FelicityUser:
        username = kwargs.pop(
            "username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(8)) + "@user.test"
        )
        email = kwargs.pop("email", username + ("@test.com" if "@" not in username else ""))
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        return FelicityUser.objects.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> FelicityUser:
        return self.create_user(**kwargs)


@pytest.fixture
def user_factory() -> FelicityUserFactory:
    return FelicityUserFactory()


@pytest.fixture
def participant(user_factory: FelicityUserFactory) -> FelicityUser:
    """A non-IIIT participant."""
    return user_factory(
        email="participant@example.com",
        role=FelicityUser.Role.PARTICIPANT,
        participant_type=FelicityUser.ParticipantType.NON_IIIT,
    )


@pytest.fixture
def iiit_participant(user_factory: FelicityUserFactory) -> FelicityUser:
    """An IIIT participant."""
    return user_factory(
        email="student@students.iiit.ac.in",
        role=FelicityUser.Role.PARTICIPANT,
        participant_type=FelicityUser.ParticipantType.IIIT,
    )


@pytest.fixture
def organizer(user_factory: FelicityUserFactory) -> FelicityUser:
    """An organizer with a profile."""
    user = user_factory(email="club@clubs.test", role=FelicityUser.Role.ORGANIZER)
    OrganizerProfile.objects.create(
        user=user,
        name="Robotics Club",
        category=OrganizerProfile.Category.TECHNICAL,
        contact_email="robotics@clubs.test",
    )
    return user


@pytest.fixture
def other_organizer(user_factory: FelicityUserFactory) -> FelicityUser:
    """An organizer who owns none of the test events."""
    user = user_factory(email="other@clubs.test", role=FelicityUser.Role.ORGANIZER)
    OrganizerProfile.objects.create(user=user, name="Chess Club", contact_email="chess@clubs.test")
    return user


@pytest.fixture
def platform_admin(django_user_model: type[FelicityUser]) -> FelicityUser:
    """A superuser, i.e. a platform admin."""
    return django_user_model.objects.create_superuser(username="admin", email="admin@felicity.test", password="pass")


def client_for(user: FelicityUser) -> Client:
    """API client authenticated as ``user``."""
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def participant_client(participant: FelicityUser) -> Client:
    return client_for(participant)


@pytest.fixture
def organizer_client(organizer: FelicityUser) -> Client:
    return client_for(organizer)


@pytest.fixture
def other_organizer_client(other_organizer: FelicityUser) -> Client:
    return client_for(other_organizer)


@pytest.fixture
def admin_client_jwt(platform_admin: FelicityUser) -> Client:
    return client_for(platform_admin)


@pytest.fixture
def next_week() -> datetime:
    return timezone.now() + timedelta(days=7)


@pytest.fixture
def event(organizer: FelicityUser, next_week: datetime) -> Event:
    """A published normal event open for registration, without limit."""
    return Event.objects.create(
        organizer=organizer,
        name="Robo Wars",
        description="Build a robot, break a robot.",
        status=Event.EventStatus.PUBLISHED,
        registration_deadline=next_week - timedelta(days=1),
        event_start_date=next_week,
        event_end_date=next_week + timedelta(hours=4),
        venue="Himalaya Hall",
    )


@pytest.fixture
def merch_event(organizer: FelicityUser, next_week: datetime) -> Event:
    """A published merchandise event selling T-shirts at 100."""
    return Event.objects.create(
        organizer=organizer,
        name="Felicity T-shirt",
        description="The official festival T-shirt.",
        event_type=Event.EventType.MERCHANDISE,
        status=Event.EventStatus.PUBLISHED,
        registration_fee=Decimal("100"),
        purchase_limit=3,
        registration_deadline=next_week - timedelta(days=1),
        event_start_date=next_week,
        event_end_date=next_week + timedelta(days=2),
    )


@pytest.fixture
def variant(merch_event: Event) -> MerchandiseVariant:
    """Two medium T-shirts in stock."""
    variant = MerchandiseVariant.objects.create(event=merch_event, name="Black M", size="M", color="Black", stock=2)
    merch_event.refresh_total_stock()
    return variant

from smtplib import SMTPException
from unittest.mock import patch

import pytest
from ninja.errors import HttpError

from accounts import schema
from accounts.models import FelicityUser, OrganizerProfile
from accounts.service import account_service
from common.models import EmailLog

pytestmark = pytest.mark.django_db


def signup(email: str, **kwargs: str) -> schema.ParticipantRegisterSchema:
    return schema.ParticipantRegisterSchema(
        email=email,
        password1=kwargs.pop("password", "Str0ng-enough!"),
        password2=kwargs.pop("password2", "Str0ng-enough!"),
        first_name="Ada",
        **kwargs,
    )


class TestRegisterParticipant:
    def test_iiit_participant(self) -> None:
        user = account_service.register_participant(signup("Ada@Students.IIIT.ac.in", college_name="Elsewhere"))

        assert user.email == "ada@students.iiit.ac.in"
        assert user.username == "ada@students.iiit.ac.in"
        assert user.role == FelicityUser.Role.PARTICIPANT
        assert user.participant_type == FelicityUser.ParticipantType.IIIT
        assert user.college_name == "IIIT Hyderabad"
        assert user.check_password("Str0ng-enough!")

    def test_non_iiit_participant(self) -> None:
        user = account_service.register_participant(signup("ada@example.com", college_name="MIT"))

        assert user.participant_type == FelicityUser.ParticipantType.NON_IIIT
        assert user.college_name == "MIT"

    def test_duplicate_email(self, participant: FelicityUser) -> None:
        with pytest.raises(HttpError) as exc_info:
            account_service.register_participant(signup("PARTICIPANT@example.com"))
        assert exc_info.value.status_code == 400

    def test_weak_password(self) -> None:
        with pytest.raises(HttpError):
            account_service.register_participant(signup("ada@example.com", password="password", password2="password"))

    def test_passwords_must_match(self) -> None:
        with pytest.raises(ValueError):
            signup("ada@example.com", password2="something-else")


class TestOrganizers:
    def test_create_organizer(
        self,
        platform_admin: FelicityUser,
        django_capture_on_commit_callbacks: object,
        mailoutbox: list[object],
    ) -> None:
        payload = schema.OrganizerCreateSchema(
            login_email="Dance@clubs.test",
            password="Initial-pass-123",
            name="Dance Crew",
            category=OrganizerProfile.Category.CULTURAL,
            contact_email="crew@dance.test",
        )

        with django_capture_on_commit_callbacks(execute=True):  # type: ignore[operator]
            profile = account_service.create_organizer(payload, created_by=platform_admin)

        assert profile.user.email == "dance@clubs.test"
        assert profile.user.role == FelicityUser.Role.ORGANIZER
        assert profile.user.participant_type is None
        assert profile.created_by == platform_admin
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ["crew@dance.test"]  # type: ignore[attr-defined]
        assert "Initial-pass-123" in mailoutbox[0].body  # type: ignore[attr-defined]

    def test_credentials_never_reach_the_task_queue(
        self, platform_admin: FelicityUser, django_capture_on_commit_callbacks: object, mailoutbox: list[object]
    ) -> None:
        payload = schema.OrganizerCreateSchema(login_email="film@clubs.test", password="Initial-pass-123", name="Film")

        with patch("celery.app.task.Task.apply_async") as apply_async:
            with django_capture_on_commit_callbacks(execute=True):  # type: ignore[operator]
                account_service.create_organizer(payload, created_by=platform_admin)

        apply_async.assert_not_called()
        assert len(mailoutbox) == 1
        log = EmailLog.objects.get(to="film@clubs.test")
        assert log.kind == EmailLog.Kind.ORGANIZER_CREDENTIALS
        assert log.body is None

    def test_failed_credentials_email_keeps_the_organizer(
        self, platform_admin: FelicityUser, django_capture_on_commit_callbacks: object
    ) -> None:
        payload = schema.OrganizerCreateSchema(login_email="art@clubs.test", password="Initial-pass-123", name="Art")

        with patch("accounts.service.account_service.send_email", side_effect=SMTPException("down")):
            with django_capture_on_commit_callbacks(execute=True):  # type: ignore[operator]
                profile = account_service.create_organizer(payload, created_by=platform_admin)

        assert OrganizerProfile.objects.filter(pk=profile.pk, user__email="art@clubs.test").exists()

    def test_contact_email_defaults_to_login(self, platform_admin: FelicityUser) -> None:
        payload = schema.OrganizerCreateSchema(login_email="quiz@clubs.test", password="Initial-pass-123", name="Quiz")

        profile = account_service.create_organizer(payload, created_by=platform_admin)

        assert profile.contact_email == "quiz@clubs.test"

    def test_deactivate_organizer(self, organizer: FelicityUser) -> None:
        account_service.set_organizer_active(organizer.organizer_profile, False)

        organizer.refresh_from_db()
        assert organizer.is_active is False
        assert organizer.organizer_profile.is_active is False

    def test_list_organizers(self, organizer: FelicityUser, other_organizer: FelicityUser) -> None:
        assert [p.name for p in account_service.list_organizers()] == ["Chess Club", "Robotics Club"]

import base64
from datetime import timedelta

import pytest
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone
from freezegun import freeze_time

from common.models import EmailLog
from common.tasks import cleanup_email_logs, send_email

pytestmark = pytest.mark.django_db


def test_send_email(mailoutbox: list[EmailMultiAlternatives]) -> None:
    send_email(
        to=["a@example.com", "b@example.com"],
        subject="Hello",
        body="Plain",
        html_body="<p>Rich</p>",
        attachments=[{"filename": "t.txt", "content": base64.b64encode(b"ticket").decode(), "mimetype": "text/plain"}],
    )

    assert len(mailoutbox) == 1
    message = mailoutbox[0]
    assert message.to == ["a@example.com", "b@example.com"]
    assert message.alternatives[0][0] == "<p>Rich</p>"
    assert message.attachments[0][1] == b"ticket"
    logs = EmailLog.objects.order_by("to")
    assert [log.to for log in logs] == ["a@example.com", "b@example.com"]
    assert logs[0].body == "Plain"
    assert logs[0].html == "<p>Rich</p>"
    assert logs[0].kind == EmailLog.Kind.GENERAL
    assert logs[0].attachment_count == 1


def test_send_email_does_not_store_credentials(mailoutbox: list[EmailMultiAlternatives]) -> None:
    send_email(
        to="club@clubs.test",
        subject="Your account",
        body="password: hunter22",
        html_body="<p>password: hunter22</p>",
        kind=EmailLog.Kind.ORGANIZER_CREDENTIALS,
    )

    assert "hunter22" in mailoutbox[0].body
    log = EmailLog.objects.get(to="club@clubs.test")
    assert log.kind == EmailLog.Kind.ORGANIZER_CREDENTIALS
    assert log.body is None
    assert log.html is None


def test_cleanup_email_logs() -> None:
    now = timezone.now()
    with freeze_time(now - timedelta(days=8)):
        send_email(to="old@example.com", subject="Old", body="old")
    with freeze_time(now - timedelta(days=2)):
        send_email(to="recent@example.com", subject="Recent", body="recent")
    send_email(to="new@example.com", subject="New", body="new")

    cleanup_email_logs()

    assert not EmailLog.objects.filter(to="old@example.com").exists()
    recent = EmailLog.objects.get(to="recent@example.com")
    assert recent.body is None
    assert EmailLog.objects.get(to="new@example.com").body == "new"

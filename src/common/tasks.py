"""Common tasks."""

import base64
import typing as t
from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone

from common.models import EmailLog

logger = structlog.get_logger(__name__)


@shared_task
def send_email(
    *,
    to: str | list[str],
    subject: str,
    body: str,
    html_body: str | None = None,
    attachments: list[dict[str, t.Any]] | None = None,
    kind: str = EmailLog.Kind.GENERAL,
) -> None:
    """Send an email and keep a compressed copy of it in the EmailLog.

    Args:
        to (str | list[str]): The recipient(s).
        subject (str): The email subject.
        body (str): The plain text body.
        html_body (str | None): The HTML body.
        attachments (list[dict] | None): Inline attachments as dicts with
            ``filename``, ``content`` (base64) and ``mimetype``.
        kind (str): The EmailLog kind. Bodies of credential emails are never stored.

    Returns:
        None
    """
    recipients = [to] if isinstance(to, str) else to
    email_msg = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=recipients,
    )
    if html_body:
        email_msg.attach_alternative(html_body, "text/html")
    for attachment in attachments or []:
        email_msg.attach(
            attachment["filename"],
            base64.b64decode(attachment["content"]),
            attachment["mimetype"],
        )
    email_msg.send(fail_silently=False)
    email_logs: list[EmailLog] = []
    for recipient in recipients:
        el = EmailLog(to=recipient, subject=subject, kind=kind, attachment_count=len(attachments or []))
        if kind != EmailLog.Kind.ORGANIZER_CREDENTIALS:
            el.set_body(body=body)
            if html_body:
                el.set_html(html_body=html_body)
        email_logs.append(el)
    EmailLog.objects.bulk_create(email_logs)
    logger.info("email_sent", kind=kind, subject=subject, recipient_count=len(recipients))


@shared_task
def cleanup_email_logs() -> None:
    """Clean up email logs."""
    older_than_a_week = EmailLog.objects.filter(sent_at__lte=timezone.now() - timedelta(days=7))
    older_than_a_week.delete()

    # drop the bodies for anything older than a day
    older_than_a_day = EmailLog.objects.filter(sent_at__lte=timezone.now() - timedelta(days=1))
    older_than_a_day.update(compressed_body=None, compressed_html=None)

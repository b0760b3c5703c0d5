"""Sign-up for participants and provisioning of organizer accounts."""

import structlog
from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet
from django.template.loader import render_to_string
from ninja.errors import HttpError

from accounts import schema
from accounts.models import FelicityUser, OrganizerProfile, participant_type_for_email
from common.models import EmailLog
from common.tasks import send_email

logger = structlog.get_logger(__name__)


def register_participant(payload: schema.ParticipantRegisterSchema) -> FelicityUser:
    """Register a new participant.

    The participant type is derived from the email domain. IIIT participants always get the
    configured IIIT college name.

    Args:
        payload (schema.ParticipantRegisterSchema): The sign-up data.

    Returns:
        FelicityUser: The newly created participant.
    """
    email = payload.email.lower()
    logger.info("participant_registration_started", email=email)
    if FelicityUser.objects.filter(email__iexact=email).exists():
        logger.warning("participant_registration_duplicate", email=email)
        raise HttpError(400, "A user with this email already exists.")
    try:
        validate_password(payload.password1)
    except ValidationError as e:
        raise HttpError(400, " ".join(e.messages)) from e

    participant_type = participant_type_for_email(email)
    college_name = payload.college_name
    if participant_type == FelicityUser.ParticipantType.IIIT:
        college_name = settings.IIIT_COLLEGE_NAME

    user = FelicityUser.objects.create_user(
        username=email,
        email=email,
        password=payload.password1,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=FelicityUser.Role.PARTICIPANT,
        participant_type=participant_type,
        contact_number=payload.contact_number,
        college_name=college_name,
    )
    logger.info("participant_registration_completed", user_id=str(user.id), participant_type=participant_type)
    return user


@transaction.atomic
def create_organizer(payload: schema.OrganizerCreateSchema, created_by: FelicityUser) -> OrganizerProfile:
    """Provision an organizer login together with its profile and mail the credentials.

    Args:
        payload (schema.OrganizerCreateSchema): The organizer data.
        created_by (FelicityUser): The admin creating the account.

    Returns:
        OrganizerProfile: The new organizer's profile.
    """
    login_email = payload.login_email.lower()
    if FelicityUser.objects.filter(email__iexact=login_email).exists():
        raise HttpError(400, "A user with this email already exists.")
    user = FelicityUser.objects.create_user(
        username=login_email,
        email=login_email,
        password=payload.password,
        role=FelicityUser.Role.ORGANIZER,
    )
    profile = OrganizerProfile.objects.create(
        user=user,
        name=payload.name,
        category=payload.category,
        description=payload.description,
        contact_email=payload.contact_email or login_email,
        contact_number=payload.contact_number,
        discord_webhook=payload.discord_webhook,
        created_by=created_by,
    )
    logger.info("organizer_created", organizer_id=str(profile.id), created_by=str(created_by.id))
    password = payload.password
    transaction.on_commit(lambda: _send_credentials_email(profile, login_email, password))
    return profile


def _send_credentials_email(profile: OrganizerProfile, login_email: str, password: str) -> None:
    """Mail the login credentials to a freshly provisioned organizer.

    Sent in-process so the password is never serialized into the task broker.
    """
    context = {
        "organizer_name": profile.name,
        "login_email": login_email,
        "password": password,
        "login_link": f"{settings.FRONTEND_BASE_URL}/login",
    }
    try:
        send_email(
            to=profile.contact_email,
            subject=f"Your {settings.SITE_NAME} organizer account",
            body=render_to_string("accounts/emails/organizer_credentials_body.txt", context),
            html_body=render_to_string("accounts/emails/organizer_credentials_body.html", context),
            kind=EmailLog.Kind.ORGANIZER_CREDENTIALS,
        )
    except Exception:
        logger.exception("organizer_credentials_email_failed", organizer_id=str(profile.id))
        return
    logger.info("organizer_credentials_email_sent", organizer_id=str(profile.id))


def set_organizer_active(profile: OrganizerProfile, is_active: bool) -> OrganizerProfile:
    """Activate or deactivate an organizer.

    A deactivated organizer keeps its events but cannot log in anymore.
    """
    with transaction.atomic():
        profile.is_active = is_active
        profile.save(update_fields=["is_active", "updated_at"])
        FelicityUser.objects.filter(pk=profile.user_id).update(is_active=is_active)
    logger.info("organizer_active_changed", organizer_id=str(profile.id), is_active=is_active)
    return profile


def list_organizers() -> QuerySet[OrganizerProfile]:
    """All organizer profiles with their login user."""
    return OrganizerProfile.objects.select_related("user").order_by("name")

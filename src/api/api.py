from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI

from accounts.controllers.admin import OrganizerAdminController
from accounts.controllers.auth import AuthController
from common.schema import ResponseOk, VersionResponse
from common.throttling import AnonDefaultThrottle, UserDefaultThrottle
from events.controllers.events import EventController
from events.controllers.organizer import OrganizerEventController
from events.controllers.registrations import ParticipantRegistrationController
from events.exceptions import FelicityError

from .exception_handlers import handle_django_validation_error, handle_felicity_error, handle_general_exception

api = NinjaExtraAPI(
    title="Felicity Backend API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"Felicity API {settings.VERSION}",
    app_name=f"felicity-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
    throttle=[AnonDefaultThrottle(), UserDefaultThrottle()],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, ResponseOk()


api.register_controllers(
    # Auth/Account controllers
    AuthController,
    OrganizerAdminController,
    # Event controllers
    EventController,
    ParticipantRegistrationController,
    OrganizerEventController,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    FelicityError: handle_felicity_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)

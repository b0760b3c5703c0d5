"""This module contains the controllers for authentication and participant sign-up."""

import typing as t

import structlog
from ninja_extra import api_controller, route, status
from ninja_jwt.controller import TokenObtainPairController
from ninja_jwt.schema import TokenObtainPairInputSchema, TokenObtainPairOutputSchema

from accounts import schema
from accounts.models import FelicityUser
from accounts.service import account_service
from common.schema import ValidationErrorResponse
from common.throttling import AuthThrottle, UserRegistrationThrottle

logger = structlog.get_logger(__name__)


@api_controller("/auth", tags=["Auth"], throttle=AuthThrottle())
class AuthController(TokenObtainPairController):
    @route.post("/token/pair", response=TokenObtainPairOutputSchema, url_name="token_obtain_pair")
    def obtain_token(self, user_token: TokenObtainPairInputSchema) -> TokenObtainPairOutputSchema:
        """Authenticate with username (the login email) and password to obtain JWT access/refresh tokens.

        Deactivated organizers are refused with 401.
        """
        user = t.cast(FelicityUser, user_token._user)
        logger.info("token_obtained", user_id=str(user.id), role=user.role)
        return t.cast(TokenObtainPairOutputSchema, user_token.to_response_schema())  # type: ignore[no-untyped-call]

    @route.post(
        "/register",
        response={201: schema.FelicityUserSchema, 400: ValidationErrorResponse},
        url_name="register_participant",
        throttle=UserRegistrationThrottle(),
    )
    def register(self, payload: schema.ParticipantRegisterSchema) -> tuple[int, FelicityUser]:
        """Create a participant account.

        Addresses on an IIIT domain become IIIT participants, everyone else is a non-IIIT participant.
        The participant type decides which events the participant is eligible for.
        """
        user = account_service.register_participant(payload)
        return status.HTTP_201_CREATED, user

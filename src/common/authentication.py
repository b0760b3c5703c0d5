import typing as t

from django.contrib.auth.models import AnonymousUser
from django.http import HttpRequest
from ninja_jwt.authentication import JWTAuth


class OptionalAuth(JWTAuth):
    """Optional JWT authentication.

    Allows endpoints to work with or without authentication:
    - If JWT token present: authenticates the user
    - If no JWT token: sets request.user to AnonymousUser and continues

    Used for public browsing endpoints that show extra information to logged-in participants.
    """

    def __call__(self, request: HttpRequest) -> t.Any | None:
        """Overrides JWTAuth __call__ to provide optional auth."""
        auth_value = request.headers.get(self.header)
        if not auth_value:
            request.user = AnonymousUser()
            return request.user
        parts = auth_value.split(" ")
        if parts[0].lower() != self.openapi_scheme:
            return None
        token = " ".join(parts[1:])
        return self.authenticate(request, token)

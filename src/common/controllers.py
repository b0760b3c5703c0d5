import typing as t

from django.contrib.auth.models import AnonymousUser
from ninja_extra import ControllerBase

from accounts.models import FelicityUser


class UserAwareController(ControllerBase):
    def maybe_user(self) -> FelicityUser | AnonymousUser:
        """Get the user for this request."""
        return t.cast(FelicityUser | AnonymousUser, self.context.request.user)  # type: ignore[union-attr]

    def user(self) -> FelicityUser:
        """Get the user for this request."""
        return t.cast(FelicityUser, self.context.request.user)  # type: ignore[union-attr]

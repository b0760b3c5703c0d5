from django.http import HttpRequest
from ninja_extra import ControllerBase
from ninja_extra.permissions import BasePermission

from accounts.models import FelicityUser


class RolePermission(BasePermission):
    """Grant access to authenticated users holding one of ``roles``."""

    roles: tuple[FelicityUser.Role, ...] = ()

    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Check the role of the authenticated user."""
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:  # type: ignore[union-attr]
            return True
        return user.role in self.roles  # type: ignore[union-attr]


class IsParticipant(RolePermission):
    roles = (FelicityUser.Role.PARTICIPANT,)


class IsOrganizer(RolePermission):
    roles = (FelicityUser.Role.ORGANIZER,)


class IsPlatformAdmin(RolePermission):
    roles = (FelicityUser.Role.ADMIN,)

from django.http import HttpRequest
from ninja_extra import ControllerBase
from ninja_extra.permissions import BasePermission

from events import models


class EventOwnerPermission(BasePermission):
    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Must implement abstract method. This is due to an error in Ninja Extra.

        This Method will be ignored, only has_object_permission will be called.
        """
        return True

    def has_object_permission(self, request: HttpRequest, controller: ControllerBase, obj: models.Event) -> bool:
        """Only the organizer who created the event may manage it."""
        if request.user.is_superuser:  # type: ignore[union-attr]
            return True
        return bool(obj.organizer_id == request.user.id)

from uuid import UUID

from django.db.models import QuerySet
from django.shortcuts import get_object_or_404
from ninja_extra import api_controller, route, status
from ninja_jwt.authentication import JWTAuth

from accounts import schema
from accounts.models import OrganizerProfile
from accounts.permissions import IsPlatformAdmin
from accounts.service import account_service
from common.controllers import UserAwareController
from common.throttling import WriteThrottle


@api_controller(
    "/admin/organizers",
    auth=JWTAuth(),
    permissions=[IsPlatformAdmin()],
    tags=["Admin"],
    throttle=WriteThrottle(),
)
class OrganizerAdminController(UserAwareController):
    """Provisioning of organizer accounts by platform admins."""

    @route.post("", url_name="create_organizer", response={201: schema.OrganizerProfileSchema})
    def create_organizer(self, payload: schema.OrganizerCreateSchema) -> tuple[int, OrganizerProfile]:
        """Create an organizer login and profile. The credentials are emailed to the contact address."""
        return status.HTTP_201_CREATED, account_service.create_organizer(payload, created_by=self.user())

    @route.get("", url_name="list_organizers", response=list[schema.OrganizerProfileSchema])
    def list_organizers(self) -> QuerySet[OrganizerProfile]:
        """List all organizers, active or not."""
        return account_service.list_organizers()

    @route.post("/{organizer_id}/active", url_name="set_organizer_active", response=schema.OrganizerProfileSchema)
    def set_active(self, organizer_id: UUID, payload: schema.OrganizerActiveSchema) -> OrganizerProfile:
        """Activate or deactivate an organizer. Deactivated organizers cannot log in."""
        profile = get_object_or_404(OrganizerProfile.objects.select_related("user"), pk=organizer_id)
        return account_service.set_organizer_active(profile, payload.is_active)

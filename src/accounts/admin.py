from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from accounts.models import FelicityUser, OrganizerProfile


@admin.register(FelicityUser)
class FelicityUserAdmin(UserAdmin):  # type: ignore[type-arg]
    list_display = ["username", "email", "role", "participant_type", "is_active"]
    list_filter = ["role", "participant_type", "is_active"]
    fieldsets = (
        *UserAdmin.fieldsets,  # type: ignore[misc]
        ("Felicity", {"fields": ("role", "participant_type", "contact_number", "college_name")}),
    )


@admin.register(OrganizerProfile)
class OrganizerProfileAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["name", "category", "contact_email", "is_active"]
    list_filter = ["category", "is_active"]
    search_fields = ["name", "contact_email", "user__email"]
    raw_id_fields = ["user", "created_by"]

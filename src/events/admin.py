from django.contrib import admin

from events.models import Event, MerchandiseVariant, Registration


class MerchandiseVariantInline(admin.TabularInline):  # type: ignore[type-arg]
    model = MerchandiseVariant
    extra = 0
    fields = ["name", "size", "color", "stock", "price_modifier"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = [
        "name",
        "organizer",
        "event_type",
        "status",
        "event_start_date",
        "current_registrations",
        "registration_limit",
    ]
    list_filter = ["event_type", "status", "eligibility"]
    search_fields = ["name", "organizer__email", "organizer__organizer_profile__name"]
    readonly_fields = ["current_registrations", "total_stock", "created_at", "updated_at"]
    raw_id_fields = ["organizer"]
    date_hierarchy = "event_start_date"
    inlines = [MerchandiseVariantInline]


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["ticket_id", "event", "participant", "status", "payment_status", "attended", "created_at"]
    list_filter = ["status", "payment_status", "approval_status", "attended"]
    search_fields = ["ticket_id", "participant__email", "event__name"]
    readonly_fields = [
        "ticket_id",
        "qr_code",
        "reviewed_by",
        "reviewed_at",
        "attended_at",
        "checked_in_by",
        "cancelled_at",
        "created_at",
        "updated_at",
    ]
    raw_id_fields = ["event", "participant", "variant"]

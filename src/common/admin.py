from django.contrib import admin

from common.models import EmailLog


@admin.register(EmailLog)
class EmailLogAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["to", "kind", "subject", "attachment_count", "sent_at"]
    list_filter = ["kind"]
    search_fields = ["to", "subject"]
    readonly_fields = ["to", "kind", "subject", "attachment_count", "sent_at", "body", "html"]
    exclude = ["compressed_body", "compressed_html"]
    date_hierarchy = "sent_at"

from django.contrib import admin

from .models import SupportMessage


class SupportMessageAdmin(admin.ModelAdmin):
    list_display = ("created_at", "sender_name", "receiver", "is_from_admin", "read")
    list_filter = ("is_from_admin", "read")
    search_fields = ("sender_name", "message")


admin.site.register(SupportMessage, SupportMessageAdmin)

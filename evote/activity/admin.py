from django.contrib import admin

from .models import ActivityLog


class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "action", "user_name", "user_email", "ip_address")
    list_filter = ("action",)
    search_fields = ("user_name", "user_email", "details")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


admin.site.register(ActivityLog, ActivityLogAdmin)

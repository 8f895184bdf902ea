import logging

from django.contrib import admin

from .models import Candidate, Election

logger = logging.getLogger("elections")


class CandidateInline(admin.TabularInline):
    model = Candidate
    extra = 0
    readonly_fields = ("vote_count",)


class ElectionAdmin(admin.ModelAdmin):
    list_display = ("title", "start_time", "end_time", "status", "total_votes")
    search_fields = ("title",)
    readonly_fields = ("total_votes", "created_at", "updated_at")
    inlines = [CandidateInline]

    def has_change_permission(self, request, obj=None):
        return request.user.is_superuser

    def has_view_permission(self, request, obj=None):
        return request.user.is_staff or request.user.is_superuser

    def save_model(self, request, obj, form, change):
        if change:
            logger.info(
                f"Election updated by admin : {request.user.username} - {obj.id}"
            )
        else:
            logger.info(
                f"Election created by admin: {request.user.username} - {obj.id}"
            )
        super().save_model(request, obj, form, change)


class CandidateAdmin(admin.ModelAdmin):
    list_display = ("name", "party", "election", "vote_count")
    list_filter = ("election",)
    readonly_fields = ("vote_count",)

    def has_add_permission(self, request):
        return request.user.is_superuser

    def has_view_permission(self, request, obj=None):
        return request.user.is_staff or request.user.is_superuser

    def has_change_permission(self, request, obj=None):
        return request.user.is_superuser

    def save_model(self, request, obj, form, change):
        if change:
            logger.info(
                f"Candidate updated by admin: {request.user.username} - {obj.id}"
            )
        else:
            logger.info(
                f"Candidate added by admin : {request.user.username} - {obj.id}"
            )
        super().save_model(request, obj, form, change)


admin.site.register(Election, ElectionAdmin)
admin.site.register(Candidate, CandidateAdmin)

from django.contrib import admin

from .models import Vote


class VoteAdmin(admin.ModelAdmin):
    list_display = ("voter", "election", "candidate", "voted_at")
    list_filter = ("election",)

    # Votes are never edited once cast
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


admin.site.register(Vote, VoteAdmin)

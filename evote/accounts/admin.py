import logging

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User

logger = logging.getLogger('accounts')


class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'name', 'email', 'role', 'verified', 'status', 'registration_id')
    list_filter = ('role', 'verified', 'status', 'is_staff')
    search_fields = ('username', 'name', 'email', 'registration_id')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Portal', {'fields': ('name', 'role', 'verified', 'status', 'registration_id', 'profile_image', 'language')}),
    )

    def has_change_permission(self, request, obj = None):
        return request.user.is_superuser

    def has_delete_permission(self, request, obj = None):
        return request.user.is_superuser

    def has_view_permission(self, request, obj = None):
        return request.user.is_superuser or request.user.is_staff

    def save_model(self, request, obj, form, change):
        if change:
            logger.info(f'User updated by admin: {request.user.username} - {obj.username}')
        else:
            logger.info(f"User created by admin: {request.user.username}- {obj.username}")
        super().save_model(request, obj, form, change)

admin.site.register(User, UserAdmin)

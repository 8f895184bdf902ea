from rest_framework import permissions


class IsAnonymousUser(permissions.BasePermission):
    """
    Custom permissions to only allow anonymous user to access a view
    """

    def has_permission(self, request, view):
        # The request is granted if the user is not authenticated
        return not request.user.is_authenticated


class IsAdminRole(permissions.BasePermission):
    """
    Allow access only to accounts with the administrator role.
    """

    message = "Administrator access required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)

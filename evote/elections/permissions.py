from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsAdminOrReadOnly(BasePermission):
    """
    Signed-in users may read; only administrators may write.
    """

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        # allow read-only methods for any signed-in user.
        if request.method in SAFE_METHODS:
            return True
        # for write methods, check the account is an admin
        return user.is_admin

from rest_framework import permissions


class IsManager(permissions.BasePermission):
    """
    Directors and administrators only: stock, reports and the audit trail.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_manager)


class IsManagerOrReadOnly(permissions.BasePermission):
    """
    Gatekeeper: every signed-in user reads, managers write.
    """
    def has_permission(self, request, view):
        # 1. Reads are open to any authenticated user
        if request.method in permissions.SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)

        # 2. POST, PUT, PATCH, DELETE only for managers
        return bool(request.user and request.user.is_authenticated and request.user.is_manager)

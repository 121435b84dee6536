from rest_framework.permissions import BasePermission

from equitychain_backend import errors


def _profile(user):
    if not user or not user.is_authenticated:
        return None
    return getattr(user, "profile", None)


def require_role(*roles):
    class RolePermission(BasePermission):
        message = "Insufficient permissions"

        def has_permission(self, request, view):
            profile = _profile(request.user)
            return bool(profile and profile.role in roles)

    RolePermission.__name__ = "Require" + "Or".join(r.capitalize() for r in roles)
    return RolePermission


class IsKycVerified(BasePermission):
    message = "KYC verification required"

    def has_permission(self, request, view):
        profile = _profile(request.user)
        return bool(profile and profile.is_kyc_verified)


IsAdmin = require_role("admin")
IsCreator = require_role("creator", "admin")
IsInvestor = require_role("investor")


def check_permissions(request, *permissions):
    """Per-method guard for views whose methods need different permissions."""
    if not request.user or not request.user.is_authenticated:
        raise errors.Unauthorized()
    for permission in permissions:
        if not permission().has_permission(request, None):
            raise errors.Forbidden(permission.message)

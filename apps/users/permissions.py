"""Role-based permission classes shared by the domain apps."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore


def _is_platform_admin(user) -> bool:  # type: ignore
    return bool(user and user.is_authenticated and user.is_platform_admin())


class IsPlatformAdmin(permissions.BasePermission):
    """
    Allows access only to platform admins.

    A platform admin is a user with role='admin' or a Django superuser.
    """

    def has_permission(self, request, view) -> bool:  # type: ignore
        return _is_platform_admin(request.user)


class IsSpaceOwner(permissions.BasePermission):
    """
    Space owners (and platform admins) may manage parking spaces.

    Object level: the user must own the space.
    """

    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        return user.is_space_owner() or user.is_platform_admin()

    def has_object_permission(self, request, view, obj) -> bool:  # type: ignore
        user = request.user
        if _is_platform_admin(user):
            return True
        return getattr(obj, "owner_id", None) == user.id


"""DRF permission classes backed by the role policy tables."""

from __future__ import annotations

from rest_framework.permissions import BasePermission

from modules.core.roles import can_manage_catalog, can_place_orders, is_privileged


def _role_of(request) -> str | None:
    user = request.user
    if not user or not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "role", None)


class CanPlaceOrders(BasePermission):
    message = "Access denied, user only."

    def has_permission(self, request, view) -> bool:
        role = _role_of(request)
        return role is not None and can_place_orders(role)


class IsPrivileged(BasePermission):
    message = "Access denied, superadmin only."

    def has_permission(self, request, view) -> bool:
        role = _role_of(request)
        return role is not None and is_privileged(role)


class CanManageCatalog(BasePermission):
    message = "Access denied, admin only."

    def has_permission(self, request, view) -> bool:
        role = _role_of(request)
        return role is not None and can_manage_catalog(role)

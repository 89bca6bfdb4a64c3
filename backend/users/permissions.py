"""
Role gates for the request chain (Identified -> Authorized).

Each gate raises its own application error instead of returning ``False`` so
the response carries the specific machine code (``NO_TOKEN``,
``ADMIN_REQUIRED``, ``INSUFFICIENT_PERMISSIONS``, ``ACCESS_DENIED``).
"""

import logging

from rest_framework import permissions

from core.exceptions import AccessDenied, AdminRequired, InsufficientPermissions, NoToken
from core.validators import validate_identifier

from .models import Role

logger = logging.getLogger(__name__)

# Capability -> roles holding it. Every Role member appears in the table.
ROLE_CAPABILITIES = {
    Role.ADMINISTRATOR: frozenset({"administer", "manage", "read"}),
    Role.MANAGER: frozenset({"manage", "read"}),
    Role.VIEWER: frozenset({"read"}),
}


def role_of(user):
    role = getattr(user, "role", None)
    try:
        return Role(role)
    except ValueError:
        return None


def has_capability(user, capability):
    role = role_of(user)
    return role is not None and capability in ROLE_CAPABILITIES[role]


def _log_decision(granted, component, request, required):
    user = request.user
    extra = {
        "user_id": str(user.id) if user.is_authenticated else None,
        "user_role": getattr(user, "role", None),
        "required": required,
        "request_path": request.path,
        "request_method": request.method,
        "component": component,
    }
    if granted:
        logger.debug(
            "Role gate passed",
            extra={**extra, "action": "role_gate_granted"},
        )
    else:
        logger.warning(
            "Role gate rejected request",
            extra={**extra, "action": "role_gate_denied", "severity": "medium"},
        )


class IsIdentified(permissions.BasePermission):
    """Rejects requests that carry no resolved identity."""

    def has_permission(self, request, view):
        if request.user and request.user.is_authenticated:
            return True
        raise NoToken()


class RequireAdmin(IsIdentified):
    """Administrator-only endpoints."""

    def has_permission(self, request, view):
        super().has_permission(request, view)

        granted = has_capability(request.user, "administer")
        _log_decision(granted, "RequireAdmin", request, "administrator")
        if not granted:
            raise AdminRequired()
        return True


class RequireAdminOrManager(IsIdentified):
    """Write access to categories, subcategories, transactions and files."""

    def has_permission(self, request, view):
        super().has_permission(request, view)

        granted = has_capability(request.user, "manage")
        _log_decision(granted, "RequireAdminOrManager", request, "administrator|manager")
        if not granted:
            raise InsufficientPermissions()
        return True


class HasValidLookup(permissions.BasePermission):
    """
    Rejects malformed path identifiers before the handler touches the datastore.

    The view declares ``lookup_kind`` (``uuid``, ``category``, ``subcategory``
    or ``transaction``); views without one, and list routes, pass through.
    """

    def has_permission(self, request, view):
        kind = getattr(view, "lookup_kind", None)
        lookup_url_kwarg = getattr(view, "lookup_url_kwarg", None) or getattr(
            view, "lookup_field", "pk"
        )
        value = view.kwargs.get(lookup_url_kwarg)
        if kind is None or value is None:
            return True

        validate_identifier(kind, value, field=lookup_url_kwarg)
        return True


class IsSelfOrHasCapability(IsIdentified):
    """
    The path identifier is the caller's own id, or the caller holds ``capability``.

    Compares the lookup kwarg with the caller's id before anything is fetched.
    """

    capability = "administer"

    def has_permission(self, request, view):
        super().has_permission(request, view)

        lookup_url_kwarg = getattr(view, "lookup_url_kwarg", None) or getattr(
            view, "lookup_field", "pk"
        )
        target = view.kwargs.get(lookup_url_kwarg)
        granted = (
            target is None
            or str(target) == str(request.user.id)
            or has_capability(request.user, self.capability)
        )
        _log_decision(granted, type(self).__name__, request, f"self|{self.capability}")
        if not granted:
            raise AccessDenied()
        return True


class IsSelfOrAdmin(IsSelfOrHasCapability):
    capability = "administer"


class IsSelfOrAdminOrManager(IsSelfOrHasCapability):
    capability = "manage"

"""
Permission Catalog - static roles, permission tokens and per-role defaults.

This module is the single source of truth for:
- The closed set of administrator roles
- The enumerated permission tokens a RegularAdmin may be granted
- The default permission set of each role

Incoming permission lists are always passed through ``filter_valid`` before
they reach storage. Unknown tokens are dropped, not rejected.
"""
from __future__ import annotations

from enum import Enum
from typing import Final, Iterable


class AdminRole(str, Enum):
    """Administrator roles. SuperAdmin records are immutable via the edit path."""

    REGULAR_ADMIN = "Admin"
    SUPER_ADMIN = "SuperAdmin"


class AdminPermission(str, Enum):
    """Fine-grained permissions grantable to administrators."""

    # Campaign permissions
    CREATE_CAMPAIGN = "create_campaign"
    VIEW_CAMPAIGNS = "view_campaigns"
    APPROVE_CAMPAIGN = "approve_campaign"
    REJECT_CAMPAIGN = "reject_campaign"
    DELETE_CAMPAIGN = "delete_campaign"
    EDIT_CAMPAIGN = "edit_campaign"

    # Donation permissions
    VIEW_DONATIONS = "view_donations"
    MANAGE_DONATIONS = "manage_donations"

    # Admin management
    CREATE_ADMIN = "create_admin"
    VIEW_ADMINS = "view_admins"
    EDIT_ADMIN = "edit_admin"
    DELETE_ADMIN = "delete_admin"

    # Donor management
    VIEW_DONORS = "view_donors"
    MANAGE_DONORS = "manage_donors"

    # Categories
    MANAGE_CATEGORIES = "manage_categories"

    # Settings
    VIEW_ACTIVITY_LOGS = "view_activity_logs"
    MANAGE_SYSTEM_SETTINGS = "manage_system_settings"


ALL_PERMISSIONS: Final[tuple[str, ...]] = tuple(perm.value for perm in AdminPermission)

_PERMISSION_ORDER: Final[dict[str, int]] = {
    token: index for index, token in enumerate(ALL_PERMISSIONS)
}

ROLE_PERMISSIONS: Final[dict[AdminRole, frozenset[str]]] = {
    AdminRole.SUPER_ADMIN: frozenset(ALL_PERMISSIONS),
    AdminRole.REGULAR_ADMIN: frozenset({
        AdminPermission.VIEW_CAMPAIGNS.value,
        AdminPermission.CREATE_CAMPAIGN.value,
        AdminPermission.VIEW_DONATIONS.value,
        AdminPermission.VIEW_DONORS.value,
        AdminPermission.VIEW_ACTIVITY_LOGS.value,
    }),
}


def all_permissions() -> frozenset[str]:
    return frozenset(ALL_PERMISSIONS)


def max_permission_count() -> int:
    return len(ALL_PERMISSIONS)


def default_permissions_for(role: AdminRole) -> frozenset[str]:
    if role is AdminRole.SUPER_ADMIN:
        return all_permissions()
    if role is AdminRole.REGULAR_ADMIN:
        return ROLE_PERMISSIONS[AdminRole.REGULAR_ADMIN]
    raise ValueError(f"Unknown admin role: {role!r}")


def is_valid(token: object) -> bool:
    return isinstance(token, str) and token in _PERMISSION_ORDER


def filter_valid(tokens: Iterable[object]) -> list[str]:
    """Drop unknown and duplicate tokens; return the rest in catalog order."""
    valid = {token for token in tokens if is_valid(token)}
    return sorted(valid, key=_PERMISSION_ORDER.__getitem__)  # type: ignore[arg-type]


def parse_role(value: str | AdminRole) -> AdminRole:
    """Resolve a role value, raising ``ValueError`` outside the closed set."""
    if isinstance(value, AdminRole):
        return value
    try:
        return AdminRole(value)
    except ValueError:
        allowed = ", ".join(role.value for role in AdminRole)
        raise ValueError(f"Invalid role '{value}'. Must be one of: {allowed}") from None

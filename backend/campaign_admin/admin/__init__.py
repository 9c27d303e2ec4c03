"""
Admin role catalog.

- ``permissions``: closed role set, permission tokens, default grants
- ``access_level``: derived 0-100 access score
"""
from .access_level import compute_access_level
from .permissions import (
    AdminPermission,
    AdminRole,
    all_permissions,
    default_permissions_for,
    filter_valid,
    is_valid,
)

__all__ = [
    "AdminPermission",
    "AdminRole",
    "all_permissions",
    "compute_access_level",
    "default_permissions_for",
    "filter_valid",
    "is_valid",
]

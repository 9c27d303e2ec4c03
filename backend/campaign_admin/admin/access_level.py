from __future__ import annotations

import math
from typing import Iterable

from .permissions import AdminRole, is_valid, max_permission_count

BASE_ACCESS_LEVEL = 20
PERMISSION_ACCESS_SPAN = 80
SUPER_ADMIN_ACCESS_LEVEL = 100


def compute_access_level(role: AdminRole, permissions: Iterable[object]) -> int:
    """Derive the 0-100 access score from role and permission set size.

    SuperAdmin is always 100. A RegularAdmin scores
    ``20 + (valid permissions / catalog size) * 80``, rounded half-up.
    """
    if role is AdminRole.SUPER_ADMIN:
        return SUPER_ADMIN_ACCESS_LEVEL

    granted = len({token for token in permissions if is_valid(token)})
    raw = BASE_ACCESS_LEVEL + (granted / max_permission_count()) * PERMISSION_ACCESS_SPAN
    level = math.floor(raw + 0.5)
    return max(0, min(100, level))

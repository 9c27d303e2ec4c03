from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime

from ..admin.access_level import compute_access_level
from ..admin.permissions import AdminRole


@dataclass(frozen=True)
class AdministratorRecord:
    """Detached snapshot of an administrator as read from the identity store.

    ``version`` is the optimistic-lock token. ``access_level`` is derived and
    is recomputed by ``with_derived_fields`` whenever role or permissions move.
    """

    id: uuid.UUID
    name: str
    email: str
    role: AdminRole
    permissions: tuple[str, ...] = ()
    access_level: int = 0
    version: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role is AdminRole.SUPER_ADMIN

    def with_derived_fields(self) -> "AdministratorRecord":
        return replace(
            self, access_level=compute_access_level(self.role, self.permissions)
        )


@dataclass(frozen=True)
class ActorContext:
    """Caller identity supplied by the session layer and trusted as-is."""

    actor_id: uuid.UUID
    is_super_admin: bool
    name: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True)
class AuditEntry:
    id: uuid.UUID
    actor_id: uuid.UUID
    target_id: uuid.UUID
    action: str
    details: str
    created_at: datetime
    actor_name: str | None = None
    ip_address: str | None = None

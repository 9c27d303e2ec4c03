from __future__ import annotations

import uuid
from datetime import datetime
from typing import Protocol

from ..administrator import AuditEntry


class AuditLogSink(Protocol):
    async def append(
        self,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        action: str,
        details: str,
        timestamp: datetime,
        *,
        actor_name: str | None = None,
        ip_address: str | None = None,
    ) -> None:
        ...

    async def list_for_target(
        self, target_id: uuid.UUID, limit: int
    ) -> list[AuditEntry]:
        ...

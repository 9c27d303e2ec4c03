"""
Audit Service - append-only log of administrator role/permission changes.

Writes go through their own session so an audit failure can never roll back
or leak into the edit that triggered it. Append failures are logged with full
context and not propagated: by the time an entry is written the edit has
already committed.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import AsyncContextManager, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.audit_log import AuditLogRepository, to_entry
from ...domain.administrator import AuditEntry

ROLE_UPDATED_ACTION = "Admin Role Updated"
SUPER_ADMIN_PROMOTED_ACTION = "Admin Promoted To SuperAdmin"
ROLE_HISTORY_ACTIONS: tuple[str, ...] = (
    ROLE_UPDATED_ACTION,
    SUPER_ADMIN_PROMOTED_ACTION,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


class AuditService:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

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
        """Append one entry. Never raises."""
        try:
            async with self._session_factory() as session:
                await AuditLogRepository(session).create(
                    actor_id=actor_id,
                    target_id=target_id,
                    action=action,
                    details=details,
                    created_at=timestamp,
                    actor_name=actor_name,
                    ip_address=ip_address,
                )
        except Exception:
            logger.error(
                "audit_append_failed action=%s actor_id=%s target_id=%s details=%s",
                action,
                actor_id,
                target_id,
                details,
                exc_info=True,
            )

    async def list_for_target(
        self, target_id: uuid.UUID, limit: int = 20
    ) -> list[AuditEntry]:
        """Role history for one administrator, most recent first."""
        async with self._session_factory() as session:
            logs = await AuditLogRepository(session).list_by_target(
                target_id, actions=ROLE_HISTORY_ACTIONS, limit=limit
            )
            return [to_entry(log) for log in logs]

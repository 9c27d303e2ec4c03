import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.administrator import AuditEntry
from ..models.audit_log import AuditLog


def to_entry(audit_log: AuditLog) -> AuditEntry:
    return AuditEntry(
        id=audit_log.id,
        actor_id=audit_log.actor_id,
        target_id=audit_log.target_id,
        action=audit_log.action,
        details=audit_log.details,
        created_at=audit_log.created_at,
        actor_name=audit_log.actor_name,
        ip_address=audit_log.ip_address,
    )


class AuditLogRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        action: str,
        details: str,
        created_at: datetime,
        actor_name: str | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        audit_log = AuditLog(
            actor_id=actor_id,
            actor_name=actor_name,
            target_id=target_id,
            action=action,
            details=details,
            ip_address=ip_address,
            created_at=created_at,
        )
        self.session.add(audit_log)
        await self.session.commit()
        await self.session.refresh(audit_log)
        return audit_log

    async def list_by_target(
        self,
        target_id: uuid.UUID,
        actions: tuple[str, ...] | None = None,
        limit: int = 20,
    ) -> list[AuditLog]:
        query = select(AuditLog).where(AuditLog.target_id == target_id)
        if actions:
            query = query.where(AuditLog.action.in_(actions))
        result = await self.session.execute(
            query.order_by(AuditLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())


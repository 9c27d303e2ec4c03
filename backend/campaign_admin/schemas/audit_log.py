import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AuditEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: uuid.UUID
    actor_name: str | None = None
    target_id: uuid.UUID
    action: str
    details: str
    ip_address: str | None = None
    created_at: datetime


class AdministratorHistory(BaseModel):
    admin_id: uuid.UUID
    admin_name: str
    history: list[AuditEntryRead]

import uuid
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt

from ..domain.administrator import AdministratorRecord


class AdministratorRead(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    permissions: list[str]
    access_level: int
    version: int
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: AdministratorRecord) -> "AdministratorRead":
        return cls(
            id=record.id,
            name=record.name,
            email=record.email,
            role=record.role.value,
            permissions=list(record.permissions),
            access_level=record.access_level,
            version=record.version,
            is_active=record.is_active,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class AdministratorList(BaseModel):
    count: int
    admins: list[AdministratorRead]


class AdministratorUpdate(BaseModel):
    """Edit request. Omitted (or null) fields are left unchanged.

    ``client_version`` is the version the editor last read; it is optional
    here so that its absence is reported as MISSING_VERSION by the service
    rather than as a generic schema failure. It is strict: booleans, strings
    and floats are rejected instead of coerced. Non-string entries in
    ``permissions`` are accepted here and dropped by the catalog filter.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    role: str | None = None
    permissions: list[Any] | None = None
    client_version: StrictInt | None = Field(
        default=None,
        validation_alias=AliasChoices("client_version", "clientVersion"),
    )

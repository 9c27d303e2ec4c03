import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
    Uuid,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from ..admin.permissions import AdminRole
from .base import Base


class Administrator(Base):
    __tablename__ = "administrators"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default=AdminRole.REGULAR_ADMIN.value
    )
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    access_level: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="20"
    )
    # Optimistic-lock token, bumped by exactly one per successful write
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('Admin', 'SuperAdmin')",
            name="valid_admin_role",
        ),
        CheckConstraint(
            "access_level BETWEEN 0 AND 100",
            name="access_level_range",
        ),
        CheckConstraint("version >= 0", name="version_non_negative"),
    )

    @validates("role")
    def validate_role(self, key: str, value: str) -> str:
        allowed = {role.value for role in AdminRole}
        if isinstance(value, AdminRole):
            value = value.value
        if value not in allowed:
            raise ValueError(
                f"Invalid role '{value}'. "
                f"Must be one of: {', '.join(sorted(allowed))}"
            )
        return value

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..admin.access_level import compute_access_level
from ..admin.permissions import (
    AdminRole,
    all_permissions,
    default_permissions_for,
    filter_valid,
)
from ..domain.administrator import AdministratorRecord
from ..domain.ports.administrator import (
    AdministratorStore,
    AdministratorStoreFactory,
)
from ..models.administrator import Administrator


def to_record(admin: Administrator) -> AdministratorRecord:
    """Detach an ORM row; access level is recomputed, never trusted from storage."""
    record = AdministratorRecord(
        id=admin.id,
        name=admin.name,
        email=admin.email,
        role=AdminRole(admin.role),
        permissions=tuple(admin.permissions or ()),
        access_level=admin.access_level,
        version=admin.version,
        is_active=admin.is_active,
        created_at=admin.created_at,
        updated_at=admin.updated_at,
    )
    return record.with_derived_fields()


class AdministratorRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        name: str,
        email: str,
        role: AdminRole = AdminRole.REGULAR_ADMIN,
        permissions: list[str] | None = None,
        is_active: bool = True,
    ) -> AdministratorRecord:
        """Insert a new administrator at version 0.

        Registration lives outside the role-management core; this exists for
        seeding and operational scripts.
        """
        if role is AdminRole.SUPER_ADMIN:
            granted = filter_valid(all_permissions())
        elif permissions is None:
            granted = filter_valid(default_permissions_for(role))
        else:
            granted = filter_valid(permissions)
        admin = Administrator(
            name=name.strip(),
            email=email.strip().lower(),
            role=role.value,
            permissions=granted,
            access_level=compute_access_level(role, granted),
            version=0,
            is_active=is_active,
        )
        self.session.add(admin)
        await self.session.flush()
        await self.session.refresh(admin)
        return to_record(admin)

    async def get(self, admin_id: uuid.UUID) -> AdministratorRecord | None:
        admin = await self.session.get(Administrator, admin_id, populate_existing=True)
        return to_record(admin) if admin is not None else None

    async def find_by_email(
        self, email: str, exclude_id: uuid.UUID | None = None
    ) -> AdministratorRecord | None:
        stmt = (
            select(Administrator)
            .where(func.lower(Administrator.email) == email.strip().lower())
            .order_by(Administrator.created_at)
        )
        if exclude_id is not None:
            stmt = stmt.where(Administrator.id != exclude_id)
        result = await self.session.execute(stmt)
        # Rows predating lower-case normalisation may differ only by case.
        admin = result.scalars().first()
        return to_record(admin) if admin is not None else None

    async def list_all(self) -> list[AdministratorRecord]:
        result = await self.session.execute(
            select(Administrator).order_by(Administrator.created_at.desc())
        )
        return [to_record(admin) for admin in result.scalars().all()]

    async def compare_and_swap(
        self, record: AdministratorRecord, expected_version: int
    ) -> bool:
        """Conditional single-row write.

        Issues ``UPDATE ... WHERE id = :id AND version = :expected`` so the
        version check and the write are one atomic statement. Returns False
        when no row matched (stale version or deleted row).
        """
        if record.version != expected_version + 1:
            raise ValueError(
                f"record.version must be expected_version + 1 "
                f"(got {record.version}, expected {expected_version + 1})"
            )

        stmt = (
            update(Administrator)
            .where(
                Administrator.id == record.id,
                Administrator.version == expected_version,
            )
            .values(
                name=record.name,
                email=record.email,
                role=record.role.value,
                permissions=list(record.permissions),
                access_level=record.access_level,
                version=record.version,
                updated_at=record.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


def administrator_store_factory(
    session_maker: async_sessionmaker[AsyncSession],
) -> AdministratorStoreFactory:
    """One store (and one session) per unit of work."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[AdministratorStore]:
        async with session_maker() as session:
            yield AdministratorRepository(session)

    return factory

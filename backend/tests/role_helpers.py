import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from campaign_admin.admin.permissions import AdminRole, default_permissions_for, filter_valid
from campaign_admin.domain.administrator import (
    ActorContext,
    AdministratorRecord,
    AuditEntry,
)
from campaign_admin.services.admin.duplicate_request import DuplicateRequestSuppressor
from campaign_admin.services.admin.role_management_service import RoleManagementService

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_admin(
    *,
    name: str = "Alice",
    email: str | None = None,
    role: AdminRole = AdminRole.REGULAR_ADMIN,
    permissions=None,
    version: int = 0,
    admin_id: uuid.UUID | None = None,
) -> AdministratorRecord:
    admin_id = admin_id or uuid.uuid4()
    if permissions is None:
        permissions = default_permissions_for(role)
    return AdministratorRecord(
        id=admin_id,
        name=name,
        email=email or f"{name.lower()}-{admin_id.hex[:6]}@example.com",
        role=role,
        permissions=tuple(filter_valid(permissions)),
        version=version,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    ).with_derived_fields()


def make_actor(actor_id: uuid.UUID | None = None, name: str = "Root") -> ActorContext:
    return ActorContext(
        actor_id=actor_id or uuid.uuid4(),
        is_super_admin=True,
        name=name,
        ip_address="127.0.0.1",
    )


class InMemoryAdministratorStore:
    """Identity store double; ``compare_and_swap`` checks and writes with no await in between."""

    def __init__(self, *records: AdministratorRecord) -> None:
        self.records: dict[uuid.UUID, AdministratorRecord] = {r.id: r for r in records}
        self.write_error: Exception | None = None
        self.read_error: Exception | None = None
        self.swaps = 0
        self.commits = 0
        self.rollbacks = 0

    def factory(self):
        @asynccontextmanager
        async def open_store():
            yield self

        return open_store

    async def get(self, admin_id):
        await asyncio.sleep(0)
        if self.read_error is not None:
            raise self.read_error
        return self.records.get(admin_id)

    async def find_by_email(self, email, exclude_id=None):
        await asyncio.sleep(0)
        for record in self.records.values():
            if record.id == exclude_id:
                continue
            if record.email.lower() == email.strip().lower():
                return record
        return None

    async def list_all(self):
        if self.read_error is not None:
            raise self.read_error
        return list(self.records.values())

    async def compare_and_swap(self, record, expected_version):
        await asyncio.sleep(0)
        if self.write_error is not None:
            raise self.write_error
        stored = self.records.get(record.id)
        if stored is None or stored.version != expected_version:
            return False
        self.records[record.id] = record
        self.swaps += 1
        return True

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


class RecordingAuditSink:
    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []

    async def append(
        self,
        actor_id,
        target_id,
        action,
        details,
        timestamp,
        *,
        actor_name=None,
        ip_address=None,
    ) -> None:
        self.entries.append(
            AuditEntry(
                id=uuid.uuid4(),
                actor_id=actor_id,
                target_id=target_id,
                action=action,
                details=details,
                created_at=timestamp,
                actor_name=actor_name,
                ip_address=ip_address,
            )
        )

    async def list_for_target(self, target_id, limit):
        matching = [e for e in self.entries if e.target_id == target_id]
        return sorted(matching, key=lambda e: e.created_at, reverse=True)[:limit]


class FakeClock:
    """Monotonic seconds, advanced by hand in whole milliseconds."""

    def __init__(self, start_ms: int = 1_000_000) -> None:
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms / 1000

    def advance_ms(self, ms: int) -> None:
        self.now_ms += ms


class TickingUtcClock:
    """Wall clock for ``updated_at`` that moves one second per read."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self._current = start

    def __call__(self) -> datetime:
        self._current += timedelta(seconds=1)
        return self._current


def make_service(
    store: InMemoryAdministratorStore,
    *,
    audit=None,
    suppressor: DuplicateRequestSuppressor | None = None,
    history_limit: int = 20,
) -> RoleManagementService:
    return RoleManagementService(
        store.factory(),
        audit if audit is not None else RecordingAuditSink(),
        suppressor or DuplicateRequestSuppressor(clock=FakeClock()),
        clock=TickingUtcClock(),
        history_limit=history_limit,
    )


def bumped(record: AdministratorRecord, **changes) -> AdministratorRecord:
    return replace(record, version=record.version + 1, **changes).with_derived_fields()

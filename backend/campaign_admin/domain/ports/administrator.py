from __future__ import annotations

import uuid
from typing import AsyncContextManager, Callable, Protocol

from ..administrator import AdministratorRecord


class AdministratorStore(Protocol):
    """Identity store contract.

    ``compare_and_swap`` is the only write. It stores ``record`` if and only
    if the persisted version still equals ``expected_version`` at the moment
    of the write, and reports whether it did. The caller has already bumped
    ``record.version`` and recomputed ``record.access_level``.
    """

    async def get(self, admin_id: uuid.UUID) -> AdministratorRecord | None:
        ...

    async def find_by_email(
        self, email: str, exclude_id: uuid.UUID | None = None
    ) -> AdministratorRecord | None:
        ...

    async def list_all(self) -> list[AdministratorRecord]:
        ...

    async def compare_and_swap(
        self, record: AdministratorRecord, expected_version: int
    ) -> bool:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


AdministratorStoreFactory = Callable[[], AsyncContextManager[AdministratorStore]]

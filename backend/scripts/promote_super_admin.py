"""
Promote an existing administrator to SuperAdmin.

Grants the full permission catalog, bumps the record version through the
same conditional write the edit API uses, and records an audit entry.

Usage:
    python -m scripts.promote_super_admin <email>
"""
import asyncio
import os
import sys
import uuid
from dataclasses import replace
from datetime import datetime, timezone

# Add parent directory to path to import campaign_admin modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from campaign_admin.admin.permissions import ALL_PERMISSIONS, AdminRole
from campaign_admin.domain.administrator import AdministratorRecord
from campaign_admin.domain.ports.administrator import AdministratorStoreFactory
from campaign_admin.domain.ports.audit import AuditLogSink
from campaign_admin.services.audit.audit_service import SUPER_ADMIN_PROMOTED_ACTION

SYSTEM_ACTOR_ID = uuid.UUID(int=0)
SYSTEM_ACTOR_NAME = "promote_super_admin"


class AdministratorNotFound(Exception):
    def __init__(self, email: str, available: list[AdministratorRecord]):
        super().__init__(f"Admin with email '{email}' not found")
        self.email = email
        self.available = available


class PromotionConflict(Exception):
    """The record changed between read and write; rerun the script."""


async def promote_super_admin(
    store_factory: AdministratorStoreFactory,
    audit: AuditLogSink,
    email: str,
) -> tuple[AdministratorRecord, bool]:
    """Return the stored record and whether it was changed.

    An administrator that is already SuperAdmin is returned untouched.
    """
    async with store_factory() as store:
        current = await store.find_by_email(email)
        if current is None:
            raise AdministratorNotFound(email, await store.list_all())
        if current.is_super_admin:
            return current, False

        promoted = replace(
            current,
            role=AdminRole.SUPER_ADMIN,
            permissions=tuple(ALL_PERMISSIONS),
            version=current.version + 1,
            updated_at=datetime.now(timezone.utc),
        ).with_derived_fields()

        if not await store.compare_and_swap(promoted, current.version):
            await store.rollback()
            raise PromotionConflict(f"Admin '{email}' was modified concurrently")
        await store.commit()

    await audit.append(
        SYSTEM_ACTOR_ID,
        promoted.id,
        SUPER_ADMIN_PROMOTED_ACTION,
        f"Promoted admin {promoted.name} ({promoted.email}) to SuperAdmin - "
        f"Permissions: {len(promoted.permissions)}",
        promoted.updated_at,
        actor_name=SYSTEM_ACTOR_NAME,
    )
    return promoted, True


async def _run(email: str) -> int:
    from campaign_admin.crud.administrator import administrator_store_factory
    from campaign_admin.database import AsyncSessionLocal, engine
    from campaign_admin.services.audit.audit_service import AuditService

    try:
        record, changed = await promote_super_admin(
            administrator_store_factory(AsyncSessionLocal),
            AuditService(AsyncSessionLocal),
            email,
        )
    except AdministratorNotFound as exc:
        print(f"Error: {exc}")
        print("Available admins:")
        if not exc.available:
            print("  No admins found in database.")
        for admin in exc.available:
            print(f"  - {admin.name} ({admin.email}) - Role: {admin.role.value}")
        return 1
    except PromotionConflict as exc:
        print(f"Error: {exc}")
        return 1
    finally:
        await engine.dispose()

    if not changed:
        print(f"{record.name} ({record.email}) is already a SuperAdmin")
        return 0

    print(f"Promoted {record.name} ({record.email}) to SuperAdmin")
    print(f"  Permissions: {len(record.permissions)} (all permissions granted)")
    print(f"  Access level: {record.access_level}")
    print(f"  Version: {record.version}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1 or not args[0].strip():
        print("Usage: python -m scripts.promote_super_admin <email>")
        return 1
    return asyncio.run(_run(args[0].strip().lower()))


if __name__ == "__main__":
    sys.exit(main())

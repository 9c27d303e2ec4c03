"""
Service layer for administrator role and permission management.

A single edit runs to completion through these gates, in order:
- Request shape (target id, client version)
- Self-role-edit guard
- Duplicate-request suppression
- Load target
- Optimistic version check
- SuperAdmin immutability guard
- Apply name/email/role/permissions, recompute access level, bump version
- Conditional write (version must still match at write time)
- Audit entry

Every failure leaves the service as a structured ``AppError``; low-level
storage errors are translated to ``InternalError`` here.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ...admin.permissions import (
    ALL_PERMISSIONS,
    AdminRole,
    default_permissions_for,
    filter_valid,
    parse_role,
)
from ...domain.administrator import ActorContext, AdministratorRecord, AuditEntry
from ...domain.ports.administrator import AdministratorStoreFactory
from ...domain.ports.audit import AuditLogSink
from ...errors import (
    EmailConflictError,
    InternalError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ValidationError,
    VersionConflictError,
)
from ...schemas.administrator import AdministratorRead, AdministratorUpdate
from ..audit.audit_service import ROLE_UPDATED_ACTION
from .duplicate_request import DuplicateRequestSuppressor, Rejected
from .version_check import VersionConflict, check_version, validate_client_version

logger = logging.getLogger(__name__)

STORAGE_ERRORS: tuple[type[BaseException], ...] = (SQLAlchemyError, OSError)
DEFAULT_HISTORY_LIMIT = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _conflict_payload(record: AdministratorRecord) -> dict[str, Any]:
    return AdministratorRead.from_record(record).model_dump(mode="json")


class RoleManagementService:
    def __init__(
        self,
        store_factory: AdministratorStoreFactory,
        audit_sink: AuditLogSink,
        suppressor: DuplicateRequestSuppressor,
        *,
        clock: Callable[[], datetime] = _utcnow,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self._store_factory = store_factory
        self._audit = audit_sink
        self._suppressor = suppressor
        self._clock = clock
        self._history_limit = history_limit

    async def list_administrators(self) -> list[AdministratorRecord]:
        try:
            async with self._store_factory() as store:
                return await store.list_all()
        except STORAGE_ERRORS as exc:
            raise self._storage_failure("list", None, exc) from exc

    async def get_administrator(self, admin_id: uuid.UUID) -> AdministratorRecord:
        try:
            async with self._store_factory() as store:
                record = await store.get(admin_id)
        except STORAGE_ERRORS as exc:
            raise self._storage_failure("get", admin_id, exc) from exc
        if record is None:
            raise NotFoundError("Admin not found")
        return record

    async def get_history(
        self, admin_id: uuid.UUID
    ) -> tuple[AdministratorRecord, list[AuditEntry]]:
        record = await self.get_administrator(admin_id)
        try:
            entries = await self._audit.list_for_target(admin_id, self._history_limit)
        except STORAGE_ERRORS as exc:
            raise self._storage_failure("history", admin_id, exc) from exc
        return record, entries

    def role_options(self) -> dict[str, Any]:
        return {
            "roles": [role.value for role in AdminRole],
            "permissions": list(ALL_PERMISSIONS),
            "role_permissions": {
                role.value: filter_valid(default_permissions_for(role))
                for role in AdminRole
            },
        }

    async def update_administrator(
        self,
        actor: ActorContext,
        target_id: uuid.UUID | None,
        update: AdministratorUpdate,
        *,
        http_method: str = "PUT",
        request_path: str | None = None,
    ) -> AdministratorRecord:
        """Apply one optimistic-concurrency edit and return the stored result.

        Raises:
            ValidationError: missing target or client version, unknown role
            PermissionError: self-role edit, or role/permission edit of a SuperAdmin
            RateLimitError: identical mutating request inside the dedup window
            NotFoundError: target does not exist
            VersionConflictError: stale client version; details hold the current record
            EmailConflictError: email belongs to another administrator
            InternalError: storage failure; nothing was committed
        """
        if target_id is None:
            raise ValidationError("Target administrator id is required", code="MISSING_TARGET")
        client_version = validate_client_version(update.client_version)

        role_requested = update.role is not None
        permissions_requested = update.permissions is not None

        if actor.actor_id == target_id and role_requested:
            logger.warning(
                "self_role_edit_rejected actor_id=%s target_id=%s",
                actor.actor_id,
                target_id,
            )
            raise PermissionError("Cannot change your own role")

        decision = self._suppressor.check_and_register(
            actor.actor_id,
            http_method,
            request_path or f"/admins/{target_id}",
            target_id,
        )
        if isinstance(decision, Rejected):
            raise RateLimitError(decision.retry_after_seconds)

        try:
            async with self._store_factory() as store:
                current = await store.get(target_id)
        except STORAGE_ERRORS as exc:
            raise self._storage_failure("load", target_id, exc) from exc
        if current is None:
            raise NotFoundError("Admin not found")

        outcome = check_version(current, client_version)
        if isinstance(outcome, VersionConflict):
            self._log_conflict(current, client_version)
            raise VersionConflictError(details=_conflict_payload(outcome.current))

        if current.is_super_admin and (role_requested or permissions_requested):
            logger.warning(
                "super_admin_edit_rejected actor_id=%s target_id=%s",
                actor.actor_id,
                target_id,
            )
            raise PermissionError("SuperAdmin role and permissions cannot be changed")

        updated, changed = self._apply_changes(current, update)
        email_changed = "email" in changed

        try:
            async with self._store_factory() as store:
                if email_changed:
                    holder = await store.find_by_email(
                        updated.email, exclude_id=updated.id
                    )
                    if holder is not None:
                        logger.info(
                            "email_conflict target_id=%s email=%s", target_id, updated.email
                        )
                        raise EmailConflictError()
                try:
                    swapped = await store.compare_and_swap(updated, client_version)
                except IntegrityError:
                    await store.rollback()
                    logger.info(
                        "email_conflict target_id=%s email=%s source=constraint",
                        target_id,
                        updated.email,
                    )
                    raise EmailConflictError() from None
                if not swapped:
                    await store.rollback()
                    latest = await store.get(target_id)
                    if latest is None:
                        raise NotFoundError("Admin not found")
                    self._log_conflict(latest, client_version)
                    raise VersionConflictError(details=_conflict_payload(latest))
                await store.commit()
        except STORAGE_ERRORS as exc:
            raise self._storage_failure("persist", target_id, exc) from exc

        logger.info(
            "admin_updated target_id=%s actor_id=%s version=%d changed=%s",
            updated.id,
            actor.actor_id,
            updated.version,
            ",".join(changed) or "none",
        )

        await self._audit.append(
            actor.actor_id,
            updated.id,
            ROLE_UPDATED_ACTION,
            self._describe(updated, changed),
            updated.updated_at or self._clock(),
            actor_name=actor.name,
            ip_address=actor.ip_address,
        )
        return updated

    def _apply_changes(
        self, current: AdministratorRecord, update: AdministratorUpdate
    ) -> tuple[AdministratorRecord, list[str]]:
        changed: list[str] = []
        name = current.name
        email = current.email
        role = current.role
        permissions = current.permissions

        if update.name is not None and update.name.strip():
            if update.name.strip() != current.name:
                name = update.name.strip()
                changed.append("name")

        if update.email is not None and update.email.strip():
            candidate = update.email.strip().lower()
            if candidate != current.email.lower():
                if "@" not in candidate:
                    raise ValidationError("Invalid email address")
                email = candidate
                changed.append("email")

        if update.role is not None:
            try:
                role = parse_role(update.role)
            except ValueError as exc:
                raise ValidationError(str(exc)) from None
            if role is not current.role:
                changed.append("role")

        if role is AdminRole.SUPER_ADMIN:
            permissions = tuple(ALL_PERMISSIONS)
        elif update.permissions is not None:
            permissions = tuple(filter_valid(update.permissions))
        if permissions != current.permissions:
            changed.append("permissions")

        updated = replace(
            current,
            name=name,
            email=email,
            role=role,
            permissions=permissions,
            version=current.version + 1,
            updated_at=self._clock(),
        ).with_derived_fields()
        return updated, changed

    @staticmethod
    def _describe(record: AdministratorRecord, changed: list[str]) -> str:
        return (
            f"Updated admin {record.name} ({record.email}) - Role: {record.role.value}, "
            f"Permissions: {len(record.permissions)}; changed: {', '.join(changed) or 'none'}"
        )

    @staticmethod
    def _log_conflict(current: AdministratorRecord, client_version: int) -> None:
        logger.warning(
            "mvcc_conflict admin_id=%s server_version=%d client_version=%d",
            current.id,
            current.version,
            client_version,
        )

    @staticmethod
    def _storage_failure(
        operation: str, target_id: uuid.UUID | None, exc: BaseException
    ) -> InternalError:
        logger.error(
            "storage_failure operation=%s target_id=%s error=%s",
            operation,
            target_id,
            exc,
            exc_info=exc,
        )
        return InternalError()

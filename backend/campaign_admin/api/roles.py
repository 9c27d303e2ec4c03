"""
Role management router.

Every route requires an authenticated SuperAdmin. Edits are optimistic: the
PUT body must carry the ``client_version`` the editor last read, and a stale
version is answered with 409 plus the current record.
"""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_role_management_service, require_super_admin
from ..domain.administrator import ActorContext
from ..schemas.administrator import (
    AdministratorList,
    AdministratorRead,
    AdministratorUpdate,
)
from ..schemas.audit_log import AdministratorHistory, AuditEntryRead
from ..schemas.role_options import RoleOptionsRead
from ..services.admin.role_management_service import RoleManagementService

router = APIRouter(
    prefix="/admin/manage-roles",
    tags=["admin-roles"],
)


@router.get("/admins", response_model=AdministratorList)
async def list_admins(
    _: ActorContext = Depends(require_super_admin),
    service: RoleManagementService = Depends(get_role_management_service),
) -> AdministratorList:
    records = await service.list_administrators()
    return AdministratorList(
        count=len(records),
        admins=[AdministratorRead.from_record(record) for record in records],
    )


@router.get("/admins/{admin_id}", response_model=AdministratorRead)
async def get_admin(
    admin_id: UUID,
    _: ActorContext = Depends(require_super_admin),
    service: RoleManagementService = Depends(get_role_management_service),
) -> AdministratorRead:
    record = await service.get_administrator(admin_id)
    return AdministratorRead.from_record(record)


@router.put("/admins/{admin_id}", response_model=AdministratorRead)
async def update_admin(
    admin_id: UUID,
    payload: AdministratorUpdate,
    request: Request,
    actor: ActorContext = Depends(require_super_admin),
    service: RoleManagementService = Depends(get_role_management_service),
) -> AdministratorRead:
    """
    Update name, email, role and/or permissions of one administrator.

    Responses:
    - 200: updated record with the new version
    - 400: MISSING_VERSION / VALIDATION_ERROR
    - 403: own-role change, or role/permission change of a SuperAdmin
    - 404: unknown administrator
    - 409: CONCURRENT_EDIT (details = current record) or EMAIL_IN_USE
    - 429: DUPLICATE_REQUEST with Retry-After
    """
    record = await service.update_administrator(
        actor,
        admin_id,
        payload,
        http_method=request.method,
        request_path=request.url.path,
    )
    return AdministratorRead.from_record(record)


@router.get("/admins/{admin_id}/history", response_model=AdministratorHistory)
async def get_admin_history(
    admin_id: UUID,
    _: ActorContext = Depends(require_super_admin),
    service: RoleManagementService = Depends(get_role_management_service),
) -> AdministratorHistory:
    record, entries = await service.get_history(admin_id)
    return AdministratorHistory(
        admin_id=record.id,
        admin_name=record.name,
        history=[AuditEntryRead.model_validate(entry) for entry in entries],
    )


@router.get("/role-options", response_model=RoleOptionsRead)
async def get_role_options(
    _: ActorContext = Depends(require_super_admin),
    service: RoleManagementService = Depends(get_role_management_service),
) -> RoleOptionsRead:
    return RoleOptionsRead(**service.role_options())

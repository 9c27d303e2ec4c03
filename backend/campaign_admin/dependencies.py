import logging
import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .admin.permissions import AdminRole
from .config import settings
from .crud.administrator import administrator_store_factory
from .database import AsyncSessionLocal
from .domain.administrator import ActorContext
from .domain.ports.administrator import AdministratorStoreFactory
from .domain.ports.audit import AuditLogSink
from .errors import AuthError, InternalError, PermissionError
from .security.token_inspection import (
    ExpiredTokenError,
    InvalidTokenError,
    validate_access_token,
)
from .services.admin.duplicate_request import DuplicateRequestSuppressor
from .services.admin.role_management_service import RoleManagementService
from .services.audit.audit_service import AuditService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_administrator_store_factory() -> AdministratorStoreFactory:
    return administrator_store_factory(AsyncSessionLocal)


def get_audit_service() -> AuditLogSink:
    return AuditService(AsyncSessionLocal)


def get_duplicate_request_suppressor(request: Request) -> DuplicateRequestSuppressor:
    suppressor = getattr(request.app.state, "duplicate_request_suppressor", None)
    if suppressor is None:
        logger.error("duplicate_request_suppressor missing from app.state")
        raise InternalError()
    return suppressor


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


async def get_current_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> ActorContext:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Not authenticated")

    try:
        payload = validate_access_token(credentials.credentials)
    except ExpiredTokenError:
        raise AuthError("Token has expired") from None
    except InvalidTokenError:
        raise AuthError("Invalid token") from None

    try:
        actor_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise AuthError("Invalid token payload") from None

    name = payload.get("name")
    return ActorContext(
        actor_id=actor_id,
        is_super_admin=payload.get("role") == AdminRole.SUPER_ADMIN.value,
        name=name if isinstance(name, str) else None,
        ip_address=_client_ip(request),
    )


async def require_super_admin(
    actor: ActorContext = Depends(get_current_actor),
) -> ActorContext:
    if not actor.is_super_admin:
        logger.warning("super_admin_required actor_id=%s", actor.actor_id)
        raise PermissionError("SuperAdmin access required")
    return actor


def get_role_management_service(
    store_factory: AdministratorStoreFactory = Depends(get_administrator_store_factory),
    audit: AuditLogSink = Depends(get_audit_service),
    suppressor: DuplicateRequestSuppressor = Depends(get_duplicate_request_suppressor),
) -> RoleManagementService:
    return RoleManagementService(
        store_factory,
        audit,
        suppressor,
        history_limit=settings.history_limit,
    )

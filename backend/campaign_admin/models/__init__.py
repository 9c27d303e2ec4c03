from .base import Base
from .administrator import Administrator
from .audit_log import AuditLog

__all__ = [
    "Base",
    "Administrator",
    "AuditLog",
]

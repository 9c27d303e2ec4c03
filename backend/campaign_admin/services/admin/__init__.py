from .duplicate_request import DuplicateRequestSuppressor, make_request_key
from .role_management_service import RoleManagementService

__all__ = [
    "DuplicateRequestSuppressor",
    "RoleManagementService",
    "make_request_key",
]

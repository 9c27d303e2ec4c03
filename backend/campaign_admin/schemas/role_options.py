from pydantic import BaseModel


class RoleOptionsRead(BaseModel):
    roles: list[str]
    permissions: list[str]
    role_permissions: dict[str, list[str]]

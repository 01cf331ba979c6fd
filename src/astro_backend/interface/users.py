from typing import List, Literal, Union
from pydantic import BaseModel, Field

from astro_backend.interface.roles import SystemRole

CheckMode = Literal["one", "any", "all"]


class PermissionAssignment(BaseModel):
    permission_ids: List[str]


class RoleAssignment(BaseModel):
    role_ids: List[str]


class SystemRoleAssignment(BaseModel):
    system_role: SystemRole


class PermissionCheck(BaseModel):
    permission_ids: Union[str, List[str]]
    mode: CheckMode = "any"


class PermissionCheckResult(BaseModel):
    user_id: str
    permission_ids: List[str]
    mode: CheckMode
    allowed: bool


class MigrationReport(BaseModel):
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: dict[str, str] = Field(default_factory=dict)

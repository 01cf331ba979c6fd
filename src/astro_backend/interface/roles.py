from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from astro_backend.interface.permissions import PermissionGet


class SystemRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class RoleGet(BaseModel):
    id: str = Field(description="Role unique identifier")
    name: str = Field(description="Unique role name")
    description: Optional[str] = Field(None, description="Role description")
    system_role: Optional[SystemRole] = Field(None, description="System tier this role maps to")
    permissions: List[PermissionGet] = Field(default_factory=list)

    @property
    def permission_ids(self) -> List[str]:
        return [permission.id for permission in self.permissions]

    model_config = ConfigDict(from_attributes=True)


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    system_role: Optional[SystemRole] = None
    permission_ids: List[str] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    system_role: Optional[SystemRole] = None


class RolePermissionsUpdate(BaseModel):
    permission_ids: List[str]

import re
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PERMISSION_ID_PATTERN = re.compile(r"^[a-z0-9_]+(\.[a-z0-9_]+)+$")


def split_permission_id(permission_id: str) -> tuple[str, str]:
    """Split ``app.grahvani.manage`` into (``app.grahvani``, ``manage``)."""
    resource, _, action = permission_id.rpartition(".")
    return resource, action


def default_permission_name(resource: str, action: str) -> str:
    return " ".join(part.capitalize() for part in f"{resource} {action}".replace(".", " ").split())


def default_permission_description(resource: str, action: str) -> str:
    return f"Permission to {action} {resource}"


class PermissionGet(BaseModel):
    id: str = Field(description="Stable permission key, e.g. users.edit")
    name: str = Field(description="Human readable name")
    description: Optional[str] = Field(None, description="Permission description")
    resource: str = Field(description="Resource the permission applies to")
    action: str = Field(description="Action granted on the resource")

    model_config = ConfigDict(from_attributes=True)


class PermissionCreate(BaseModel):
    id: str = Field(description="Stable permission key, e.g. users.edit")
    name: Optional[str] = None
    description: Optional[str] = None
    resource: Optional[str] = None
    action: Optional[str] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        value = value.strip()
        if not PERMISSION_ID_PATTERN.match(value):
            raise ValueError(f"Invalid permission id '{value}', expected '<resource>.<action>'")
        return value

    @model_validator(mode='after')
    def derive_missing_fields(self):
        """Fill resource, action, name and description from the id when omitted"""
        resource, action = split_permission_id(self.id)
        if self.resource is None:
            self.resource = resource
        if self.action is None:
            self.action = action
        if self.name is None:
            self.name = default_permission_name(self.resource, self.action)
        if self.description is None:
            self.description = default_permission_description(self.resource, self.action)
        return self


class PermissionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    resource: Optional[str] = None
    action: Optional[str] = None

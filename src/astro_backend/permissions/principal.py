from typing import Annotated, FrozenSet, Iterable, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from astro_backend.interface.permissions import PermissionGet
from astro_backend.interface.roles import SystemRole
from astro_backend.model.auth import User


class UnmigratedGrants(BaseModel):
    """Grants of a principal that still carries a legacy flat permission list"""
    state: Literal["unmigrated"] = "unmigrated"
    legacy_permission_ids: List[str]
    direct_permission_ids: List[str] = Field(default_factory=list)


class MigratedGrants(BaseModel):
    """Grants of a principal whose permissions are fully normalized"""
    state: Literal["migrated"] = "migrated"
    direct_permission_ids: List[str] = Field(default_factory=list)


Grants = Annotated[Union[UnmigratedGrants, MigratedGrants], Field(discriminator="state")]


class Principal(BaseModel):
    """Permission-relevant view of a user record"""

    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    system_role: SystemRole = SystemRole.USER
    role_ids: List[str] = Field(default_factory=list)
    grants: Grants = Field(default_factory=MigratedGrants)

    @property
    def is_admin(self) -> bool:
        return self.system_role == SystemRole.ADMIN

    @property
    def is_migrated(self) -> bool:
        return isinstance(self.grants, MigratedGrants)

    @property
    def direct_permission_ids(self) -> List[str]:
        return self.grants.direct_permission_ids

    @property
    def legacy_permission_ids(self) -> List[str]:
        if isinstance(self.grants, UnmigratedGrants):
            return self.grants.legacy_permission_ids
        return []

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        direct = [permission.id for permission in user.permissions]
        legacy = list(user.legacy_permissions or [])

        if legacy:
            grants = UnmigratedGrants(legacy_permission_ids=legacy, direct_permission_ids=direct)
        else:
            grants = MigratedGrants(direct_permission_ids=direct)

        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            system_role=user.system_role,
            role_ids=[role.id for role in user.roles],
            grants=grants,
        )


class EffectivePermissionSet(BaseModel):
    """
    Deduplicated union of every permission a principal holds at a point in time.

    ``admin`` marks a set produced by the admin bypass; such a set grants
    every permission id, including ids missing from the catalog.
    """

    principal_id: str
    admin: bool = False
    permissions: List[PermissionGet] = Field(default_factory=list)

    @classmethod
    def union(cls, principal_id: str, *sources: Iterable[PermissionGet], admin: bool = False) -> "EffectivePermissionSet":
        merged = {}
        for source in sources:
            for permission in source:
                # Same id means same catalog row, keeping the first is enough
                merged.setdefault(permission.id, permission)
        return cls(
            principal_id=principal_id,
            admin=admin,
            permissions=[merged[key] for key in sorted(merged)],
        )

    @property
    def ids(self) -> FrozenSet[str]:
        return frozenset(permission.id for permission in self.permissions)

    def has(self, permission_id: str) -> bool:
        if self.admin:
            return True
        return permission_id in self.ids

    def has_any(self, permission_ids: Iterable[str]) -> bool:
        if self.admin:
            return True
        held = self.ids
        return any(permission_id in held for permission_id in permission_ids)

    def has_all(self, permission_ids: Iterable[str]) -> bool:
        if self.admin:
            return True
        held = self.ids
        return all(permission_id in held for permission_id in permission_ids)

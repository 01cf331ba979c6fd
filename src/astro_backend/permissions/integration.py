"""
Access service, the single entry point used by the HTTP layer and the CLI.

It wires the catalogs, the resolver, the migration and the guard to one
database session and one permission cache, and keeps the rule that every
mutation is written to the database before the cache is invalidated.
"""

import logging
from typing import Any, List, Union
from fastapi import Depends
from sqlalchemy.orm import Session

from astro_backend.database import get_db
from astro_backend.interface.permissions import PermissionCreate, PermissionGet, PermissionUpdate
from astro_backend.interface.roles import RoleCreate, RoleGet, RolePermissionsUpdate, RoleUpdate, SystemRole
from astro_backend.interface.users import MigrationReport
from astro_backend.permissions.auth import AuthorizationGuard, get_permission_cache
from astro_backend.permissions.cache import PermissionCache
from astro_backend.permissions.catalog import PermissionCatalog, RoleCatalog
from astro_backend.permissions.core import PermissionResolver
from astro_backend.permissions.migration import LegacyPermissionMigration
from astro_backend.permissions.principal import EffectivePermissionSet, Principal
from astro_backend.repositories import UserRepository, ValidationFailedError

logger = logging.getLogger(__name__)


def _require_id_list(value: Any, kind: str) -> List[str]:
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationFailedError(f"{kind} ids must be a list of strings")
    if not all(isinstance(item, str) for item in value):
        raise ValidationFailedError(f"{kind} ids must be a list of strings")
    return list(dict.fromkeys(value))


class AccessService:

    def __init__(self, db: Session, cache: PermissionCache):
        self.db = db
        self.cache = cache
        self.permissions = PermissionCatalog(db, cache)
        self.roles = RoleCatalog(db, cache, self.permissions)
        self.resolver = PermissionResolver(db, cache, self.permissions)
        self.guard = AuthorizationGuard(db, cache, self.resolver)
        self.migration = LegacyPermissionMigration(db, cache, self.permissions, self.roles)
        self.users = UserRepository(db)

    async def bootstrap(self) -> int:
        """Bootstrap both catalogs. Returns the number of inserted roles."""
        return await self.roles.bootstrap()

    async def get_principal(self, principal_id: str) -> Principal:
        return self.resolver.load_principal(principal_id)

    async def resolve_effective_permissions(self, principal_id: str) -> EffectivePermissionSet:
        return await self.resolver.resolve(principal_id)

    async def authorize(self, principal_id: str, permission_ids: Union[str, List[str]], mode: str = "one") -> bool:
        return await self.guard.authorize(principal_id, permission_ids, mode)

    async def assign_direct_permissions(self, principal_id: str, permission_ids: List[str]) -> Principal:
        """
        Replace the user's direct permissions.

        Raises:
            NotFoundError: If the user does not exist
            ValidationFailedError: If the input is not a list of ids or names unknown permissions
        """
        requested = _require_id_list(permission_ids, "Permission")
        user = self.users.get_by_id(principal_id)
        permissions = self.permissions.require_entities(requested)

        user = self.users.replace_permissions(user, permissions)
        logger.info(f"Assigned {len(permissions)} direct permissions to user {principal_id}")

        await self.cache.invalidate_user(principal_id)
        return Principal.from_user(user)

    async def assign_roles(self, principal_id: str, role_ids: List[str]) -> Principal:
        requested = _require_id_list(role_ids, "Role")
        user = self.users.get_by_id(principal_id)
        roles = self.roles.require_entities(requested)

        user = self.users.replace_roles(user, roles)
        logger.info(f"Assigned roles {[role.name for role in roles]} to user {principal_id}")

        await self.cache.invalidate_user(principal_id)
        return Principal.from_user(user)

    async def assign_system_role(self, principal_id: str, system_role: SystemRole) -> Principal:
        """
        Set the user's system tier and replace its roles with the matching catalog role.

        Raises:
            NotFoundError: If the user or the catalog role does not exist
        """
        system_role = SystemRole(system_role)
        user = self.users.get_by_id(principal_id)
        role = self.roles.require_system_role(system_role)

        user = self.users.set_system_role(user, system_role.value, [role])
        logger.info(f"Set system role of user {principal_id} to {system_role.value}")

        await self.cache.invalidate_user(principal_id)
        return Principal.from_user(user)

    async def migrate_legacy_permissions(self, principal_id: str) -> Principal:
        return await self.migration.migrate(principal_id)

    async def migrate_all_legacy_permissions(self, assign_system_roles: bool = False) -> MigrationReport:
        return await self.migration.migrate_all(assign_system_roles=assign_system_roles)

    # Permission catalog

    async def list_permissions(self) -> List[PermissionGet]:
        return await self.permissions.get_all()

    async def list_permissions_by_resource(self, resource: str) -> List[PermissionGet]:
        return await self.permissions.get_by_resource(resource)

    async def get_permission(self, permission_id: str) -> PermissionGet:
        return await self.permissions.get_by_id(permission_id)

    async def create_permission(self, permission: PermissionCreate) -> PermissionGet:
        return await self.permissions.create(permission)

    async def update_permission(self, permission_id: str, changes: PermissionUpdate) -> PermissionGet:
        return await self.permissions.update(permission_id, changes)

    async def delete_permission(self, permission_id: str) -> None:
        await self.permissions.delete(permission_id)

    # Role catalog

    async def list_roles(self) -> List[RoleGet]:
        return await self.roles.get_all()

    async def get_role(self, role_id: str) -> RoleGet:
        return await self.roles.get_by_id(role_id)

    async def get_role_by_system_role(self, system_role: SystemRole) -> RoleGet:
        return await self.roles.get_by_system_role(system_role)

    async def create_role(self, role: RoleCreate) -> RoleGet:
        return await self.roles.create(role)

    async def update_role(self, role_id: str, changes: RoleUpdate) -> RoleGet:
        return await self.roles.update(role_id, changes)

    async def update_role_permissions(self, role_id: str, permission_ids: List[str]) -> RoleGet:
        requested = _require_id_list(permission_ids, "Permission")
        return await self.roles.update_permissions(role_id, RolePermissionsUpdate(permission_ids=requested))

    async def delete_role(self, role_id: str) -> None:
        await self.roles.delete(role_id)


def get_access_service(
    db: Session = Depends(get_db),
    cache: PermissionCache = Depends(get_permission_cache),
) -> AccessService:
    return AccessService(db, cache)

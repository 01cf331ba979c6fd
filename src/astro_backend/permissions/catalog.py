"""
Permission and role catalogs.

Both catalogs own their table, serve read-through cached listings and
invalidate those listings after every successful write.
"""

import logging
from typing import Iterable, List
from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from astro_backend.interface.permissions import PermissionCreate, PermissionGet, PermissionUpdate
from astro_backend.interface.roles import RoleCreate, RoleGet, RolePermissionsUpdate, RoleUpdate, SystemRole
from astro_backend.model.role import Permission, Role
from astro_backend.permissions.cache import CacheKeys, PermissionCache
from astro_backend.permissions.role_setup import build_default_permissions, build_default_roles
from astro_backend.repositories import (
    DuplicateError,
    NotFoundError,
    PermissionRepository,
    RoleRepository,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

_permission_list_adapter = TypeAdapter(List[PermissionGet])
_role_list_adapter = TypeAdapter(List[RoleGet])


class PermissionCatalog:

    def __init__(self, db: Session, cache: PermissionCache):
        self.db = db
        self.cache = cache
        self.repository = PermissionRepository(db)

    async def bootstrap(self) -> int:
        """
        Insert the well-known permissions when the catalog is empty.

        Returns:
            Number of inserted permissions, 0 when the catalog was already populated
        """
        if self.repository.count() > 0:
            logger.debug("Permission catalog already populated, skipping bootstrap")
            return 0

        entities = [Permission(**permission.model_dump()) for permission in build_default_permissions()]

        try:
            self.repository.create_many(entities)
        except DuplicateError:
            logger.warning("Permission catalog bootstrapped concurrently, skipping")
            return 0

        logger.info(f"Bootstrapped permission catalog with {len(entities)} permissions")
        await self.cache.invalidate_permission_listings()
        return len(entities)

    async def get_all(self) -> List[PermissionGet]:
        return await self.cache.get_or_load(
            CacheKeys.ALL_PERMISSIONS,
            _permission_list_adapter,
            lambda: [PermissionGet.model_validate(p) for p in self.repository.list_ordered()],
            self.cache.catalog_ttl,
        )

    async def get_by_resource(self, resource: str) -> List[PermissionGet]:
        return await self.cache.get_or_load(
            CacheKeys.permissions_by_resource(resource),
            _permission_list_adapter,
            lambda: [PermissionGet.model_validate(p) for p in self.repository.find_by_resource(resource)],
            self.cache.catalog_ttl,
        )

    async def get_by_id(self, permission_id: str) -> PermissionGet:
        return PermissionGet.model_validate(self.repository.get_by_id(permission_id))

    async def get_by_ids(self, permission_ids: Iterable[str]) -> List[PermissionGet]:
        """Known permissions among ``permission_ids``; unknown ids are skipped."""
        entities = self.repository.get_by_ids(permission_ids)
        return [PermissionGet.model_validate(p) for p in sorted(entities, key=lambda p: p.id)]

    def require_entities(self, permission_ids: Iterable[str]) -> List[Permission]:
        """
        Load every permission in ``permission_ids``.

        Raises:
            ValidationFailedError: listing the ids missing from the catalog
        """
        requested = list(dict.fromkeys(permission_ids))
        entities = self.repository.get_by_ids(requested)
        missing = set(requested) - {entity.id for entity in entities}
        if missing:
            raise ValidationFailedError("Unknown permission ids", missing)
        return entities

    async def create(self, permission: PermissionCreate) -> PermissionGet:
        if self.repository.exists(permission.id):
            raise DuplicateError("Permission", {"id": permission.id})

        entity = self.repository.create(Permission(**permission.model_dump()))
        logger.info(f"Created permission {entity.id}")

        await self.cache.invalidate_permission_listings()
        return PermissionGet.model_validate(entity)

    async def update(self, permission_id: str, changes: PermissionUpdate) -> PermissionGet:
        entity = self.repository.update(permission_id, changes.model_dump(exclude_unset=True))

        await self.cache.invalidate_permission_listings()
        # Cached effective sets embed the permission's fields
        await self.cache.invalidate_all_users()
        return PermissionGet.model_validate(entity)

    async def delete(self, permission_id: str) -> None:
        self.repository.delete(permission_id)
        logger.info(f"Deleted permission {permission_id}")

        await self.cache.invalidate_permission_listings()
        await self.cache.invalidate_all_users()


class RoleCatalog:

    def __init__(self, db: Session, cache: PermissionCache, permissions: PermissionCatalog = None):
        self.db = db
        self.cache = cache
        self.permissions = permissions or PermissionCatalog(db, cache)
        self.repository = RoleRepository(db)

    async def bootstrap(self) -> int:
        """
        Create the system roles when no role exists yet.

        The permission catalog is bootstrapped first so that every default
        role can reference its permissions.
        """
        if self.repository.count() > 0:
            logger.debug("Role catalog already populated, skipping bootstrap")
            return 0

        await self.permissions.bootstrap()

        entities = []
        for role in build_default_roles():
            entities.append(Role(
                name=role.name,
                description=role.description,
                system_role=role.system_role.value,
                permissions=self.permissions.repository.get_by_ids(role.permission_ids),
            ))

        try:
            self.repository.create_many(entities)
        except DuplicateError:
            logger.warning("Role catalog bootstrapped concurrently, skipping")
            return 0

        logger.info(f"Bootstrapped role catalog with {len(entities)} roles")
        await self.cache.invalidate_role_listings()
        return len(entities)

    async def get_all(self) -> List[RoleGet]:
        return await self.cache.get_or_load(
            CacheKeys.ALL_ROLES,
            _role_list_adapter,
            lambda: [RoleGet.model_validate(r) for r in self.repository.list_ordered()],
            self.cache.catalog_ttl,
        )

    async def get_by_id(self, role_id: str) -> RoleGet:
        return RoleGet.model_validate(self.repository.get_by_id(role_id))

    async def get_by_system_role(self, system_role: SystemRole) -> RoleGet:
        return RoleGet.model_validate(self.require_system_role(system_role))

    def require_system_role(self, system_role: SystemRole) -> Role:
        value = SystemRole(system_role).value
        entity = self.repository.find_by_system_role(value)
        if entity is None:
            raise NotFoundError("Role", f"system_role={value}")
        return entity

    def require_entities(self, role_ids: Iterable[str]) -> List[Role]:
        requested = list(dict.fromkeys(role_ids))
        entities = self.repository.get_by_ids(requested)
        missing = set(requested) - {entity.id for entity in entities}
        if missing:
            raise ValidationFailedError("Unknown role ids", missing)
        return entities

    async def create(self, role: RoleCreate) -> RoleGet:
        entity = Role(
            name=role.name,
            description=role.description,
            system_role=role.system_role.value if role.system_role else None,
            permissions=self.permissions.require_entities(role.permission_ids),
        )
        entity = self.repository.create(entity)
        logger.info(f"Created role {entity.name} ({entity.id})")

        await self.cache.invalidate_role_listings()
        return RoleGet.model_validate(entity)

    async def update(self, role_id: str, changes: RoleUpdate) -> RoleGet:
        entity = self.repository.update(role_id, changes.model_dump(exclude_unset=True, mode="json"))

        await self.cache.invalidate_role_listings()
        return RoleGet.model_validate(entity)

    async def update_permissions(self, role_id: str, changes: RolePermissionsUpdate) -> RoleGet:
        """
        Replace the role's permission set wholesale.

        Every holder of the role may change, so all effective sets are dropped.
        """
        entity = self.repository.get_by_id(role_id)
        permissions = self.permissions.require_entities(changes.permission_ids)
        entity = self.repository.replace_permissions(entity, permissions)
        logger.info(f"Replaced permissions of role {entity.name} ({len(permissions)} permissions)")

        await self.cache.invalidate_role_listings()
        await self.cache.invalidate_all_users()
        return RoleGet.model_validate(entity)

    async def delete(self, role_id: str) -> None:
        self.repository.delete(role_id)
        logger.info(f"Deleted role {role_id}")

        await self.cache.invalidate_role_listings()
        await self.cache.invalidate_all_users()

"""
Effective permission resolution.

A principal's effective permissions are the union of its direct grants,
the permissions of every role it holds and, until it is migrated, the
permissions named by its legacy flat list. Administrators hold the whole
catalog.
"""

import logging
from typing import Iterable, List
from sqlalchemy.orm import Session

from astro_backend.interface.permissions import PermissionGet
from astro_backend.model.auth import User
from astro_backend.permissions.cache import PermissionCache
from astro_backend.permissions.catalog import PermissionCatalog
from astro_backend.permissions.principal import EffectivePermissionSet, Principal
from astro_backend.repositories import UserRepository

logger = logging.getLogger(__name__)


def _to_dtos(permissions: Iterable) -> List[PermissionGet]:
    return [PermissionGet.model_validate(permission) for permission in permissions]


class PermissionResolver:

    def __init__(self, db: Session, cache: PermissionCache, catalog: PermissionCatalog = None):
        self.db = db
        self.cache = cache
        self.catalog = catalog or PermissionCatalog(db, cache)
        self.users = UserRepository(db)

    def load_principal(self, principal_id: str) -> Principal:
        """
        Raises:
            NotFoundError: If no user has this id
        """
        return Principal.from_user(self.users.get_by_id(principal_id))

    def compute(self, principal_id: str) -> EffectivePermissionSet:
        """Resolve from the database, bypassing the cache."""
        user: User = self.users.get_by_id(principal_id)
        principal = Principal.from_user(user)

        if principal.is_admin:
            return EffectivePermissionSet.union(
                principal.id, _to_dtos(self.catalog.repository.list_ordered()), admin=True
            )

        direct = _to_dtos(user.permissions)
        from_roles = _to_dtos(permission for role in user.roles for permission in role.permissions)

        legacy = []
        if principal.legacy_permission_ids:
            found = self.catalog.repository.get_by_ids(principal.legacy_permission_ids)
            dropped = set(principal.legacy_permission_ids) - {permission.id for permission in found}
            if dropped:
                logger.warning(f"Ignoring unknown legacy permissions of user {principal.id}: {sorted(dropped)}")
            legacy = _to_dtos(found)

        return EffectivePermissionSet.union(principal.id, direct, from_roles, legacy)

    async def resolve(self, principal_id: str) -> EffectivePermissionSet:
        return await self.cache.effective_permissions(principal_id, lambda: self.compute(principal_id))

    async def has_permission(self, principal_id: str, permission_id: str) -> bool:
        return (await self.resolve(principal_id)).has(permission_id)

    async def has_any_permission(self, principal_id: str, permission_ids: Iterable[str]) -> bool:
        return (await self.resolve(principal_id)).has_any(permission_ids)

    async def has_all_permissions(self, principal_id: str, permission_ids: Iterable[str]) -> bool:
        return (await self.resolve(principal_id)).has_all(permission_ids)

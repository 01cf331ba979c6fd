"""
Migration of legacy flat permission lists into normalized direct grants.

Users created before roles existed carry a JSON list of raw permission
ids. Migrating a user resolves that list against the catalog, folds the
result into the user's direct permissions and empties the list for good.
"""

import logging
from typing import List
from sqlalchemy.orm import Session

from astro_backend.interface.roles import SystemRole
from astro_backend.interface.users import MigrationReport
from astro_backend.model.role import Role
from astro_backend.permissions.cache import PermissionCache
from astro_backend.permissions.catalog import PermissionCatalog, RoleCatalog
from astro_backend.permissions.principal import Principal
from astro_backend.repositories import UserRepository, ValidationFailedError

logger = logging.getLogger(__name__)


class LegacyPermissionMigration:

    def __init__(
        self,
        db: Session,
        cache: PermissionCache,
        permissions: PermissionCatalog = None,
        roles: RoleCatalog = None,
    ):
        self.db = db
        self.cache = cache
        self.permissions = permissions or PermissionCatalog(db, cache)
        self.roles = roles or RoleCatalog(db, cache, self.permissions)
        self.users = UserRepository(db)

    async def migrate(self, principal_id: str, assign_system_role: bool = False) -> Principal:
        """
        Migrate a single user.

        Unknown legacy ids are dropped. Permissions already granted directly
        are kept. Migrating an already migrated user changes nothing.

        Args:
            principal_id: User to migrate
            assign_system_role: Also give a user without roles the catalog
                role matching its system role

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.users.get_by_id(principal_id)
        legacy = list(user.legacy_permissions or [])

        if not legacy:
            return Principal.from_user(user)

        found = self.permissions.repository.get_by_ids(legacy)
        dropped = set(legacy) - {permission.id for permission in found}
        if dropped:
            logger.warning(f"Dropping unknown legacy permissions of user {principal_id}: {sorted(dropped)}")

        merged = {permission.id: permission for permission in user.permissions}
        for permission in found:
            merged.setdefault(permission.id, permission)

        roles = None
        if assign_system_role and not user.roles:
            role = self._system_role_for(user.system_role)
            if role is not None:
                roles = [role]

        user = self.users.complete_legacy_migration(user, list(merged.values()), roles)
        logger.info(f"Migrated {len(found)} legacy permissions of user {principal_id}")

        await self.cache.invalidate_user(principal_id)
        return Principal.from_user(user)

    async def migrate_all(self, assign_system_roles: bool = False) -> MigrationReport:
        """
        Migrate every user that still carries legacy permissions.

        A failing user is recorded in the report and does not stop the batch.

        Raises:
            ValidationFailedError: If the permission or role catalog is empty
        """
        if self.permissions.repository.count() == 0 or self.roles.repository.count() == 0:
            raise ValidationFailedError("Permission and role catalogs must be bootstrapped before migrating")

        pending: List[str] = self.users.find_ids_with_legacy_permissions()
        report = MigrationReport(total=len(pending))
        logger.info(f"Migrating legacy permissions of {len(pending)} users")

        for principal_id in pending:
            try:
                await self.migrate(principal_id, assign_system_role=assign_system_roles)
                report.succeeded += 1
            except Exception as e:
                self.users.rollback()
                report.failed += 1
                report.failures[principal_id] = str(e)
                logger.error(f"Failed to migrate user {principal_id}: {e}")

        logger.info(f"Legacy migration finished: {report.succeeded} succeeded, {report.failed} failed")
        return report

    def _system_role_for(self, system_role: str) -> Role:
        role = self.roles.repository.find_by_system_role(system_role)
        if role is None:
            role = self.roles.repository.find_by_system_role(SystemRole.USER.value)
        return role

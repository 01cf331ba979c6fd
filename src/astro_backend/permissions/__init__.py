"""
Permission system of the user service

Main components:
- principal: Principal view of a user and the effective permission set
- catalog: Permission and role catalogs with idempotent bootstrap
- core: Resolution of effective permissions
- cache: Cache-aside layer over aiocache with statistics
- migration: Migration of legacy flat permission lists
- auth: Authorization guard and FastAPI dependencies
- integration: Access service used by the API and the CLI
"""

from .principal import (
    Principal,
    UnmigratedGrants,
    MigratedGrants,
    EffectivePermissionSet,
)

from .cache import (
    CacheKeys,
    CacheStats,
    CacheStore,
    CacheUnavailableError,
    PermissionCache,
)

from .catalog import PermissionCatalog, RoleCatalog
from .core import PermissionResolver
from .migration import LegacyPermissionMigration

from .auth import (
    AuthorizationGuard,
    require_permission,
    require_any_permission,
    require_all_permissions,
)

from .integration import AccessService, get_access_service

__all__ = [
    "Principal",
    "UnmigratedGrants",
    "MigratedGrants",
    "EffectivePermissionSet",
    "CacheKeys",
    "CacheStats",
    "CacheStore",
    "CacheUnavailableError",
    "PermissionCache",
    "PermissionCatalog",
    "RoleCatalog",
    "PermissionResolver",
    "LegacyPermissionMigration",
    "AuthorizationGuard",
    "require_permission",
    "require_any_permission",
    "require_all_permissions",
    "AccessService",
    "get_access_service",
]

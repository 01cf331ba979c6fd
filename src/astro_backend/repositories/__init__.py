"""
Repository pattern implementation for direct database access.

This package provides the repositories backing the permission catalog,
the role catalog and the principal store.
"""

from .base import (
    BaseRepository,
    RepositoryError,
    NotFoundError,
    DuplicateError,
    ValidationFailedError,
    StoreUnavailableError,
)
from .permission import PermissionRepository
from .role import RoleRepository
from .user import UserRepository

__all__ = [
    "BaseRepository",
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "ValidationFailedError",
    "StoreUnavailableError",
    "PermissionRepository",
    "RoleRepository",
    "UserRepository",
]

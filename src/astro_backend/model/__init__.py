from .base import Base, metadata
from .role import Permission, Role, RolePermission
from .auth import User, UserPermission, UserRole

__all__ = [
    'Base',
    'metadata',
    # Catalog models
    'Permission',
    'Role',
    'RolePermission',
    # Principal models
    'User',
    'UserPermission',
    'UserRole',
]

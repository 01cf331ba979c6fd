"""
Role setup utilities for initializing the permission and role catalogs.

This module contains the well-known permission ids and the permission sets
of the system roles. These are used by the catalog bootstrap during server
startup and by the ``astro bootstrap`` command.
"""

from typing import List
from astro_backend.interface.permissions import PermissionCreate
from astro_backend.interface.roles import RoleCreate, SystemRole

DEFAULT_PERMISSION_IDS = [
    "system.view",
    "system.configure",
    "system.manage_roles",
    "system.view_logs",
    "users.view",
    "users.create",
    "users.edit",
    "users.delete",
    "users.impersonate",
    "content.view",
    "content.create",
    "content.edit",
    "content.delete",
    "content.publish",
    "content.approve",
    "analytics.view",
    "analytics.export",
    "analytics.configure",
    "app.corpastra.manage",
    "app.grahvani.manage",
    "app.tellmystars.manage",
]


def build_default_permissions() -> List[PermissionCreate]:
    """
    Generate the well-known permission catalog.

    Returns:
        One PermissionCreate per default id, with name and description derived from the id
    """
    return [PermissionCreate(id=permission_id) for permission_id in DEFAULT_PERMISSION_IDS]


def permissions_administrator() -> List[str]:
    return list(DEFAULT_PERMISSION_IDS)


def permissions_manager() -> List[str]:
    """
    Generate permissions for the manager role.

    Managers run day-to-day operations: user and content administration and
    analytics, without system configuration or destructive operations.
    """
    return [
        "system.view",
        "system.view_logs",
        "users.view",
        "users.create",
        "users.edit",
        "content.view",
        "content.create",
        "content.edit",
        "content.publish",
        "analytics.view",
        "analytics.export",
    ]


def permissions_user() -> List[str]:
    return ["system.view", "content.view", "analytics.view"]


def build_default_roles() -> List[RoleCreate]:
    return [
        RoleCreate(
            name="Administrator",
            description="Full system access",
            system_role=SystemRole.ADMIN,
            permission_ids=permissions_administrator(),
        ),
        RoleCreate(
            name="Manager",
            description="User and content management",
            system_role=SystemRole.MANAGER,
            permission_ids=permissions_manager(),
        ),
        RoleCreate(
            name="User",
            description="Basic read access",
            system_role=SystemRole.USER,
            permission_ids=permissions_user(),
        ),
    ]

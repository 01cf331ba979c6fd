from typing import Annotated
from fastapi import APIRouter, Depends

from astro_backend.api.exceptions import ForbiddenException, to_http_exception
from astro_backend.interface.users import (
    MigrationReport,
    PermissionAssignment,
    PermissionCheck,
    PermissionCheckResult,
    RoleAssignment,
    SystemRoleAssignment,
)
from astro_backend.permissions.auth import get_current_user_id, require_permission
from astro_backend.permissions.integration import AccessService, get_access_service
from astro_backend.permissions.principal import EffectivePermissionSet, Principal
from astro_backend.repositories import RepositoryError

user_permissions_router = APIRouter()

CurrentUser = Annotated[str, Depends(get_current_user_id)]
CanManage = Annotated[str, Depends(require_permission("system.manage_roles"))]
Service = Annotated[AccessService, Depends(get_access_service)]


async def _check_can_view(caller_id: str, user_id: str, service: AccessService):
    # Everyone may inspect their own permissions
    if caller_id != user_id and not await service.authorize(caller_id, "users.view"):
        raise ForbiddenException()


@user_permissions_router.post("/permissions/migrate", response_model=MigrationReport)
async def migrate_all_legacy_permissions(_: CanManage, service: Service, assign_system_roles: bool = False):
    """Migrate every user that still carries legacy permissions"""
    try:
        return await service.migrate_all_legacy_permissions(assign_system_roles=assign_system_roles)
    except RepositoryError as e:
        raise to_http_exception(e)


@user_permissions_router.get("/{user_id}/permissions", response_model=EffectivePermissionSet)
async def get_user_permissions(user_id: str, caller_id: CurrentUser, service: Service):
    await _check_can_view(caller_id, user_id, service)
    try:
        return await service.resolve_effective_permissions(user_id)
    except RepositoryError as e:
        raise to_http_exception(e)


@user_permissions_router.post("/{user_id}/permissions/check", response_model=PermissionCheckResult)
async def check_user_permissions(user_id: str, check: PermissionCheck, caller_id: CurrentUser, service: Service):
    await _check_can_view(caller_id, user_id, service)

    permission_ids = [check.permission_ids] if isinstance(check.permission_ids, str) else check.permission_ids
    allowed = await service.authorize(user_id, permission_ids, check.mode)

    return PermissionCheckResult(user_id=user_id, permission_ids=permission_ids, mode=check.mode, allowed=allowed)


@user_permissions_router.put("/{user_id}/permissions", response_model=Principal)
async def assign_user_permissions(user_id: str, assignment: PermissionAssignment, _: CanManage, service: Service):
    """Replace the user's direct permissions"""
    try:
        return await service.assign_direct_permissions(user_id, assignment.permission_ids)
    except RepositoryError as e:
        raise to_http_exception(e)


@user_permissions_router.put("/{user_id}/roles", response_model=Principal)
async def assign_user_roles(user_id: str, assignment: RoleAssignment, _: CanManage, service: Service):
    try:
        return await service.assign_roles(user_id, assignment.role_ids)
    except RepositoryError as e:
        raise to_http_exception(e)


@user_permissions_router.put("/{user_id}/system-role", response_model=Principal)
async def assign_user_system_role(user_id: str, assignment: SystemRoleAssignment, _: CanManage, service: Service):
    try:
        return await service.assign_system_role(user_id, assignment.system_role)
    except RepositoryError as e:
        raise to_http_exception(e)


@user_permissions_router.post("/{user_id}/permissions/migrate", response_model=Principal)
async def migrate_user_legacy_permissions(user_id: str, _: CanManage, service: Service):
    try:
        return await service.migrate_legacy_permissions(user_id)
    except RepositoryError as e:
        raise to_http_exception(e)

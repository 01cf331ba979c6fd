from typing import Annotated
from fastapi import APIRouter, Depends, status

from astro_backend.api.exceptions import to_http_exception
from astro_backend.interface.roles import RoleCreate, RoleGet, RolePermissionsUpdate, RoleUpdate, SystemRole
from astro_backend.permissions.auth import require_permission
from astro_backend.permissions.integration import AccessService, get_access_service
from astro_backend.repositories import RepositoryError

roles_router = APIRouter()

CanView = Annotated[str, Depends(require_permission("system.view"))]
CanManage = Annotated[str, Depends(require_permission("system.manage_roles"))]
Service = Annotated[AccessService, Depends(get_access_service)]


@roles_router.get("", response_model=list[RoleGet])
async def list_roles(_: CanView, service: Service):
    try:
        return await service.list_roles()
    except RepositoryError as e:
        raise to_http_exception(e)


@roles_router.post("", response_model=RoleGet, status_code=status.HTTP_201_CREATED)
async def create_role(_: CanManage, role: RoleCreate, service: Service):
    try:
        return await service.create_role(role)
    except RepositoryError as e:
        raise to_http_exception(e)


@roles_router.get("/system/{system_role}", response_model=RoleGet)
async def get_role_by_system_role(system_role: SystemRole, _: CanView, service: Service):
    """Catalog role mapped to a system tier"""
    try:
        return await service.get_role_by_system_role(system_role)
    except RepositoryError as e:
        raise to_http_exception(e)


@roles_router.get("/{role_id}", response_model=RoleGet)
async def get_role(role_id: str, _: CanView, service: Service):
    try:
        return await service.get_role(role_id)
    except RepositoryError as e:
        raise to_http_exception(e)


@roles_router.patch("/{role_id}", response_model=RoleGet)
async def update_role(role_id: str, changes: RoleUpdate, _: CanManage, service: Service):
    try:
        return await service.update_role(role_id, changes)
    except RepositoryError as e:
        raise to_http_exception(e)


@roles_router.put("/{role_id}/permissions", response_model=RoleGet)
async def update_role_permissions(role_id: str, changes: RolePermissionsUpdate, _: CanManage, service: Service):
    """Replace the role's permissions; every holder of the role is affected"""
    try:
        return await service.update_role_permissions(role_id, changes.permission_ids)
    except RepositoryError as e:
        raise to_http_exception(e)


@roles_router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(role_id: str, _: CanManage, service: Service):
    try:
        await service.delete_role(role_id)
    except RepositoryError as e:
        raise to_http_exception(e)

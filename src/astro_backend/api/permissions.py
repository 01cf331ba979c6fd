from typing import Annotated
from fastapi import APIRouter, Depends, status

from astro_backend.api.exceptions import to_http_exception
from astro_backend.interface.permissions import PermissionCreate, PermissionGet, PermissionUpdate
from astro_backend.permissions.auth import get_permission_cache, require_permission
from astro_backend.permissions.cache import PermissionCache
from astro_backend.permissions.integration import AccessService, get_access_service
from astro_backend.repositories import RepositoryError

permissions_router = APIRouter()

CanView = Annotated[str, Depends(require_permission("system.view"))]
CanManage = Annotated[str, Depends(require_permission("system.manage_roles"))]
Service = Annotated[AccessService, Depends(get_access_service)]


@permissions_router.get("", response_model=list[PermissionGet])
async def list_permissions(_: CanView, service: Service):
    """List the permission catalog, sorted by resource and action"""
    try:
        return await service.list_permissions()
    except RepositoryError as e:
        raise to_http_exception(e)


@permissions_router.post("", response_model=PermissionGet, status_code=status.HTTP_201_CREATED)
async def create_permission(_: CanManage, permission: PermissionCreate, service: Service):
    try:
        return await service.create_permission(permission)
    except RepositoryError as e:
        raise to_http_exception(e)


@permissions_router.get("/cache/stats")
async def get_cache_stats(_: CanView, cache: Annotated[PermissionCache, Depends(get_permission_cache)]):
    """Hit, miss and error counters of the permission cache"""
    return cache.stats.snapshot()


@permissions_router.get("/resource/{resource}", response_model=list[PermissionGet])
async def list_permissions_by_resource(resource: str, _: CanView, service: Service):
    try:
        return await service.list_permissions_by_resource(resource)
    except RepositoryError as e:
        raise to_http_exception(e)


@permissions_router.get("/{permission_id}", response_model=PermissionGet)
async def get_permission(permission_id: str, _: CanView, service: Service):
    try:
        return await service.get_permission(permission_id)
    except RepositoryError as e:
        raise to_http_exception(e)


@permissions_router.patch("/{permission_id}", response_model=PermissionGet)
async def update_permission(permission_id: str, changes: PermissionUpdate, _: CanManage, service: Service):
    try:
        return await service.update_permission(permission_id, changes)
    except RepositoryError as e:
        raise to_http_exception(e)


@permissions_router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(permission_id: str, _: CanManage, service: Service):
    """Delete a permission; roles and users holding it lose the grant"""
    try:
        await service.delete_permission(permission_id)
    except RepositoryError as e:
        raise to_http_exception(e)

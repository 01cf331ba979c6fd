"""
Tests for the permission and role catalogs.
"""

import pytest
from unittest.mock import patch

from astro_backend.interface.permissions import PermissionCreate, PermissionUpdate
from astro_backend.interface.roles import RoleCreate, RolePermissionsUpdate, SystemRole
from astro_backend.model import Permission, Role
from astro_backend.permissions.role_setup import DEFAULT_PERMISSION_IDS, permissions_manager, permissions_user
from astro_backend.repositories import (
    DuplicateError,
    NotFoundError,
    PermissionRepository,
    RoleRepository,
    StoreUnavailableError,
    UserRepository,
    ValidationFailedError,
)


class TestBootstrap:
    """Catalog bootstrap"""

    @pytest.mark.asyncio
    async def test_bootstrap_creates_defaults(self, service, session):
        inserted = await service.bootstrap()

        assert inserted == 3
        assert session.query(Permission).count() == 21
        assert session.query(Role).count() == 3

    @pytest.mark.asyncio
    async def test_bootstrap_is_idempotent(self, service, session):
        await service.bootstrap()

        assert await service.bootstrap() == 0
        assert await service.permissions.bootstrap() == 0
        assert session.query(Permission).count() == 21
        assert session.query(Role).count() == 3

    @pytest.mark.asyncio
    async def test_bootstrap_keeps_existing_permissions(self, service, session):
        await service.create_permission(PermissionCreate(id="reports.view", name="Reports"))

        assert await service.permissions.bootstrap() == 0
        assert [p.id for p in session.query(Permission).all()] == ["reports.view"]

    @pytest.mark.asyncio
    async def test_derived_names(self, bootstrapped):
        permission = await bootstrapped.get_permission("app.corpastra.manage")

        assert permission.resource == "app.corpastra"
        assert permission.action == "manage"
        assert permission.name == "App Corpastra Manage"
        assert permission.description == "Permission to manage app.corpastra"

    @pytest.mark.asyncio
    async def test_default_role_permissions(self, bootstrapped):
        admin = await bootstrapped.get_role_by_system_role(SystemRole.ADMIN)
        manager = await bootstrapped.get_role_by_system_role(SystemRole.MANAGER)
        user = await bootstrapped.get_role_by_system_role(SystemRole.USER)

        assert sorted(admin.permission_ids) == sorted(DEFAULT_PERMISSION_IDS)
        assert sorted(manager.permission_ids) == sorted(permissions_manager())
        assert sorted(user.permission_ids) == sorted(permissions_user())

    @pytest.mark.asyncio
    async def test_concurrent_bootstrap_is_a_noop(self, service, session):
        with patch.object(RoleRepository, "create_many", side_effect=DuplicateError("Role", {"count": 3})):
            assert await service.roles.bootstrap() == 0

        assert session.query(Role).count() == 0


class TestPermissionCatalog:
    """Permission catalog reads and writes"""

    @pytest.mark.asyncio
    async def test_get_all_sorted_by_resource_then_action(self, bootstrapped):
        permissions = await bootstrapped.list_permissions()
        keys = [(p.resource, p.action) for p in permissions]

        assert len(permissions) == 21
        assert keys == sorted(keys)

    @pytest.mark.asyncio
    async def test_get_all_is_cached(self, bootstrapped, stats):
        await bootstrapped.list_permissions()
        await bootstrapped.list_permissions()

        assert stats.misses == 1
        assert stats.hits == 1

    @pytest.mark.asyncio
    async def test_create_invalidates_listings(self, bootstrapped):
        before = await bootstrapped.list_permissions_by_resource("users")
        await bootstrapped.list_permissions()

        await bootstrapped.create_permission(PermissionCreate(id="users.export"))

        assert len(await bootstrapped.list_permissions()) == 22
        after = await bootstrapped.list_permissions_by_resource("users")
        assert len(after) == len(before) + 1

    @pytest.mark.asyncio
    async def test_create_duplicate(self, bootstrapped):
        with pytest.raises(DuplicateError):
            await bootstrapped.create_permission(PermissionCreate(id="users.view"))

    def test_invalid_permission_id(self):
        with pytest.raises(ValueError):
            PermissionCreate(id="users")

    @pytest.mark.asyncio
    async def test_get_unknown_permission(self, bootstrapped):
        with pytest.raises(NotFoundError):
            await bootstrapped.get_permission("nothing.here")

    @pytest.mark.asyncio
    async def test_get_by_ids_skips_unknown(self, bootstrapped):
        permissions = await bootstrapped.permissions.get_by_ids(["users.view", "nothing.here", "users.view"])

        assert [p.id for p in permissions] == ["users.view"]

    @pytest.mark.asyncio
    async def test_update(self, bootstrapped):
        await bootstrapped.list_permissions()

        updated = await bootstrapped.update_permission("users.view", PermissionUpdate(name="See users"))

        assert updated.name == "See users"
        listed = {p.id: p for p in await bootstrapped.list_permissions()}
        assert listed["users.view"].name == "See users"

    @pytest.mark.asyncio
    async def test_delete_removes_grants(self, bootstrapped):
        await bootstrapped.delete_permission("content.view")

        user_role = await bootstrapped.get_role_by_system_role(SystemRole.USER)
        assert "content.view" not in user_role.permission_ids
        assert len(await bootstrapped.list_permissions()) == 20


class TestRoleCatalog:
    """Role catalog reads and writes"""

    @pytest.mark.asyncio
    async def test_get_all_sorted_by_name(self, bootstrapped):
        roles = await bootstrapped.list_roles()

        assert [r.name for r in roles] == ["Administrator", "Manager", "User"]

    @pytest.mark.asyncio
    async def test_create_role(self, bootstrapped):
        await bootstrapped.list_roles()

        role = await bootstrapped.create_role(RoleCreate(name="Editor", permission_ids=["content.edit", "content.view"]))

        assert role.system_role is None
        assert role.permission_ids == ["content.edit", "content.view"]
        assert "Editor" in [r.name for r in await bootstrapped.list_roles()]

    @pytest.mark.asyncio
    async def test_create_role_with_duplicate_name(self, bootstrapped):
        with pytest.raises(DuplicateError):
            await bootstrapped.create_role(RoleCreate(name="Manager"))

    @pytest.mark.asyncio
    async def test_update_permissions_rejects_unknown_ids(self, bootstrapped):
        role = await bootstrapped.get_role_by_system_role(SystemRole.USER)

        with pytest.raises(ValidationFailedError) as exc_info:
            await bootstrapped.roles.update_permissions(
                role.id, RolePermissionsUpdate(permission_ids=["users.view", "bogus.one", "bogus.two"])
            )

        assert exc_info.value.invalid_ids == ["bogus.one", "bogus.two"]
        unchanged = await bootstrapped.get_role(role.id)
        assert sorted(unchanged.permission_ids) == sorted(permissions_user())

    @pytest.mark.asyncio
    async def test_update_permissions_replaces_wholesale(self, bootstrapped):
        role = await bootstrapped.get_role_by_system_role(SystemRole.USER)

        updated = await bootstrapped.update_role_permissions(role.id, ["users.view"])

        assert updated.permission_ids == ["users.view"]

    @pytest.mark.asyncio
    async def test_missing_system_role(self, service):
        with pytest.raises(NotFoundError):
            await service.get_role_by_system_role(SystemRole.MANAGER)

    @pytest.mark.asyncio
    async def test_delete_role(self, bootstrapped, create_user, session):
        user = create_user("alice", role_names=["Manager"])
        manager = await bootstrapped.get_role_by_system_role(SystemRole.MANAGER)

        await bootstrapped.delete_role(manager.id)

        session.refresh(user)
        assert user.roles == []
        assert [r.name for r in await bootstrapped.list_roles()] == ["Administrator", "User"]


class TestStoreUnavailable:
    """Reads against an unreachable database"""

    @pytest.mark.parametrize("repository,read", [
        (PermissionRepository, lambda r: r.list_ordered()),
        (PermissionRepository, lambda r: r.find_by_resource("users")),
        (PermissionRepository, lambda r: r.exists("users.view")),
        (PermissionRepository, lambda r: r.get_by_ids(["users.view"])),
        (RoleRepository, lambda r: r.list_ordered()),
        (RoleRepository, lambda r: r.find_by_system_role("admin")),
        (RoleRepository, lambda r: r.count()),
        (UserRepository, lambda r: r.get_by_id_optional("someone")),
        (UserRepository, lambda r: r.find_ids_with_legacy_permissions()),
    ])
    def test_reads_raise_store_unavailable(self, session, database_down, repository, read):
        with database_down():
            with pytest.raises(StoreUnavailableError):
                read(repository(session))

    @pytest.mark.asyncio
    async def test_uncached_listing(self, bootstrapped, database_down):
        with database_down():
            with pytest.raises(StoreUnavailableError):
                await bootstrapped.list_permissions()

    @pytest.mark.asyncio
    async def test_create_permission(self, bootstrapped, database_down):
        with database_down():
            with pytest.raises(StoreUnavailableError):
                await bootstrapped.create_permission(PermissionCreate(id="reports.view"))

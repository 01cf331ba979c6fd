"""
Tests for the authorization guard.
"""

import pytest
from unittest.mock import patch
from sqlalchemy import event

from astro_backend.interface.permissions import PermissionCreate
from astro_backend.interface.roles import RoleCreate
from astro_backend.permissions.core import PermissionResolver
from astro_backend.repositories import StoreUnavailableError


class TestScenario:
    """Direct grant plus role grant, checked in both modes"""

    @pytest.mark.asyncio
    async def test_any_and_all(self, service, create_user):
        await service.create_permission(PermissionCreate(id="users.edit"))
        await service.create_permission(PermissionCreate(id="users.view"))
        await service.create_role(RoleCreate(name="Manager", permission_ids=["users.view"]))
        user = create_user("uma", permission_ids=["users.edit"], role_names=["Manager"])

        effective = await service.resolve_effective_permissions(user.id)

        assert effective.ids == {"users.edit", "users.view"}
        assert await service.authorize(user.id, ["users.edit", "users.delete"], mode="any")
        assert not await service.authorize(user.id, ["users.edit", "users.delete"], mode="all")


class TestAuthorize:

    @pytest.mark.asyncio
    async def test_single_id(self, bootstrapped, create_user):
        user = create_user("vic", role_names=["User"])

        assert await bootstrapped.authorize(user.id, "content.view")
        assert not await bootstrapped.authorize(user.id, "content.edit")
        assert await bootstrapped.guard.has_permission(user.id, "content.view")

    @pytest.mark.asyncio
    async def test_one_is_any(self, bootstrapped, create_user):
        user = create_user("wes", role_names=["User"])
        ids = ["content.edit", "content.view"]

        assert await bootstrapped.authorize(user.id, ids, mode="one")
        assert await bootstrapped.guard.has_any_permission(user.id, ids)
        assert not await bootstrapped.guard.has_all_permissions(user.id, ids)

    @pytest.mark.asyncio
    async def test_empty_lists(self, bootstrapped, create_user):
        user = create_user("xena")

        assert await bootstrapped.authorize(user.id, [], mode="all")
        assert not await bootstrapped.authorize(user.id, [], mode="any")

    @pytest.mark.asyncio
    async def test_admin_bypass(self, bootstrapped, create_user):
        admin = create_user("yara", system_role="admin")

        assert await bootstrapped.authorize(admin.id, "anything.at_all")
        assert await bootstrapped.authorize(admin.id, ["users.delete", "not.in_catalog"], mode="all")

    @pytest.mark.asyncio
    async def test_cached_admin_set_grants_without_compute(self, bootstrapped, create_user):
        admin = create_user("zed", system_role="admin")
        assert await bootstrapped.authorize(admin.id, "users.delete")

        with patch.object(PermissionResolver, "compute", side_effect=AssertionError("computed")):
            assert await bootstrapped.authorize(admin.id, "not.in_catalog")

    @pytest.mark.asyncio
    async def test_cache_hit_issues_no_queries(self, bootstrapped, create_user, engine, stats):
        user = create_user("ian", role_names=["User"])
        assert await bootstrapped.authorize(user.id, "content.view")
        statements = []
        hits = stats.hits

        def count(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(engine, "before_cursor_execute", count)
        try:
            assert await bootstrapped.authorize(user.id, "content.view")
        finally:
            event.remove(engine, "before_cursor_execute", count)

        assert statements == []
        assert stats.hits == hits + 1

    @pytest.mark.asyncio
    async def test_unknown_principal_is_denied(self, bootstrapped):
        assert not await bootstrapped.authorize("missing-user", "system.view")

    @pytest.mark.asyncio
    async def test_store_failure_is_denied(self, bootstrapped, create_user):
        user = create_user("abe", role_names=["User"])

        with patch.object(PermissionResolver, "compute", side_effect=StoreUnavailableError("db down")):
            assert not await bootstrapped.authorize(user.id, "system.view")

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_denied(self, bootstrapped, create_user):
        user = create_user("bea", role_names=["User"])

        with patch.object(PermissionResolver, "compute", side_effect=RuntimeError("boom")):
            assert not await bootstrapped.authorize(user.id, "system.view")

    @pytest.mark.asyncio
    async def test_unknown_mode(self, bootstrapped, create_user):
        user = create_user("cai")

        with pytest.raises(ValueError):
            await bootstrapped.authorize(user.id, "system.view", mode="some")

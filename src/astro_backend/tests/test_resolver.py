"""
Tests for effective permission resolution.
"""

import pytest

from astro_backend.interface.roles import RoleCreate
from astro_backend.permissions.principal import (
    EffectivePermissionSet,
    MigratedGrants,
    Principal,
    UnmigratedGrants,
)
from astro_backend.permissions.role_setup import DEFAULT_PERMISSION_IDS
from astro_backend.repositories import NotFoundError


class TestPrincipal:
    """Principal view of a user"""

    def test_unmigrated_user(self, bootstrapped, create_user):
        user = create_user("bob", permission_ids=["users.view"], legacy_permissions=["content.edit"])
        principal = Principal.from_user(user)

        assert isinstance(principal.grants, UnmigratedGrants)
        assert not principal.is_migrated
        assert principal.legacy_permission_ids == ["content.edit"]
        assert principal.direct_permission_ids == ["users.view"]

    def test_migrated_user(self, bootstrapped, create_user):
        user = create_user("carol", system_role="admin")
        principal = Principal.from_user(user)

        assert isinstance(principal.grants, MigratedGrants)
        assert principal.is_migrated
        assert principal.is_admin
        assert principal.legacy_permission_ids == []

    def test_grants_round_trip_by_state(self):
        principal = Principal.model_validate({
            "id": "u1",
            "grants": {"state": "unmigrated", "legacy_permission_ids": ["users.view"]},
        })

        assert isinstance(principal.grants, UnmigratedGrants)


class TestEffectivePermissionSet:

    def test_empty_lists(self):
        effective = EffectivePermissionSet(principal_id="u1")

        assert effective.has_all([])
        assert not effective.has_any([])

    def test_admin_grants_unknown_ids(self):
        effective = EffectivePermissionSet(principal_id="u1", admin=True)

        assert effective.has("not.in_catalog")
        assert effective.has_any(["not.in_catalog"])
        assert effective.has_all(["not.in_catalog", "users.view"])


class TestResolver:
    """Union of direct, role and legacy grants"""

    @pytest.mark.asyncio
    async def test_union_of_all_sources(self, bootstrapped, create_user):
        await bootstrapped.create_role(RoleCreate(name="Reviewer", permission_ids=["content.approve"]))
        user = create_user(
            "dave",
            permission_ids=["users.edit"],
            role_names=["Reviewer"],
            legacy_permissions=["analytics.export"],
        )

        effective = await bootstrapped.resolve_effective_permissions(user.id)

        assert effective.ids == {"users.edit", "content.approve", "analytics.export"}
        assert not effective.admin

    @pytest.mark.asyncio
    async def test_overlapping_sources_are_deduplicated(self, bootstrapped, create_user):
        user = create_user(
            "erin",
            permission_ids=["content.view"],
            role_names=["User"],
            legacy_permissions=["content.view", "system.view"],
        )

        effective = await bootstrapped.resolve_effective_permissions(user.id)

        ids = [p.id for p in effective.permissions]
        assert ids == sorted(set(ids))
        assert set(ids) == {"system.view", "content.view", "analytics.view"}

    @pytest.mark.asyncio
    async def test_unknown_legacy_ids_are_dropped(self, bootstrapped, create_user):
        user = create_user("frank", legacy_permissions=["users.view", "removed.permission"])

        effective = await bootstrapped.resolve_effective_permissions(user.id)

        assert effective.ids == {"users.view"}

    @pytest.mark.asyncio
    async def test_admin_holds_whole_catalog(self, bootstrapped, create_user):
        user = create_user("grace", system_role="admin")

        effective = await bootstrapped.resolve_effective_permissions(user.id)

        assert effective.admin
        assert effective.ids == set(DEFAULT_PERMISSION_IDS)
        assert effective.has("not.in_catalog")

    @pytest.mark.asyncio
    async def test_user_without_grants(self, bootstrapped, create_user):
        user = create_user("heidi")

        effective = await bootstrapped.resolve_effective_permissions(user.id)

        assert effective.permissions == []
        assert await bootstrapped.resolver.has_all_permissions(user.id, [])
        assert not await bootstrapped.resolver.has_any_permission(user.id, [])

    @pytest.mark.asyncio
    async def test_unknown_principal(self, bootstrapped):
        with pytest.raises(NotFoundError):
            await bootstrapped.resolve_effective_permissions("missing-user")

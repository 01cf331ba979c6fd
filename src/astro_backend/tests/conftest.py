"""
Pytest configuration and fixtures for all tests.
"""

import asyncio
import pytest
from unittest.mock import patch
from aiocache import Cache
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from astro_backend.model import Base, Permission, Role, User
from astro_backend.permissions.cache import CacheStats, PermissionCache
from astro_backend.permissions.integration import AccessService


def run_sync(coroutine):
    """Run a coroutine from a synchronous fixture on a private event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coroutine)
    finally:
        loop.close()


@pytest.fixture
def engine():
    """In-memory SQLite database shared by every connection of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create a new database session for a test."""
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def database_down(session):
    """Patch the session so that every query fails as if the server were gone."""

    def fail(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("could not connect to server"))

    return lambda: patch.object(session, "query", side_effect=fail)


@pytest.fixture
def memory_cache():
    """aiocache memory backend, emptied before and after each test."""
    cache = Cache(Cache.MEMORY)
    # Memory backends of the same process share their storage
    run_sync(cache.clear())
    yield cache
    run_sync(cache.clear())


@pytest.fixture
def stats():
    return CacheStats()


@pytest.fixture
def permission_cache(memory_cache, stats):
    return PermissionCache(memory_cache, stats, permission_ttl=900, catalog_ttl=3600)


@pytest.fixture
def service(session, permission_cache):
    return AccessService(session, permission_cache)


@pytest.fixture
def bootstrapped(service):
    """Service whose permission and role catalogs hold the defaults."""
    run_sync(service.bootstrap())
    return service


@pytest.fixture
def create_user(session):
    """Factory for users with optional direct permissions, roles and legacy ids."""

    def _create(username, system_role="user", permission_ids=(), role_names=(), legacy_permissions=()):
        user = User(
            username=username,
            email=f"{username}@example.com",
            system_role=system_role,
            legacy_permissions=list(legacy_permissions),
        )
        if permission_ids:
            user.permissions = session.query(Permission).filter(Permission.id.in_(permission_ids)).all()
        if role_names:
            user.roles = session.query(Role).filter(Role.name.in_(role_names)).all()

        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _create

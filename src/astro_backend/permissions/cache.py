"""
Permission caching layer.

Effective permission sets and catalog listings are kept in a cache-aside
store backed by aiocache (Redis in production, memory in tests). The cache
is never the source of truth: every failure of the backend is logged and
the caller falls back to the database.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union
from aiocache import BaseCache
from pydantic import TypeAdapter, ValidationError

from astro_backend.permissions.principal import EffectivePermissionSet
from astro_backend.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], Union[T, Awaitable[T]]]


class CacheUnavailableError(Exception):
    """Raised by CacheStore when the cache backend cannot serve a request."""
    pass


class CacheKeys:
    USER_PERMISSIONS = "user:permissions"
    ALL_PERMISSIONS = "permissions:all"
    PERMISSIONS_BY_RESOURCE = "permissions:resource"
    ALL_ROLES = "roles:all"

    @staticmethod
    def user_permissions(principal_id: str) -> str:
        return f"{CacheKeys.USER_PERMISSIONS}:{principal_id}"

    @staticmethod
    def permissions_by_resource(resource: str) -> str:
        return f"{CacheKeys.PERMISSIONS_BY_RESOURCE}:{resource}"


class CacheStats:
    """Counters for cache effectiveness, shared by every PermissionCache of an application."""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self):
        with self._lock:
            self.hits = 0
            self.misses = 0
            self.coalesced = 0
            self.errors = 0
            self.invalidations = 0

    def record_hit(self):
        with self._lock:
            self.hits += 1

    def record_miss(self):
        with self._lock:
            self.misses += 1

    def record_coalesced(self):
        with self._lock:
            self.coalesced += 1

    def record_error(self):
        with self._lock:
            self.errors += 1

    def record_invalidation(self):
        with self._lock:
            self.invalidations += 1

    @property
    def hit_ratio(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "hits": self.hits,
                "misses": self.misses,
                "coalesced": self.coalesced,
                "errors": self.errors,
                "invalidations": self.invalidations,
                "hit_ratio": round(self.hit_ratio, 4),
            }


class CacheStore:
    """
    Thin adapter over an aiocache backend.

    Values are plain strings. Every backend failure is re-raised as
    CacheUnavailableError so callers only have to handle one error type.
    """

    def __init__(self, cache: BaseCache):
        self.cache = cache

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.cache.get(key)
        except Exception as e:
            raise CacheUnavailableError(f"Failed to read '{key}': {e}") from e

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            await self.cache.set(key, value, ttl=ttl)
        except Exception as e:
            raise CacheUnavailableError(f"Failed to write '{key}': {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.cache.delete(key)
        except Exception as e:
            raise CacheUnavailableError(f"Failed to delete '{key}': {e}") from e

    async def delete_pattern(self, prefix: str) -> None:
        """Delete every key below ``prefix``."""
        try:
            await self.cache.clear(namespace=prefix)
        except Exception as e:
            raise CacheUnavailableError(f"Failed to delete '{prefix}:*': {e}") from e


_effective_set_adapter = TypeAdapter(EffectivePermissionSet)


class PermissionCache:
    """
    Cache-aside access to effective permission sets and catalog listings.

    Concurrent misses on the same key share a single load. Every
    invalidation bumps a generation counter; a load that started before an
    invalidation still answers its callers but does not write its result
    back, so a stale value never outlives the invalidation.
    """

    def __init__(
        self,
        cache: Union[BaseCache, CacheStore],
        stats: CacheStats,
        permission_ttl: Optional[int] = None,
        catalog_ttl: Optional[int] = None,
    ):
        self.store = cache if isinstance(cache, CacheStore) else CacheStore(cache)
        self.stats = stats
        self.permission_ttl = permission_ttl if permission_ttl is not None else settings.PERMISSION_CACHE_TTL
        self.catalog_ttl = catalog_ttl if catalog_ttl is not None else settings.CATALOG_CACHE_TTL
        self._inflight: Dict[str, asyncio.Task] = {}
        self._generation = 0

    async def get_or_load(self, key: str, adapter: TypeAdapter, loader: Loader, ttl: int) -> Any:
        cached = await self._read(key)

        if cached is not None:
            try:
                value = adapter.validate_json(cached)
                self.stats.record_hit()
                logger.debug(f"Cache hit for {key}")
                return value
            except ValidationError as e:
                logger.warning(f"Discarding unreadable cache entry {key}: {e}")

        self.stats.record_miss()
        logger.debug(f"Cache miss for {key}")

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, adapter, loader, ttl))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            self.stats.record_coalesced()

        return await asyncio.shield(task)

    async def effective_permissions(
        self, principal_id: str, loader: Loader[EffectivePermissionSet]
    ) -> EffectivePermissionSet:
        return await self.get_or_load(
            CacheKeys.user_permissions(principal_id),
            _effective_set_adapter,
            loader,
            self.permission_ttl,
        )

    async def invalidate_user(self, principal_id: str) -> bool:
        return await self._invalidate(CacheKeys.user_permissions(principal_id))

    async def invalidate_all_users(self) -> bool:
        return await self._invalidate(CacheKeys.USER_PERMISSIONS, pattern=True)

    async def invalidate_permission_listings(self) -> bool:
        listed = await self._invalidate(CacheKeys.ALL_PERMISSIONS)
        by_resource = await self._invalidate(CacheKeys.PERMISSIONS_BY_RESOURCE, pattern=True)
        return listed and by_resource

    async def invalidate_role_listings(self) -> bool:
        return await self._invalidate(CacheKeys.ALL_ROLES)

    async def _load(self, key: str, adapter: TypeAdapter, loader: Loader, ttl: int) -> Any:
        generation = self._generation

        value = loader()
        if asyncio.iscoroutine(value):
            value = await value

        if generation == self._generation:
            await self._write(key, adapter.dump_json(value).decode(), ttl)
        else:
            logger.debug(f"Skipping write of {key}, invalidated while loading")

        return value

    def _forget(self, key: str, task: asyncio.Task):
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self.store.get(key)
        except CacheUnavailableError as e:
            self.stats.record_error()
            logger.warning(f"Permission cache unavailable, reading from database: {e}")
            return None

    async def _write(self, key: str, value: str, ttl: int) -> None:
        try:
            await self.store.set(key, value, ttl=ttl)
        except CacheUnavailableError as e:
            self.stats.record_error()
            logger.warning(f"Permission cache unavailable, result not cached: {e}")

    async def _invalidate(self, key: str, pattern: bool = False) -> bool:
        self._generation += 1

        # Later callers must not join a load that started before this point
        if pattern:
            for inflight_key in [k for k in self._inflight if k.startswith(f"{key}:")]:
                self._inflight.pop(inflight_key, None)
        else:
            self._inflight.pop(key, None)

        try:
            if pattern:
                await self.store.delete_pattern(key)
            else:
                await self.store.delete(key)
        except CacheUnavailableError as e:
            self.stats.record_error()
            logger.warning(f"Failed to invalidate {key}{':*' if pattern else ''}: {e}")
            return False

        self.stats.record_invalidation()
        logger.debug(f"Invalidated {key}{':*' if pattern else ''}")
        return True

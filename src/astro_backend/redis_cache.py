from aiocache import BaseCache, Cache

from astro_backend.settings import settings


def build_cache() -> BaseCache:
    if settings.CACHE_BACKEND == "memory":
        return Cache(Cache.MEMORY)

    return Cache(
        Cache.REDIS,
        endpoint=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
        pool_max_size=10,
        db=settings.REDIS_DB
    )

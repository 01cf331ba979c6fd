import logging
from contextlib import asynccontextmanager
from typing import Optional
from aiocache import BaseCache
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from astro_backend.api.permissions import permissions_router
from astro_backend.api.roles import roles_router
from astro_backend.api.user_permissions import user_permissions_router
from astro_backend.database import get_db
from astro_backend.permissions.cache import CacheStats, PermissionCache
from astro_backend.permissions.integration import AccessService
from astro_backend.redis_cache import build_cache
from astro_backend.settings import settings

logger = logging.getLogger(__name__)


async def startup_logic(cache: PermissionCache):

    with next(get_db()) as db:
        inserted = await AccessService(db, cache).bootstrap()

    if inserted:
        logger.info("Permission and role catalogs bootstrapped")


def create_app(
    cache: Optional[BaseCache] = None,
    stats: Optional[CacheStats] = None,
    bootstrap: Optional[bool] = None,
) -> FastAPI:

    permission_cache = PermissionCache(
        cache if cache is not None else build_cache(),
        stats if stats is not None else CacheStats(),
    )
    run_bootstrap = settings.BOOTSTRAP_ON_STARTUP if bootstrap is None else bootstrap

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if run_bootstrap:
            await startup_logic(permission_cache)
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.permission_cache = permission_cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        permissions_router,
        prefix="/permissions",
        tags=["permissions"]
    )

    app.include_router(
        roles_router,
        prefix="/roles",
        tags=["roles"]
    )

    app.include_router(
        user_permissions_router,
        prefix="/users",
        tags=["users"]
    )

    return app


logging.basicConfig(level=settings.LOG_LEVEL)

app = create_app()

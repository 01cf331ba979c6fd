"""
Authorization guard and the FastAPI dependencies built on it.

The guard answers boolean questions and never raises for a denial: an
unknown user, an unavailable store or any other failure while resolving
permissions results in a denial.
"""

import logging
from typing import Iterable, List, Optional, Union
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from astro_backend.api.exceptions import ForbiddenException, UnauthorizedException
from astro_backend.database import get_db
from astro_backend.permissions.cache import PermissionCache
from astro_backend.permissions.core import PermissionResolver
from astro_backend.repositories import NotFoundError

logger = logging.getLogger(__name__)

CHECK_MODES = ("one", "any", "all")


class AuthorizationGuard:

    def __init__(self, db: Session, cache: PermissionCache, resolver: PermissionResolver = None):
        self.db = db
        self.cache = cache
        self.resolver = resolver or PermissionResolver(db, cache)

    async def authorize(
        self,
        principal_id: str,
        permission_ids: Union[str, Iterable[str]],
        mode: str = "one",
    ) -> bool:
        """
        Check ``permission_ids`` for a user.

        Args:
            principal_id: User to check
            permission_ids: A single id or a list of ids
            mode: "one" or "any" require at least one id, "all" requires every id

        Returns:
            True if access is granted
        """
        if mode not in CHECK_MODES:
            raise ValueError(f"Unknown check mode '{mode}'")

        requested: List[str] = [permission_ids] if isinstance(permission_ids, str) else list(permission_ids)

        try:
            effective = await self.resolver.resolve(principal_id)
        except NotFoundError:
            logger.warning(f"Denied {requested} for unknown user {principal_id}")
            return False
        except Exception as e:
            logger.error(f"Permission check for user {principal_id} failed, denying: {e}")
            return False

        if effective.admin:
            return True

        allowed = effective.has_all(requested) if mode == "all" else effective.has_any(requested)

        if not allowed:
            logger.warning(f"Denied {requested} ({mode}) for user {principal_id}")

        return allowed

    async def has_permission(self, principal_id: str, permission_id: str) -> bool:
        return await self.authorize(principal_id, permission_id, "one")

    async def has_any_permission(self, principal_id: str, permission_ids: Iterable[str]) -> bool:
        return await self.authorize(principal_id, permission_ids, "any")

    async def has_all_permissions(self, principal_id: str, permission_ids: Iterable[str]) -> bool:
        return await self.authorize(principal_id, permission_ids, "all")


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Id of the calling user, set by the gateway after authentication"""
    if not x_user_id:
        raise UnauthorizedException("Missing X-User-Id header")
    return x_user_id


def get_permission_cache(request: Request) -> PermissionCache:
    return request.app.state.permission_cache


def get_authorization_guard(
    db: Session = Depends(get_db),
    cache: PermissionCache = Depends(get_permission_cache),
) -> AuthorizationGuard:
    return AuthorizationGuard(db, cache)


def require_permissions(permission_ids: Union[str, List[str]], mode: str = "one"):
    """
    Build a dependency that admits the caller only if ``authorize`` grants
    ``permission_ids`` in ``mode``. The dependency returns the caller's id.
    """

    async def dependency(
        user_id: str = Depends(get_current_user_id),
        guard: AuthorizationGuard = Depends(get_authorization_guard),
    ) -> str:
        if not await guard.authorize(user_id, permission_ids, mode):
            raise ForbiddenException()
        return user_id

    return dependency


def require_permission(permission_id: str):
    return require_permissions(permission_id, "one")


def require_any_permission(permission_ids: List[str]):
    return require_permissions(permission_ids, "any")


def require_all_permissions(permission_ids: List[str]):
    return require_permissions(permission_ids, "all")

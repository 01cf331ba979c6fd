"""
User repository for the permission-relevant part of user records.
"""

from typing import List, Optional
from sqlalchemy.orm import Session

from .base import BaseRepository
from ..model.auth import User
from ..model.role import Permission, Role


class UserRepository(BaseRepository[User]):
    """Repository for User (principal) records."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def replace_permissions(self, user: User, permissions: List[Permission]) -> User:
        user.permissions = list(permissions)
        return self.save(user)

    def replace_roles(self, user: User, roles: List[Role]) -> User:
        user.roles = list(roles)
        return self.save(user)

    def set_system_role(self, user: User, system_role: str, roles: List[Role]) -> User:
        user.system_role = system_role
        user.roles = list(roles)
        return self.save(user)

    def complete_legacy_migration(
        self,
        user: User,
        permissions: List[Permission],
        roles: Optional[List[Role]] = None,
    ) -> User:
        """
        Persist the normalized grants of a migrated user and empty its legacy list.

        This is the only write path that touches ``legacy_permissions``; it
        can only ever clear it.
        """
        user.permissions = list(permissions)
        if roles is not None:
            user.roles = list(roles)
        user.legacy_permissions = []
        return self.save(user)

    def find_ids_with_legacy_permissions(self) -> List[str]:
        """
        Ids of users that still carry legacy permissions.

        JSON columns are not comparable across backends, so the emptiness
        check happens in Python.
        """
        rows = self._fetch(lambda: self.db.query(User.id, User.legacy_permissions).order_by(User.id).all())
        return [user_id for user_id, legacy in rows if legacy]

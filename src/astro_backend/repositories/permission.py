"""
Permission repository for direct database access.
"""

from typing import List
from sqlalchemy.orm import Session

from .base import BaseRepository
from ..model.role import Permission, RolePermission
from ..model.auth import UserPermission


class PermissionRepository(BaseRepository[Permission]):
    """Repository for Permission catalog entries."""

    def __init__(self, db: Session):
        super().__init__(db, Permission)

    def list_ordered(self) -> List[Permission]:
        """All permissions sorted by resource, then action."""
        return self._fetch(lambda: self.db.query(Permission).order_by(Permission.resource, Permission.action).all())

    def find_by_resource(self, resource: str) -> List[Permission]:
        return self._fetch(lambda: (
            self.db.query(Permission)
            .filter(Permission.resource == resource)
            .order_by(Permission.action)
            .all()
        ))

    def _delete_references(self, entity_id: str) -> None:
        # Referencing roles and users simply lose the grant
        self.db.query(RolePermission).filter(RolePermission.permission_id == entity_id).delete(synchronize_session=False)
        self.db.query(UserPermission).filter(UserPermission.permission_id == entity_id).delete(synchronize_session=False)

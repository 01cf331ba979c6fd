"""
Role repository for direct database access.
"""

from typing import List, Optional
from sqlalchemy.orm import Session

from .base import BaseRepository
from ..model.role import Permission, Role
from ..model.auth import UserRole


class RoleRepository(BaseRepository[Role]):
    """Repository for Role catalog entries."""

    def __init__(self, db: Session):
        super().__init__(db, Role)

    def list_ordered(self) -> List[Role]:
        return self._fetch(lambda: self.db.query(Role).order_by(Role.name).all())

    def find_by_system_role(self, system_role: str) -> Optional[Role]:
        return self.find_one_by(system_role=system_role)

    def replace_permissions(self, role: Role, permissions: List[Permission]) -> Role:
        """Replace the role's permission set wholesale."""
        role.permissions = list(permissions)
        return self.save(role)

    def _delete_references(self, entity_id: str) -> None:
        self.db.query(UserRole).filter(UserRole.role_id == entity_id).delete(synchronize_session=False)

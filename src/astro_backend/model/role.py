from uuid import uuid4
from sqlalchemy import Column, DateTime, ForeignKey, String, func
from sqlalchemy.orm import relationship

from .base import Base


class Permission(Base):
    __tablename__ = 'permission'

    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(String(4096))
    resource = Column(String(255), nullable=False, index=True)
    action = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())


class Role(Base):
    __tablename__ = 'role'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(255), nullable=False, unique=True)
    description = Column(String(4096))
    # NULLs do not collide, so only system tiers are unique
    system_role = Column(String(32), unique=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    permissions = relationship('Permission', secondary='role_permission', lazy='selectin', order_by='Permission.id')


class RolePermission(Base):
    __tablename__ = 'role_permission'

    role_id = Column(ForeignKey('role.id', ondelete='CASCADE'), primary_key=True, nullable=False)
    permission_id = Column(ForeignKey('permission.id', ondelete='CASCADE'), primary_key=True, nullable=False)

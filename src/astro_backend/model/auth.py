from uuid import uuid4
from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, func, text
from sqlalchemy.orm import relationship

from .base import Base


class User(Base):
    __tablename__ = 'user'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    username = Column(String(255), unique=True)
    email = Column(String(320), unique=True)
    system_role = Column(String(32), nullable=False, default="user", server_default=text("'user'"))
    # Flat permission ids predating roles; emptied once by the legacy migration
    legacy_permissions = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    permissions = relationship('Permission', secondary='user_permission', lazy='selectin', order_by='Permission.id')
    roles = relationship('Role', secondary='user_role', lazy='selectin', order_by='Role.name')


class UserPermission(Base):
    __tablename__ = 'user_permission'

    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), primary_key=True, nullable=False)
    permission_id = Column(ForeignKey('permission.id', ondelete='CASCADE'), primary_key=True, nullable=False)


class UserRole(Base):
    __tablename__ = 'user_role'

    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), primary_key=True, nullable=False)
    role_id = Column(ForeignKey('role.id', ondelete='CASCADE'), primary_key=True, nullable=False)

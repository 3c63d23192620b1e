from sqlalchemy import Column, DateTime, ForeignKey, String, func
from sqlalchemy.orm import relationship

from .base import Base, new_id


class User(Base):
    __tablename__ = 'user'

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    username = Column(String(255), unique=True, nullable=False)
    email = Column(String(320), unique=True)
    status = Column(String(32), nullable=False, server_default="active")

    user_roles = relationship("UserRole", back_populates="user", uselist=True, lazy="select")


class Role(Base):
    __tablename__ = 'role'

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(String(4096))

    # Relationships
    role_permissions = relationship('RolePermission', back_populates='role', cascade='all, delete-orphan')
    user_roles = relationship('UserRole', back_populates='role')


class Permission(Base):
    __tablename__ = 'permission'

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String(255), unique=True, nullable=False)
    description = Column(String(4096))

    role_permissions = relationship('RolePermission', back_populates='permission', cascade='all, delete-orphan')


class RolePermission(Base):
    __tablename__ = 'role_permission'

    role_id = Column(ForeignKey('role.id', ondelete='CASCADE'), primary_key=True, nullable=False)
    permission_id = Column(ForeignKey('permission.id', ondelete='CASCADE'), primary_key=True, nullable=False)

    role = relationship('Role', back_populates='role_permissions')
    permission = relationship('Permission', back_populates='role_permissions')


class UserRole(Base):
    __tablename__ = 'user_role'

    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), primary_key=True, nullable=False)
    role_id = Column(ForeignKey('role.id', ondelete='RESTRICT', onupdate='CASCADE'), primary_key=True, nullable=False)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())

    role = relationship('Role', back_populates='user_roles')
    user = relationship('User', back_populates='user_roles')

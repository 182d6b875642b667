"""
Marketplace Backend — User and RBAC Models
===========================================

What:  ORM models for users, roles, permissions and their link tables.
Who:   Used by the auth dependencies (identity + role lookup), RoleService,
       PermissionService, and every service that checks ownership.

RBAC layout:
    users ──< user_roles >── role ──< role_permission >── permission

    - A user holds any number of roles (CLIENT, VIDEOGRAPHER, ...).
    - A role grants any number of permissions (content.create, ...).
    - Permission names are embedded in the access token at login, so
      permission gates need no query per request.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database import Base
from marketplace.models.base import AuditMixin, TimestampMixin, utcnow

# ── Role Names ────────────────────────────────────────────────────────────
SUPER_ADMIN = "SUPER_ADMIN"
ADMIN = "ADMIN"
CLIENT = "CLIENT"
VIDEOGRAPHER = "VIDEOGRAPHER"
VIDEO_EDITOR = "VIDEO_EDITOR"

FREELANCER_ROLES = (VIDEOGRAPHER, VIDEO_EDITOR)
ADMIN_ROLES = (ADMIN, SUPER_ADMIN)

# Built-in roles that can never be deleted through the API
SYSTEM_ROLES = frozenset({SUPER_ADMIN, ADMIN, CLIENT, VIDEOGRAPHER, VIDEO_EDITOR})


class User(AuditMixin, Base):
    """A marketplace account; clients and freelancers are distinguished by role."""

    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    profile_picture: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_banned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, email='{self.email}')>"


class Role(TimestampMixin, Base):
    __tablename__ = "role"

    role_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    def __repr__(self) -> str:
        return f"<Role(role_id={self.role_id}, name='{self.name}')>"


class Permission(TimestampMixin, Base):
    __tablename__ = "permission"

    permission_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Dotted name checked by permission gates, e.g. "content.create"
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    module: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Critical permissions are seeded and cannot be deleted through the API
    is_critical: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Permission(permission_id={self.permission_id}, name='{self.name}')>"


class RolePermission(Base):
    __tablename__ = "role_permission"

    role_id: Mapped[int] = mapped_column(
        ForeignKey("role.role_id", ondelete="CASCADE"), primary_key=True
    )
    permission_id: Mapped[int] = mapped_column(
        ForeignKey("permission.permission_id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    role_id: Mapped[int] = mapped_column(
        ForeignKey("role.role_id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

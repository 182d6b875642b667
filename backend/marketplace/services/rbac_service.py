"""
Marketplace Backend — Role and Permission Services
===================================================

What:  Administration of the RBAC tables: roles, permissions, the
       role ↔ permission links and user ↔ role assignments.
Who:   Role and permission routers (all writes are SUPER_ADMIN only);
       AuthService reads a user's effective permissions at login.

Protections:
    - Built-in roles (SUPER_ADMIN, ADMIN, CLIENT, VIDEOGRAPHER, VIDEO_EDITOR)
      and roles still assigned to users cannot be deleted.
    - SUPER_ADMIN's permission set is never edited through the API.
    - Critical permissions cannot be deleted.

Role and permission rows are hard-deleted; link rows go with them through
ON DELETE CASCADE.
"""

import logging
from typing import Iterable, List

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser
from marketplace.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from marketplace.models.user import (
    SUPER_ADMIN,
    SYSTEM_ROLES,
    Permission,
    Role,
    RolePermission,
    User,
    UserRole,
)
from marketplace.schemas.rbac import PermissionCreate, RoleCreate

logger = logging.getLogger(__name__)


class RoleService:
    # ── Roles ─────────────────────────────────────────────────────────────

    async def list_roles(self, db: AsyncSession) -> List[Role]:
        result = await db.execute(select(Role).order_by(Role.role_id))
        return list(result.scalars().all())

    async def get_role(self, db: AsyncSession, role_id: int) -> Role:
        role = await db.get(Role, role_id)
        if role is None:
            raise NotFoundError(resource="role", resource_id=role_id)
        return role

    async def create_role(self, db: AsyncSession, data: RoleCreate) -> Role:
        existing = await db.execute(select(Role.role_id).where(Role.name == data.name))
        if existing.scalars().first() is not None:
            raise ConflictError(f"Role '{data.name}' already exists")

        role = Role(name=data.name, label=data.label, description=data.description)
        db.add(role)
        await db.flush()
        logger.info("Role %s created", data.name)
        return role

    async def update_role(self, db: AsyncSession, role_id: int, changes: dict) -> Role:
        if not changes:
            raise ValidationError("Update data is empty")
        role = await self.get_role(db, role_id)
        for key, value in changes.items():
            setattr(role, key, value)
        await db.flush()
        return role

    async def delete_role(self, db: AsyncSession, role_id: int) -> None:
        role = await self.get_role(db, role_id)
        if role.name in SYSTEM_ROLES:
            raise ValidationError(f"Cannot delete system role: {role.name}")

        result = await db.execute(
            select(func.count(UserRole.id)).where(UserRole.role_id == role_id)
        )
        if (result.scalar() or 0) > 0:
            raise ValidationError("Cannot delete role with assigned users")

        await db.delete(role)
        await db.flush()
        logger.info("Role %s deleted", role.name)

    # ── Role ↔ Permission ─────────────────────────────────────────────────

    async def get_role_permissions(self, db: AsyncSession, role_id: int) -> List[Permission]:
        await self.get_role(db, role_id)
        result = await db.execute(
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.permission_id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.name)
        )
        return list(result.scalars().all())

    async def add_permission(self, db: AsyncSession, role_id: int, permission_id: int) -> None:
        """Idempotent: linking an already linked permission is a no-op."""
        await self.get_role(db, role_id)
        if await db.get(Permission, permission_id) is None:
            raise NotFoundError(resource="permission", resource_id=permission_id)

        if await db.get(RolePermission, (role_id, permission_id)) is not None:
            return
        db.add(RolePermission(role_id=role_id, permission_id=permission_id))
        await db.flush()

    async def remove_permission(self, db: AsyncSession, role_id: int, permission_id: int) -> None:
        role = await self.get_role(db, role_id)
        if role.name == SUPER_ADMIN:
            raise ValidationError("Cannot remove permissions from Super Admin")

        await db.execute(
            delete(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )

    async def bulk_update_permissions(
        self, db: AsyncSession, role_id: int, permission_ids: Iterable[int]
    ) -> List[Permission]:
        """
        Replace the role's permission set in one transaction.

        Unknown permission ids are rejected before anything is written.
        """
        role = await self.get_role(db, role_id)
        if role.name == SUPER_ADMIN:
            raise ValidationError("Cannot modify Super Admin permissions")

        wanted = sorted(set(permission_ids))
        if wanted:
            result = await db.execute(
                select(Permission.permission_id).where(Permission.permission_id.in_(wanted))
            )
            missing = set(wanted) - set(result.scalars().all())
            if missing:
                raise NotFoundError(
                    resource="permission",
                    message=f"Unknown permission ids: {sorted(missing)}",
                )

        try:
            await db.execute(delete(RolePermission).where(RolePermission.role_id == role_id))
            db.add_all(RolePermission(role_id=role_id, permission_id=pid) for pid in wanted)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Bulk permission update for role %s failed: %s", role_id, e, exc_info=True)
            raise DatabaseError("Error updating role permissions", context={"role_id": role_id}) from e

        logger.info("Role %s permissions replaced (%d permissions)", role.name, len(wanted))
        return await self.get_role_permissions(db, role_id)

    # ── User ↔ Role ───────────────────────────────────────────────────────

    async def _require_user(self, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None or user.is_deleted:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user

    async def get_user_roles(self, db: AsyncSession, user_id: int) -> List[Role]:
        await self._require_user(db, user_id)
        result = await db.execute(
            select(Role)
            .join(UserRole, UserRole.role_id == Role.role_id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.role_id)
        )
        return list(result.scalars().all())

    async def assign_role(self, db: AsyncSession, user_id: int, role_id: int) -> None:
        """Idempotent."""
        await self._require_user(db, user_id)
        await self.get_role(db, role_id)

        result = await db.execute(
            select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )
        if result.scalars().first() is not None:
            return
        db.add(UserRole(user_id=user_id, role_id=role_id))
        await db.flush()
        logger.info("Role %s assigned to user %s", role_id, user_id)

    async def remove_role(self, db: AsyncSession, user_id: int, role_id: int) -> None:
        result = await db.execute(
            delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )
        if not result.rowcount:
            raise NotFoundError(resource="user role", message="User does not hold this role")


class PermissionService:
    async def list_permissions(self, db: AsyncSession) -> List[Permission]:
        result = await db.execute(select(Permission).order_by(Permission.module, Permission.name))
        return list(result.scalars().all())

    async def get_permission(self, db: AsyncSession, permission_id: int) -> Permission:
        permission = await db.get(Permission, permission_id)
        if permission is None:
            raise NotFoundError(resource="permission", resource_id=permission_id)
        return permission

    async def create_permission(
        self, db: AsyncSession, user: CurrentUser, data: PermissionCreate
    ) -> Permission:
        existing = await db.execute(
            select(Permission.permission_id).where(Permission.name == data.name)
        )
        if existing.scalars().first() is not None:
            raise ConflictError(f"Permission '{data.name}' already exists")

        permission = Permission(**data.model_dump(), updated_by=user.user_id)
        db.add(permission)
        await db.flush()
        return permission

    async def update_permission(
        self, db: AsyncSession, user: CurrentUser, permission_id: int, changes: dict
    ) -> Permission:
        if not changes:
            raise ValidationError("Update data is empty")
        permission = await self.get_permission(db, permission_id)
        for key, value in changes.items():
            setattr(permission, key, value)
        permission.updated_by = user.user_id
        await db.flush()
        return permission

    async def delete_permission(self, db: AsyncSession, permission_id: int) -> None:
        permission = await self.get_permission(db, permission_id)
        if permission.is_critical:
            raise ValidationError(f"Cannot delete critical permission: {permission.name}")
        await db.delete(permission)
        await db.flush()

    async def effective_permissions(self, db: AsyncSession, user_id: int) -> List[str]:
        """Names granted to the user through any active role."""
        result = await db.execute(
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.permission_id)
            .join(Role, Role.role_id == RolePermission.role_id)
            .join(UserRole, UserRole.role_id == Role.role_id)
            .where(UserRole.user_id == user_id, Role.is_active.is_(True))
            .distinct()
        )
        return sorted(result.scalars().all())


role_service = RoleService()
permission_service = PermissionService()

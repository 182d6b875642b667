"""
Marketplace Backend — Role and Permission Routes
=================================================

Reads are open to ADMIN and SUPER_ADMIN; every write is SUPER_ADMIN only.

Roles:
    GET    /api/v1/role
    POST   /api/v1/role
    GET    /api/v1/role/{id}
    PUT    /api/v1/role/{id}
    DELETE /api/v1/role/{id}
    GET    /api/v1/role/{id}/permissions
    POST   /api/v1/role/{id}/permissions
    PUT    /api/v1/role/{id}/permissions          bulk replace
    DELETE /api/v1/role/{id}/permissions/{pid}
    GET    /api/v1/role/users/{uid}
    POST   /api/v1/role/users/{uid}
    DELETE /api/v1/role/users/{uid}/{rid}

Permissions:
    GET    /api/v1/permission
    POST   /api/v1/permission
    GET    /api/v1/permission/{id}
    PUT    /api/v1/permission/{id}
    DELETE /api/v1/permission/{id}
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, require_role
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.models.user import ADMIN_ROLES, SUPER_ADMIN
from marketplace.schemas.common import ErrorResponse, MessageResponse
from marketplace.schemas.rbac import (
    PermissionAssign,
    PermissionCreate,
    PermissionIdsRequest,
    PermissionResponse,
    PermissionUpdate,
    RoleAssign,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from marketplace.services.rbac_service import permission_service, role_service

admin_read = require_role(*ADMIN_ROLES)
super_admin_only = require_role(SUPER_ADMIN)

role_router = APIRouter(prefix=f"{settings.api_prefix}/role", tags=["Roles"])
permission_router = APIRouter(prefix=f"{settings.api_prefix}/permission", tags=["Permissions"])


# ── User ↔ Role ───────────────────────────────────────────────────────────
# Registered before /{role_id} so "users" never parses as a role id


@role_router.get("/users/{user_id}", response_model=List[RoleResponse])
async def get_user_roles(
    user_id: int,
    _: CurrentUser = Depends(admin_read),
    db: AsyncSession = Depends(get_db_session),
) -> List[RoleResponse]:
    roles = await role_service.get_user_roles(db, user_id)
    return [RoleResponse.model_validate(r) for r in roles]


@role_router.post("/users/{user_id}", response_model=MessageResponse)
async def assign_role(
    user_id: int,
    data: RoleAssign,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await role_service.assign_role(db, user_id, data.role_id)
    return MessageResponse(message="Role assigned successfully")


@role_router.delete("/users/{user_id}/{role_id}", response_model=MessageResponse)
async def remove_role(
    user_id: int,
    role_id: int,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await role_service.remove_role(db, user_id, role_id)
    return MessageResponse(message="Role removed successfully")


# ── Roles ─────────────────────────────────────────────────────────────────


@role_router.get("", response_model=List[RoleResponse])
async def list_roles(
    _: CurrentUser = Depends(admin_read),
    db: AsyncSession = Depends(get_db_session),
) -> List[RoleResponse]:
    return [RoleResponse.model_validate(r) for r in await role_service.list_roles(db)]


@role_router.post(
    "",
    status_code=201,
    response_model=RoleResponse,
    responses={409: {"description": "Role name taken", "model": ErrorResponse}},
)
async def create_role(
    data: RoleCreate,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> RoleResponse:
    return RoleResponse.model_validate(await role_service.create_role(db, data))


@role_router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: int,
    _: CurrentUser = Depends(admin_read),
    db: AsyncSession = Depends(get_db_session),
) -> RoleResponse:
    return RoleResponse.model_validate(await role_service.get_role(db, role_id))


@role_router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: int,
    data: RoleUpdate,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> RoleResponse:
    role = await role_service.update_role(db, role_id, data.model_dump(exclude_unset=True))
    return RoleResponse.model_validate(role)


@role_router.delete(
    "/{role_id}",
    response_model=MessageResponse,
    responses={400: {"description": "System role or role still assigned", "model": ErrorResponse}},
)
async def delete_role(
    role_id: int,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await role_service.delete_role(db, role_id)
    return MessageResponse(message="Role deleted successfully")


# ── Role ↔ Permission ─────────────────────────────────────────────────────


@role_router.get("/{role_id}/permissions", response_model=List[PermissionResponse])
async def get_role_permissions(
    role_id: int,
    _: CurrentUser = Depends(admin_read),
    db: AsyncSession = Depends(get_db_session),
) -> List[PermissionResponse]:
    permissions = await role_service.get_role_permissions(db, role_id)
    return [PermissionResponse.model_validate(p) for p in permissions]


@role_router.post("/{role_id}/permissions", response_model=MessageResponse)
async def add_role_permission(
    role_id: int,
    data: PermissionAssign,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await role_service.add_permission(db, role_id, data.permission_id)
    return MessageResponse(message="Permission added to role")


@role_router.put(
    "/{role_id}/permissions",
    response_model=List[PermissionResponse],
    summary="Replace a role's permission set",
    responses={
        400: {"description": "SUPER_ADMIN permissions are fixed", "model": ErrorResponse},
        404: {"description": "Unknown role or permission id", "model": ErrorResponse},
    },
)
async def bulk_update_role_permissions(
    role_id: int,
    data: PermissionIdsRequest,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[PermissionResponse]:
    permissions = await role_service.bulk_update_permissions(db, role_id, data.permission_ids)
    return [PermissionResponse.model_validate(p) for p in permissions]


@role_router.delete("/{role_id}/permissions/{permission_id}", response_model=MessageResponse)
async def remove_role_permission(
    role_id: int,
    permission_id: int,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await role_service.remove_permission(db, role_id, permission_id)
    return MessageResponse(message="Permission removed from role")


# ── Permissions ───────────────────────────────────────────────────────────


@permission_router.get("", response_model=List[PermissionResponse])
async def list_permissions(
    _: CurrentUser = Depends(admin_read),
    db: AsyncSession = Depends(get_db_session),
) -> List[PermissionResponse]:
    return [PermissionResponse.model_validate(p) for p in await permission_service.list_permissions(db)]


@permission_router.post(
    "",
    status_code=201,
    response_model=PermissionResponse,
    responses={409: {"description": "Permission name taken", "model": ErrorResponse}},
)
async def create_permission(
    data: PermissionCreate,
    user: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> PermissionResponse:
    return PermissionResponse.model_validate(await permission_service.create_permission(db, user, data))


@permission_router.get("/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: int,
    _: CurrentUser = Depends(admin_read),
    db: AsyncSession = Depends(get_db_session),
) -> PermissionResponse:
    return PermissionResponse.model_validate(await permission_service.get_permission(db, permission_id))


@permission_router.put("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: int,
    data: PermissionUpdate,
    user: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> PermissionResponse:
    permission = await permission_service.update_permission(
        db, user, permission_id, data.model_dump(exclude_unset=True)
    )
    return PermissionResponse.model_validate(permission)


@permission_router.delete(
    "/{permission_id}",
    response_model=MessageResponse,
    responses={400: {"description": "Critical permission", "model": ErrorResponse}},
)
async def delete_permission(
    permission_id: int,
    _: CurrentUser = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await permission_service.delete_permission(db, permission_id)
    return MessageResponse(message="Permission deleted successfully")

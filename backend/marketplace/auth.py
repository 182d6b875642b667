"""
Marketplace Backend — Authentication and Access Control
========================================================

What:  Bearer-token identity plus the role / permission gates applied per route.
How:   HS256 JWTs (PyJWT) carry the user id and the permission names granted
       at login. Every request re-loads the user row (to catch bans and
       deletions) and the user's current role names.
Who:   Route modules declare `Depends(get_current_user)`,
       `Depends(require_role(...))` or `Depends(require_permission(...))`.

Token claims:
    id           users.user_id
    permissions  list of permission names at the time of login
    iat / exp    issue and expiry times (seconds since epoch)

Gate semantics:
    require_role(A, B)        caller holds A or B            → else 403
    require_permission(p, q)  token lists p or q, or caller
                              is SUPER_ADMIN                 → else 403
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.exceptions import AuthenticationError, PermissionDeniedError
from marketplace.models.user import ADMIN_ROLES, SUPER_ADMIN, Role, User, UserRole

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller as seen by route handlers and services."""

    user_id: int
    email: str
    roles: FrozenSet[str] = field(default_factory=frozenset)
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    def has_role(self, *names: str) -> bool:
        return any(name in self.roles for name in names)

    @property
    def is_admin(self) -> bool:
        return self.has_role(*ADMIN_ROLES)

    @property
    def is_super_admin(self) -> bool:
        return SUPER_ADMIN in self.roles


# ── Passwords ─────────────────────────────────────────────────────────────


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ── Tokens ────────────────────────────────────────────────────────────────


def create_access_token(user_id: int, permissions: Iterable[str]) -> Tuple[str, int]:
    """Returns (token, lifetime_seconds)."""
    now = datetime.now(timezone.utc)
    expires_in = settings.jwt_expires_in
    payload: Dict[str, Any] = {
        "id": user_id,
        "permissions": sorted(set(permissions)),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires_in


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verifies signature and expiry.

    Raises:
        AuthenticationError: expired, malformed, or signed with another key
    """
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not configured; rejecting bearer token")
        raise AuthenticationError("Authentication is not configured")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token") from e

    if not isinstance(payload.get("id"), int):
        raise AuthenticationError("Invalid token")
    return payload


# ── Identity ──────────────────────────────────────────────────────────────


async def load_role_names(db: AsyncSession, user_id: int) -> List[str]:
    result = await db.execute(
        select(Role.name)
        .join(UserRole, UserRole.role_id == Role.role_id)
        .where(UserRole.user_id == user_id, Role.is_active.is_(True))
    )
    return list(result.scalars().all())


async def resolve_user(db: AsyncSession, token: str) -> CurrentUser:
    """
    Turns a raw bearer token into a CurrentUser.

    Shared by the HTTP dependency below and the notifications websocket,
    which receives its token as a query parameter.
    """
    payload = decode_access_token(token)
    user_id = payload["id"]

    user = await db.get(User, user_id)
    if user is None or user.is_deleted:
        raise AuthenticationError("User not found")
    if user.is_banned or not user.is_active:
        raise AuthenticationError("Account is disabled")

    roles = await load_role_names(db, user_id)
    permissions = payload.get("permissions") or []
    return CurrentUser(
        user_id=user.user_id,
        email=user.email,
        roles=frozenset(roles),
        permissions=frozenset(p for p in permissions if isinstance(p, str)),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return await resolve_user(db, credentials.credentials)


# ── Gates ─────────────────────────────────────────────────────────────────


def require_role(*role_names: str) -> Callable[..., Any]:
    """Dependency factory: caller must hold at least one of `role_names`."""

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.has_role(*role_names):
            logger.info(
                "Role check failed for user %s: needs one of %s, has %s",
                user.user_id, role_names, sorted(user.roles),
            )
            raise PermissionDeniedError(
                "You do not have the required role for this action",
                context={"required_roles": list(role_names)},
            )
        return user

    return dependency


def require_permission(*permission_names: str) -> Callable[..., Any]:
    """Dependency factory: token must grant one of `permission_names` (SUPER_ADMIN bypasses)."""

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.is_super_admin:
            return user
        if not any(name in user.permissions for name in permission_names):
            raise PermissionDeniedError(
                "You do not have permission to perform this action",
                context={"required_permissions": list(permission_names)},
            )
        return user

    return dependency

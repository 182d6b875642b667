"""
Marketplace Backend — Login Service
====================================

Exchanges email + password for a bearer token. The token embeds the user's
permission names at login time; roles are re-read on every request.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import create_access_token, load_role_names, verify_password
from marketplace.exceptions import AuthenticationError
from marketplace.models.user import User
from marketplace.schemas.auth import AuthUser, LoginRequest, TokenResponse
from marketplace.services.rbac_service import permission_service

logger = logging.getLogger(__name__)


class AuthService:
    async def login(self, db: AsyncSession, data: LoginRequest) -> TokenResponse:
        result = await db.execute(
            select(User).where(func.lower(User.email) == data.email.strip().lower())
        )
        user = result.scalars().first()

        # Same message for unknown email and wrong password
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("Failed login attempt for %s", data.email)
            raise AuthenticationError("Invalid email or password")
        if user.is_deleted or user.is_banned or not user.is_active:
            raise AuthenticationError("Account is disabled")

        roles = await load_role_names(db, user.user_id)
        permissions = await permission_service.effective_permissions(db, user.user_id)
        token, expires_in = create_access_token(user.user_id, permissions)

        logger.info("User %s logged in", user.user_id)
        return TokenResponse(
            access_token=token,
            expires_in=expires_in,
            user=AuthUser(
                user_id=user.user_id,
                email=user.email,
                username=user.username,
                first_name=user.first_name,
                last_name=user.last_name,
                roles=sorted(roles),
                permissions=permissions,
            ),
        )


auth_service = AuthService()

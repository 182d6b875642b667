"""Login endpoint and the caller's identity."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, get_current_user
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.schemas.auth import AuthUser, LoginRequest, TokenResponse
from marketplace.schemas.common import ErrorResponse
from marketplace.services.auth_service import auth_service
from marketplace.models.user import User

router = APIRouter(prefix=f"{settings.api_prefix}/auth", tags=["Auth"])


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for a bearer token",
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    return await auth_service.login(db, data)


@router.get("/me", response_model=AuthUser, summary="Current user")
async def me(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AuthUser:
    row = await db.get(User, user.user_id)
    return AuthUser(
        user_id=row.user_id,
        email=row.email,
        username=row.username,
        first_name=row.first_name,
        last_name=row.last_name,
        roles=sorted(user.roles),
        permissions=sorted(user.permissions),
    )

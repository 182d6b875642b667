"""Login request and token response."""

from typing import List, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1, max_length=128)


class AuthUser(BaseModel):
    user_id: int
    email: str
    username: Optional[str] = None
    first_name: str
    last_name: str
    roles: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)


class TokenResponse(BaseModel):
    access_token: str = Field(description="Bearer token for the Authorization header")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(description="Token lifetime in seconds")
    user: AuthUser

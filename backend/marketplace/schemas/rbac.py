"""Role and permission DTOs."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RoleCreate(BaseModel):
    name: str = Field(min_length=2, max_length=50, pattern=r"^[A-Z][A-Z0-9_]*$")
    label: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None


class RoleUpdate(BaseModel):
    label: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class RoleResponse(BaseModel):
    role_id: int
    name: str
    label: Optional[str] = None
    description: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PermissionCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100, pattern=r"^[a-z_]+(\.[a-z_]+)+$")
    label: Optional[str] = Field(default=None, max_length=100)
    module: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    is_critical: bool = False


class PermissionUpdate(BaseModel):
    label: Optional[str] = Field(default=None, max_length=100)
    module: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None


class PermissionResponse(BaseModel):
    permission_id: int
    name: str
    label: Optional[str] = None
    module: Optional[str] = None
    description: Optional[str] = None
    is_critical: bool

    model_config = {"from_attributes": True}


class PermissionIdsRequest(BaseModel):
    permission_ids: List[int] = Field(default_factory=list)


class PermissionAssign(BaseModel):
    permission_id: int = Field(gt=0)


class RoleAssign(BaseModel):
    role_id: int = Field(gt=0)

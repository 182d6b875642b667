"""Favorite, saved project, report and notification DTOs."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# ── Favorites ─────────────────────────────────────────────────────────────


class FavoriteCreate(BaseModel):
    freelancer_id: int = Field(gt=0, description="users.user_id of the freelancer")


class FavoriteResponse(BaseModel):
    id: int
    user_id: int
    freelancer_id: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class FavoriteDetail(FavoriteResponse):
    """Favorite joined with the freelancer's public profile fields."""
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


# ── Saved projects ────────────────────────────────────────────────────────


class SavedProjectCreate(BaseModel):
    projects_task_id: int = Field(gt=0)


class SavedProjectResponse(BaseModel):
    saved_projects_id: int
    user_id: int
    projects_task_id: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Reports ───────────────────────────────────────────────────────────────


class _ReportBase(BaseModel):
    reason: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class UserReportCreate(_ReportBase):
    reported_user_id: int = Field(gt=0)


class ProjectReportCreate(_ReportBase):
    reported_project_id: int = Field(gt=0)


class ReportStatusUpdate(BaseModel):
    status: Literal["pending", "reviewed", "resolved", "rejected"]
    admin_remarks: Optional[str] = None


class ReportResponse(BaseModel):
    report_id: int
    report_type: str
    reporter_id: int
    reported_user_id: Optional[int] = None
    reported_project_id: Optional[int] = None
    reason: str
    description: str
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    status: str
    admin_remarks: Optional[str] = None
    reviewed_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ── Notifications ─────────────────────────────────────────────────────────


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    redirect_url: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}

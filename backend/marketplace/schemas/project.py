"""
Marketplace Backend — Project, Application and Bid Schemas
===========================================================

What:  Request DTOs validated before any handler logic runs, and the response
       shapes built from ORM rows (`from_attributes`).

Validation split:
    - Shape checks (types, required fields, positive amounts) live here and
      fail with 400 through the RequestValidationError handler.
    - Business rules (project open, caller owns the application, bid still
      pending) live in the services and raise MarketplaceError subclasses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from marketplace.models.project import BidStatus


# ══════════════════════════════════════════════════════════════════════════
# Projects
# ══════════════════════════════════════════════════════════════════════════


class ProjectCreate(BaseModel):
    project_title: str = Field(min_length=1, max_length=255)
    project_category: Optional[str] = Field(default=None, max_length=255)
    project_description: Optional[str] = None
    budget: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    deadline: Optional[datetime] = None
    skills_required: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    bidding_enabled: bool = False


class ProjectUpdate(BaseModel):
    """Partial update; at least one field must be present."""
    project_title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    project_category: Optional[str] = Field(default=None, max_length=255)
    project_description: Optional[str] = None
    budget: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    deadline: Optional[datetime] = None
    skills_required: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    bidding_enabled: Optional[bool] = None


class ProjectResponse(BaseModel):
    projects_task_id: int
    client_id: int
    freelancer_id: Optional[int] = None
    project_title: str
    project_category: Optional[str] = None
    project_description: Optional[str] = None
    budget: Decimal
    deadline: Optional[datetime] = None
    skills_required: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    status: int
    bidding_enabled: bool
    assigned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Applications
# ══════════════════════════════════════════════════════════════════════════


class ApplicationCreate(BaseModel):
    projects_task_id: int = Field(gt=0)
    description: Optional[str] = None
    # Required (> 0) only when the project has bidding enabled; checked in the service
    bid_amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    bid_message: Optional[str] = None


class ApplicationStatusUpdate(BaseModel):
    # Range is enforced by the service so the error names the allowed values
    status: int


class ApplicationResponse(BaseModel):
    applied_projects_id: int
    projects_task_id: int
    user_id: int
    status: int
    description: Optional[str] = None
    bid_amount: Optional[Decimal] = None
    bid_message: Optional[str] = None
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ApplicationWithProject(ApplicationResponse):
    """Application row plus the project fields freelancer dashboards display."""
    project_title: str
    project_category: Optional[str] = None
    budget: Decimal
    deadline: Optional[datetime] = None


class ApplyResponse(BaseModel):
    """
    Result of an apply call.

    already_applied=True means the caller had a live application for the
    project and that record is returned unchanged.
    """
    already_applied: bool
    message: str
    application: ApplicationResponse


# ══════════════════════════════════════════════════════════════════════════
# Bids
# ══════════════════════════════════════════════════════════════════════════


class BidCreate(BaseModel):
    project_id: int = Field(gt=0)
    application_id: int = Field(gt=0)
    bid_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    delivery_time_days: int = Field(ge=1, le=3650)
    proposal: str = Field(min_length=1)
    milestones: Optional[List[Any]] = None
    additional_services: Optional[List[Any]] = None


class BidUpdate(BaseModel):
    bid_amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    delivery_time_days: Optional[int] = Field(default=None, ge=1, le=3650)
    proposal: Optional[str] = Field(default=None, min_length=1)
    milestones: Optional[List[Any]] = None
    additional_services: Optional[List[Any]] = None

    @model_validator(mode="after")
    def require_any_field(self) -> "BidUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class BidStatusUpdate(BaseModel):
    # Owners withdraw through their own endpoint; clients decide here
    status: Literal["accepted", "rejected"]


class BidResponse(BaseModel):
    bid_id: int
    project_id: int
    freelancer_id: int
    application_id: int
    bid_amount: Decimal
    delivery_time_days: int
    proposal: str
    milestones: Optional[List[Any]] = None
    status: str = Field(description=f"One of: {', '.join(BidStatus.ALL)}")
    is_featured: bool
    featured_until: Optional[datetime] = None
    additional_services: Optional[List[Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Submissions
# ══════════════════════════════════════════════════════════════════════════


class SubmissionCreate(BaseModel):
    submitted_files: List[str] = Field(min_length=1, description="Delivery links")
    additional_notes: Optional[str] = None


class SubmissionReview(BaseModel):
    # 1 approve, 2 reject
    status: Literal[1, 2]


class SubmissionResponse(BaseModel):
    submission_id: int
    projects_task_id: int
    user_id: int
    submitted_files: List[str]
    additional_notes: Optional[str] = None
    status: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

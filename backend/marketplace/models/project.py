"""
Marketplace Backend — Project, Application and Bid Models
==========================================================

What:  ORM models for the hiring pipeline: a client posts a ProjectTask,
       freelancers apply (AppliedProject) and optionally price their
       application with a ProjectBid. The hired freelancer hands in the
       result as a SubmittedProject.
Who:   ProjectService, ApplicationService, BidService, SubmissionService,
       PaymentService.

Status Codes:
    ProjectTask.status        0 pending (open) │ 1 assigned │ 2 completed
    AppliedProject.status     0 pending │ 1 ongoing (hired) │ 2 completed │ 3 rejected
    ProjectBid.status         pending → accepted | rejected | withdrawn (terminal)
    SubmittedProject.status   0 pending review │ 1 approved │ 2 rejected

    Integer codes on projects and applications are kept as plain integers
    because the frontend filters on them directly; bid status is a short string.

Indexes:
    project_bids (project_id, status): "pending bids for project P", used by
    bid acceptance to reject the losing bids in one UPDATE.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database import Base
from marketplace.models.base import AuditMixin

# ── Project Status ────────────────────────────────────────────────────────
PROJECT_PENDING = 0
PROJECT_ASSIGNED = 1
PROJECT_COMPLETED = 2

# ── Application Status ────────────────────────────────────────────────────
APPLICATION_PENDING = 0
APPLICATION_ONGOING = 1
APPLICATION_COMPLETED = 2
APPLICATION_REJECTED = 3
APPLICATION_STATUSES = (
    APPLICATION_PENDING,
    APPLICATION_ONGOING,
    APPLICATION_COMPLETED,
    APPLICATION_REJECTED,
)


class BidStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

    ALL = (PENDING, ACCEPTED, REJECTED, WITHDRAWN)


class ProjectTask(AuditMixin, Base):
    """A job posted by a client."""

    __tablename__ = "projects_task"

    projects_task_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Set when an application is approved or a bid is accepted
    freelancer_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
    )
    project_title: Mapped[str] = mapped_column(String(255), nullable=False)
    project_category: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    project_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    budget: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    skills_required: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=PROJECT_PENDING)
    bidding_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ProjectTask(projects_task_id={self.projects_task_id}, "
            f"status={self.status})>"
        )


class AppliedProject(AuditMixin, Base):
    """A freelancer's request to work on a project."""

    __tablename__ = "applied_projects"
    __table_args__ = (
        Index("idx_applied_projects_project_user", "projects_task_id", "user_id"),
    )

    applied_projects_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    projects_task_id: Mapped[int] = mapped_column(
        ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=APPLICATION_PENDING)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Present only when the project has bidding enabled
    bid_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    bid_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AppliedProject(applied_projects_id={self.applied_projects_id}, "
            f"user_id={self.user_id}, status={self.status})>"
        )


class ProjectBid(AuditMixin, Base):
    """A priced, timed proposal attached to an application."""

    __tablename__ = "project_bids"
    __table_args__ = (
        Index("idx_project_bids_project_status", "project_id", "status"),
        Index("idx_project_bids_freelancer_status", "freelancer_id", "status"),
    )

    bid_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"), nullable=False
    )
    # The bidding user (users.user_id)
    freelancer_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applied_projects.applied_projects_id", ondelete="CASCADE"), nullable=False
    )
    bid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    delivery_time_days: Mapped[int] = mapped_column(Integer, nullable=False)
    proposal: Mapped[str] = mapped_column(Text, nullable=False)
    milestones: Mapped[Optional[List[Any]]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BidStatus.PENDING)
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    featured_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    additional_services: Mapped[Optional[List[Any]]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<ProjectBid(bid_id={self.bid_id}, status='{self.status}')>"


# ── Submission Status ─────────────────────────────────────────────────────
SUBMISSION_PENDING = 0
SUBMISSION_APPROVED = 1
SUBMISSION_REJECTED = 2


class SubmittedProject(AuditMixin, Base):
    """Finished work handed in by the hired freelancer, reviewed by the client."""

    __tablename__ = "submitted_projects"
    __table_args__ = (
        Index("idx_submitted_projects_project_user", "projects_task_id", "user_id"),
    )

    submission_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    projects_task_id: Mapped[int] = mapped_column(
        ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Delivery links (storage URLs); uploads themselves happen elsewhere
    submitted_files: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    additional_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=SUBMISSION_PENDING)

    def __repr__(self) -> str:
        return f"<SubmittedProject(submission_id={self.submission_id}, status={self.status})>"

"""
Marketplace Backend — Favorites, Reports and Notifications
===========================================================

What:  Per-user activity records that hang off users and projects.

    favorites      client ──▶ freelancer bookmark (soft-deleted, reactivated on re-add)
    saved_projects freelancer ──▶ project bookmark (same lifecycle as favorites)
    report         abuse report against a user or a project, moderated by admins
    notification   persisted in-app message, also pushed over the websocket
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database import Base
from marketplace.models.base import AuditMixin, TimestampMixin

REPORT_STATUSES = ("pending", "reviewed", "resolved", "rejected")


class Favorite(AuditMixin, Base):
    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "freelancer_id", name="uq_favorites_user_freelancer"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    freelancer_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )


class SavedProject(AuditMixin, Base):
    __tablename__ = "saved_projects"
    __table_args__ = (
        UniqueConstraint("user_id", "projects_task_id", name="uq_saved_projects_user_project"),
    )

    saved_projects_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    projects_task_id: Mapped[int] = mapped_column(
        ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"), nullable=False
    )


class Report(AuditMixin, Base):
    __tablename__ = "report"

    report_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # "user" or "project"
    report_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reporter_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    reported_user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=True
    )
    reported_project_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"), nullable=True
    )
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    admin_remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class Notification(TimestampMixin, Base):
    __tablename__ = "notification"
    __table_args__ = (
        Index("notification_user_id_is_read_idx", "user_id", "is_read"),
        Index("notification_related_idx", "related_type", "related_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # e.g. "application", "application_status", "bid", "payment"
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    related_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    related_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    redirect_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meta: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

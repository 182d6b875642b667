"""
Marketplace Backend — Shared Model Columns
===========================================

What:  Audit and soft-delete columns shared by most tables.
How:   `AuditMixin` is mixed into ORM models next to `Base`; SQLAlchemy copies
       the mapped columns onto each table.

Soft delete:
    Rows are never removed by the API. `is_deleted = true` hides a row from
    default list/lookup queries while keeping it for audit, with
    `deleted_by` / `deleted_at` recording who removed it and when.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, false, func, true
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time; all timestamps are stored in UTC."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """created_at / updated_at pair."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )


class AuditMixin(TimestampMixin):
    """Activity flag, soft-delete flag and who-did-what columns."""

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(), index=True
    )
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deleted_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def soft_delete(self, user_id: Optional[int]) -> None:
        """Flag the row as deleted on behalf of `user_id`."""
        self.is_deleted = True
        self.is_active = False
        self.deleted_by = user_id
        self.deleted_at = utcnow()

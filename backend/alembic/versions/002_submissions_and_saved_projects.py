"""Submissions and saved projects

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Adds submitted_projects (work handed in by the hired freelancer) and
       saved_projects (freelancer bookmarks of projects).

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("deleted_by", sa.Integer(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _project_fk(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.Integer(),
        sa.ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"),
        nullable=False,
    )


def _user_fk(name: str) -> sa.Column:
    return sa.Column(
        name, sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )


def upgrade() -> None:
    op.create_table(
        "submitted_projects",
        sa.Column("submission_id", sa.Integer(), primary_key=True, autoincrement=True),
        _project_fk("projects_task_id"),
        _user_fk("user_id"),
        sa.Column("submitted_files", sa.JSON(), nullable=False),
        sa.Column("additional_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        *_audit(),
    )
    op.create_index("ix_submitted_projects_user_id", "submitted_projects", ["user_id"])
    op.create_index("ix_submitted_projects_is_deleted", "submitted_projects", ["is_deleted"])
    op.create_index(
        "idx_submitted_projects_project_user", "submitted_projects", ["projects_task_id", "user_id"]
    )

    op.create_table(
        "saved_projects",
        sa.Column("saved_projects_id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_id"),
        _project_fk("projects_task_id"),
        *_audit(),
        sa.UniqueConstraint("user_id", "projects_task_id", name="uq_saved_projects_user_project"),
    )
    op.create_index("ix_saved_projects_user_id", "saved_projects", ["user_id"])
    op.create_index("ix_saved_projects_is_deleted", "saved_projects", ["is_deleted"])


def downgrade() -> None:
    op.drop_table("saved_projects")
    op.drop_table("submitted_projects")

"""Initial marketplace schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates every table: users and RBAC, projects / applications / bids,
       catalogs, favorites, reports, notifications, transactions.
Seeds: the five system roles and the critical content permissions.

Rollback: downgrade() drops all tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _audit():
    """Columns of AuditMixin; a fresh list per table since Column objects bind to one table."""
    return _timestamps() + [
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("deleted_by", sa.Integer(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _user_fk(name: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name, sa.Integer(), sa.ForeignKey("users.user_id", ondelete=ondelete), nullable=nullable
    )


def upgrade() -> None:
    # ── Users and RBAC ────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(100), nullable=True, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("profile_picture", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_audit(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_is_deleted", "users", ["is_deleted"])

    role_table = op.create_table(
        "role",
        sa.Column("role_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("label", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    permission_table = op.create_table(
        "permission",
        sa.Column("permission_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("label", sa.String(100), nullable=True),
        sa.Column("module", sa.String(50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_critical", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "role_permission",
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("role.role_id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "permission_id",
            sa.Integer(),
            sa.ForeignKey("permission.permission_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_id"),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("role.role_id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])
    op.create_index("ix_user_roles_role_id", "user_roles", ["role_id"])

    # ── Projects, applications, bids ──────────────────────────────────────
    op.create_table(
        "projects_task",
        sa.Column("projects_task_id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("client_id"),
        _user_fk("freelancer_id", nullable=True, ondelete="SET NULL"),
        sa.Column("project_title", sa.String(255), nullable=False),
        sa.Column("project_category", sa.String(255), nullable=True),
        sa.Column("project_description", sa.Text(), nullable=True),
        sa.Column("budget", sa.Numeric(12, 2), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("skills_required", sa.JSON(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bidding_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_audit(),
    )
    op.create_index("ix_projects_task_client_id", "projects_task", ["client_id"])
    op.create_index("ix_projects_task_is_deleted", "projects_task", ["is_deleted"])

    op.create_table(
        "applied_projects",
        sa.Column("applied_projects_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "projects_task_id",
            sa.Integer(),
            sa.ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("user_id"),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("bid_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("bid_message", sa.Text(), nullable=True),
        *_audit(),
    )
    op.create_index("idx_applied_projects_project_user", "applied_projects", ["projects_task_id", "user_id"])
    op.create_index("ix_applied_projects_user_id", "applied_projects", ["user_id"])
    op.create_index("ix_applied_projects_is_deleted", "applied_projects", ["is_deleted"])

    op.create_table(
        "project_bids",
        sa.Column("bid_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("freelancer_id"),
        sa.Column(
            "application_id",
            sa.Integer(),
            sa.ForeignKey("applied_projects.applied_projects_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("bid_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("delivery_time_days", sa.Integer(), nullable=False),
        sa.Column("proposal", sa.Text(), nullable=False),
        sa.Column("milestones", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("featured_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("additional_services", sa.JSON(), nullable=True),
        *_audit(),
    )
    op.create_index("idx_project_bids_project_status", "project_bids", ["project_id", "status"])
    op.create_index("idx_project_bids_freelancer_status", "project_bids", ["freelancer_id", "status"])
    op.create_index("ix_project_bids_is_deleted", "project_bids", ["is_deleted"])

    # ── Catalogs ──────────────────────────────────────────────────────────
    op.create_table(
        "category",
        sa.Column("category_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("category_name", sa.String(255), nullable=False),
        sa.Column("category_type", sa.String(50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_audit(),
    )
    op.create_index("ix_category_category_type", "category", ["category_type"])
    op.create_index("ix_category_is_deleted", "category", ["is_deleted"])

    op.create_table(
        "tags",
        sa.Column("tag_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tag_name", sa.String(100), nullable=False),
        sa.Column("tag_type", sa.String(50), nullable=True),
        *_audit(),
    )
    op.create_index("ix_tags_tag_type", "tags", ["tag_type"])
    op.create_index("ix_tags_is_deleted", "tags", ["is_deleted"])

    op.create_table(
        "skills",
        sa.Column("skill_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("skill_name", sa.String(100), nullable=False),
        *_audit(),
    )
    op.create_index("ix_skills_is_deleted", "skills", ["is_deleted"])

    # ── Favorites, reports, notifications ─────────────────────────────────
    op.create_table(
        "favorites",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_id"),
        _user_fk("freelancer_id"),
        *_audit(),
        sa.UniqueConstraint("user_id", "freelancer_id", name="uq_favorites_user_freelancer"),
    )
    op.create_index("ix_favorites_user_id", "favorites", ["user_id"])
    op.create_index("ix_favorites_is_deleted", "favorites", ["is_deleted"])

    op.create_table(
        "report",
        sa.Column("report_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("report_type", sa.String(20), nullable=False),
        _user_fk("reporter_id"),
        _user_fk("reported_user_id", nullable=True),
        sa.Column(
            "reported_project_id",
            sa.Integer(),
            sa.ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("admin_remarks", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.Integer(), nullable=True),
        *_audit(),
    )
    op.create_index("ix_report_reporter_id", "report", ["reporter_id"])
    op.create_index("ix_report_is_deleted", "report", ["is_deleted"])

    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_id"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("related_type", sa.String(50), nullable=True),
        sa.Column("redirect_url", sa.Text(), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_notification_user_id", "notification", ["user_id"])
    op.create_index("notification_user_id_is_read_idx", "notification", ["user_id", "is_read"])
    op.create_index("notification_related_idx", "notification", ["related_type", "related_id"])

    # ── Payments ──────────────────────────────────────────────────────────
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("transaction_type", sa.String(20), nullable=False),
        sa.Column("transaction_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "application_id",
            sa.Integer(),
            sa.ForeignKey("applied_projects.applied_projects_id", ondelete="CASCADE"),
            nullable=True,
        ),
        _user_fk("payer_id", nullable=True),
        _user_fk("payee_id", nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("payment_gateway", sa.String(50), nullable=False, server_default="razorpay"),
        sa.Column("gateway_transaction_id", sa.String(100), nullable=True),
        sa.Column("gateway_payment_id", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transactions_project_id", "transactions", ["project_id"])
    op.create_index("ix_transactions_payer_id", "transactions", ["payer_id"])
    op.create_index("ix_transactions_payee_id", "transactions", ["payee_id"])
    op.create_index("ix_transactions_gateway_transaction_id", "transactions", ["gateway_transaction_id"])

    # ── Seed data ─────────────────────────────────────────────────────────
    op.bulk_insert(
        role_table,
        [
            {"name": "SUPER_ADMIN", "label": "Super Admin", "description": "Full access"},
            {"name": "ADMIN", "label": "Admin", "description": "Moderation and reporting"},
            {"name": "CLIENT", "label": "Client", "description": "Posts projects and hires"},
            {"name": "VIDEOGRAPHER", "label": "Videographer", "description": "Freelancer"},
            {"name": "VIDEO_EDITOR", "label": "Video Editor", "description": "Freelancer"},
        ],
    )
    op.bulk_insert(
        permission_table,
        [
            {"name": "content.create", "label": "Create content", "module": "content", "is_critical": True},
            {"name": "content.update", "label": "Update content", "module": "content", "is_critical": True},
            {"name": "content.delete", "label": "Delete content", "module": "content", "is_critical": True},
        ],
    )


def downgrade() -> None:
    for table in (
        "transactions",
        "notification",
        "report",
        "favorites",
        "skills",
        "tags",
        "category",
        "project_bids",
        "applied_projects",
        "projects_task",
        "user_roles",
        "role_permission",
        "permission",
        "role",
        "users",
    ):
        op.drop_table(table)

"""
ORM models. Importing this package registers every table on `Base.metadata`
(Alembic's env.py and the test suite rely on that).
"""

from marketplace.models.activity import Favorite, Notification, Report, SavedProject
from marketplace.models.project import (
    AppliedProject,
    BidStatus,
    ProjectBid,
    ProjectTask,
    SubmittedProject,
)
from marketplace.models.taxonomy import Category, Skill, Tag
from marketplace.models.transaction import Transaction, TransactionStatus, TransactionType
from marketplace.models.user import Permission, Role, RolePermission, User, UserRole

__all__ = [
    "AppliedProject",
    "BidStatus",
    "Category",
    "Favorite",
    "Notification",
    "Permission",
    "ProjectBid",
    "ProjectTask",
    "Report",
    "Role",
    "RolePermission",
    "SavedProject",
    "Skill",
    "SubmittedProject",
    "Tag",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "User",
    "UserRole",
]

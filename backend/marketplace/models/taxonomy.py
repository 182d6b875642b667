"""
Marketplace Backend — Taxonomy Models
======================================

Categories, tags and skills that clients attach to projects and freelancers
attach to their profiles. All three are soft-deleted and looked up by name.
"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database import Base
from marketplace.models.base import AuditMixin


class Category(AuditMixin, Base):
    __tablename__ = "category"

    category_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # "videographer" or "editor" in practice; free text
    category_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Category(category_id={self.category_id}, name='{self.category_name}')>"


class Tag(AuditMixin, Base):
    __tablename__ = "tags"

    tag_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tag_name: Mapped[str] = mapped_column(String(100), nullable=False)
    tag_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Tag(tag_id={self.tag_id}, name='{self.tag_name}')>"


class Skill(AuditMixin, Base):
    __tablename__ = "skills"

    skill_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    skill_name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Skill(skill_id={self.skill_id}, name='{self.skill_name}')>"

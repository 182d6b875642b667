"""Category, tag and skill DTOs."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _strip_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Name must not be blank")
    return v


class CategoryCreate(BaseModel):
    category_name: str = Field(min_length=1, max_length=255)
    category_type: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None

    strip_name = field_validator("category_name")(_strip_name)


class CategoryUpdate(BaseModel):
    category_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category_type: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    strip_name = field_validator("category_name")(_strip_name)


class CategoryResponse(BaseModel):
    category_id: int
    category_name: str
    category_type: Optional[str] = None
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TagCreate(BaseModel):
    tag_name: str = Field(min_length=1, max_length=100)
    tag_type: Optional[str] = Field(default=None, max_length=50)

    strip_name = field_validator("tag_name")(_strip_name)


class TagUpdate(BaseModel):
    tag_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    tag_type: Optional[str] = Field(default=None, max_length=50)
    is_active: Optional[bool] = None

    strip_name = field_validator("tag_name")(_strip_name)


class TagResponse(BaseModel):
    tag_id: int
    tag_name: str
    tag_type: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SkillCreate(BaseModel):
    skill_name: str = Field(min_length=1, max_length=100)

    strip_name = field_validator("skill_name")(_strip_name)


class SkillUpdate(BaseModel):
    skill_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_active: Optional[bool] = None

    strip_name = field_validator("skill_name")(_strip_name)


class SkillResponse(BaseModel):
    skill_id: int
    skill_name: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}

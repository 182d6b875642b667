"""
Marketplace Backend — Category, Tag and Skill Routes
=====================================================

Reads are public. Writes need the `content.create`, `content.update` or
`content.delete` permission (SUPER_ADMIN passes every permission gate).
Deletes are soft: rows stay in the table with `is_deleted` set and drop out
of every listing.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, require_permission
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.schemas.common import ErrorResponse, MessageResponse
from marketplace.schemas.taxonomy import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    SkillCreate,
    SkillResponse,
    SkillUpdate,
    TagCreate,
    TagResponse,
    TagUpdate,
)
from marketplace.services.taxonomy_service import category_service, skill_service, tag_service

can_create = require_permission("content.create")
can_update = require_permission("content.update")
can_delete = require_permission("content.delete")

_write_errors = {
    404: {"description": "Not found", "model": ErrorResponse},
    409: {"description": "Name already in use", "model": ErrorResponse},
}


# ── Categories ────────────────────────────────────────────────────────────

category_router = APIRouter(prefix=f"{settings.api_prefix}/category", tags=["Categories"])


@category_router.post("", status_code=201, response_model=CategoryResponse, responses=_write_errors)
async def create_category(
    data: CategoryCreate,
    user: CurrentUser = Depends(can_create),
    db: AsyncSession = Depends(get_db_session),
) -> CategoryResponse:
    row = await category_service.create(db, user, data.model_dump())
    return CategoryResponse.model_validate(row)


@category_router.get("", response_model=List[CategoryResponse])
async def list_categories(
    type: Optional[str] = Query(default=None, description="Filter by category_type"),
    db: AsyncSession = Depends(get_db_session),
) -> List[CategoryResponse]:
    rows = await category_service.list_items(db, type_filter=type)
    return [CategoryResponse.model_validate(r) for r in rows]


@category_router.get("/{category_id}", response_model=CategoryResponse, responses=_write_errors)
async def get_category(
    category_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> CategoryResponse:
    return CategoryResponse.model_validate(await category_service.get(db, category_id))


@category_router.put("/{category_id}", response_model=CategoryResponse, responses=_write_errors)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    user: CurrentUser = Depends(can_update),
    db: AsyncSession = Depends(get_db_session),
) -> CategoryResponse:
    row = await category_service.update(db, user, category_id, data.model_dump(exclude_unset=True))
    return CategoryResponse.model_validate(row)


@category_router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: int,
    user: CurrentUser = Depends(can_delete),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await category_service.delete(db, user, category_id)
    return MessageResponse(message="Category deleted successfully")


# ── Tags ──────────────────────────────────────────────────────────────────

tag_router = APIRouter(prefix=f"{settings.api_prefix}/tags", tags=["Tags"])


@tag_router.post("", status_code=201, response_model=TagResponse, responses=_write_errors)
async def create_tag(
    data: TagCreate,
    user: CurrentUser = Depends(can_create),
    db: AsyncSession = Depends(get_db_session),
) -> TagResponse:
    return TagResponse.model_validate(await tag_service.create(db, user, data.model_dump()))


@tag_router.get("", response_model=List[TagResponse])
async def list_tags(
    tag_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db_session),
) -> List[TagResponse]:
    rows = await tag_service.list_items(db, type_filter=tag_type)
    return [TagResponse.model_validate(r) for r in rows]


@tag_router.get("/{tag_id}", response_model=TagResponse, responses=_write_errors)
async def get_tag(tag_id: int, db: AsyncSession = Depends(get_db_session)) -> TagResponse:
    return TagResponse.model_validate(await tag_service.get(db, tag_id))


@tag_router.put("/{tag_id}", response_model=TagResponse, responses=_write_errors)
async def update_tag(
    tag_id: int,
    data: TagUpdate,
    user: CurrentUser = Depends(can_update),
    db: AsyncSession = Depends(get_db_session),
) -> TagResponse:
    row = await tag_service.update(db, user, tag_id, data.model_dump(exclude_unset=True))
    return TagResponse.model_validate(row)


@tag_router.delete("/{tag_id}", response_model=MessageResponse)
async def delete_tag(
    tag_id: int,
    user: CurrentUser = Depends(can_delete),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await tag_service.delete(db, user, tag_id)
    return MessageResponse(message="Tag deleted successfully")


# ── Skills ────────────────────────────────────────────────────────────────

skill_router = APIRouter(prefix=f"{settings.api_prefix}/skills", tags=["Skills"])


@skill_router.post("", status_code=201, response_model=SkillResponse, responses=_write_errors)
async def create_skill(
    data: SkillCreate,
    user: CurrentUser = Depends(can_create),
    db: AsyncSession = Depends(get_db_session),
) -> SkillResponse:
    return SkillResponse.model_validate(await skill_service.create(db, user, data.model_dump()))


@skill_router.get("", response_model=List[SkillResponse])
async def list_skills(db: AsyncSession = Depends(get_db_session)) -> List[SkillResponse]:
    return [SkillResponse.model_validate(r) for r in await skill_service.list_items(db)]


@skill_router.get("/{skill_id}", response_model=SkillResponse, responses=_write_errors)
async def get_skill(skill_id: int, db: AsyncSession = Depends(get_db_session)) -> SkillResponse:
    return SkillResponse.model_validate(await skill_service.get(db, skill_id))


@skill_router.put("/{skill_id}", response_model=SkillResponse, responses=_write_errors)
async def update_skill(
    skill_id: int,
    data: SkillUpdate,
    user: CurrentUser = Depends(can_update),
    db: AsyncSession = Depends(get_db_session),
) -> SkillResponse:
    row = await skill_service.update(db, user, skill_id, data.model_dump(exclude_unset=True))
    return SkillResponse.model_validate(row)


@skill_router.delete("/{skill_id}", response_model=MessageResponse)
async def delete_skill(
    skill_id: int,
    user: CurrentUser = Depends(can_delete),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await skill_service.delete(db, user, skill_id)
    return MessageResponse(message="Skill deleted successfully")

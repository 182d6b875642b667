"""
Marketplace Backend — Category, Tag and Skill Services
=======================================================

What:  Admin-maintained name catalogs. The three tables share one shape
       (id, name, optional type, audit columns), so a single generic
       service handles them, parameterized by model and column names.

Name matching:
    Names are compared as LOWER(TRIM(name)), so "Drone ", "drone" and
    "DRONE" are the same entry.

Create semantics:
    active duplicate        → ConflictError (409)
    soft-deleted duplicate  → the old row is reactivated with the new data
    no duplicate            → insert
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser
from marketplace.exceptions import ConflictError, NotFoundError, ValidationError
from marketplace.models.taxonomy import Category, Skill, Tag

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", Category, Tag, Skill)


class CatalogService(Generic[ModelT]):
    def __init__(
        self,
        model: Type[ModelT],
        id_column: str,
        name_column: str,
        resource: str,
        type_column: Optional[str] = None,
    ):
        self.model = model
        self.id_column = id_column
        self.name_column = name_column
        self.type_column = type_column
        self.resource = resource

    def _name_matches(self, name: str):
        column = getattr(self.model, self.name_column)
        return func.lower(func.trim(column)) == name.strip().lower()

    async def _find_by_name(self, db: AsyncSession, name: str) -> List[ModelT]:
        result = await db.execute(select(self.model).where(self._name_matches(name)))
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, user: CurrentUser, data: Dict[str, Any]) -> ModelT:
        name = data[self.name_column].strip()
        data = {**data, self.name_column: name}

        matches = await self._find_by_name(db, name)
        if any(not row.is_deleted for row in matches):
            raise ConflictError(f"This {self.resource} already exists")

        if matches:
            row = matches[0]
            for key, value in data.items():
                setattr(row, key, value)
            row.is_deleted = False
            row.is_active = True
            row.deleted_by = None
            row.deleted_at = None
            row.updated_by = user.user_id
            await db.flush()
            logger.info("Reactivated %s %s ('%s')", self.resource, getattr(row, self.id_column), name)
            return row

        row = self.model(**data, created_by=user.user_id)
        db.add(row)
        await db.flush()
        return row

    async def list_items(self, db: AsyncSession, type_filter: Optional[str] = None) -> List[ModelT]:
        query = select(self.model).where(self.model.is_deleted.is_(False))
        if type_filter is not None and self.type_column is not None:
            query = query.where(
                getattr(self.model, self.type_column) == type_filter,
                self.model.is_active.is_(True),
            )
        query = query.order_by(getattr(self.model, self.name_column))
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, item_id: int) -> ModelT:
        row = await db.get(self.model, item_id)
        if row is None or row.is_deleted:
            raise NotFoundError(resource=self.resource, resource_id=item_id)
        return row

    async def update(
        self, db: AsyncSession, user: CurrentUser, item_id: int, changes: Dict[str, Any]
    ) -> ModelT:
        if not changes:
            raise ValidationError("Update data is empty")
        row = await self.get(db, item_id)

        new_name = changes.get(self.name_column)
        if new_name is not None:
            others = [
                r for r in await self._find_by_name(db, new_name)
                if not r.is_deleted and getattr(r, self.id_column) != item_id
            ]
            if others:
                raise ConflictError(f"This {self.resource} already exists")
            changes = {**changes, self.name_column: new_name.strip()}

        for key, value in changes.items():
            setattr(row, key, value)
        row.updated_by = user.user_id
        await db.flush()
        return row

    async def delete(self, db: AsyncSession, user: CurrentUser, item_id: int) -> None:
        row = await self.get(db, item_id)
        row.soft_delete(user.user_id)
        await db.flush()
        logger.info("Soft-deleted %s %s", self.resource, item_id)


category_service: CatalogService[Category] = CatalogService(
    Category, "category_id", "category_name", "category", type_column="category_type"
)
tag_service: CatalogService[Tag] = CatalogService(
    Tag, "tag_id", "tag_name", "tag", type_column="tag_type"
)
skill_service: CatalogService[Skill] = CatalogService(Skill, "skill_id", "skill_name", "skill")

"""
Marketplace Backend — Project Service
======================================

What:  Client-owned project postings: create, browse, edit, soft delete.
Who:   Projects router; ApplicationService, BidService and PaymentService use
       `get_live_project()` to resolve a project id.

Visibility:
    Public listing shows open projects only (status 0, active, not deleted).
    Direct lookup shows any non-deleted project.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser
from marketplace.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.models.project import PROJECT_PENDING, ProjectTask
from marketplace.schemas.project import ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)


class ProjectService:
    async def create_project(
        self, db: AsyncSession, user: CurrentUser, data: ProjectCreate
    ) -> ProjectTask:
        project = ProjectTask(
            client_id=user.user_id,
            project_title=data.project_title,
            project_category=data.project_category,
            project_description=data.project_description,
            budget=data.budget,
            deadline=data.deadline,
            skills_required=data.skills_required,
            tags=data.tags,
            bidding_enabled=data.bidding_enabled,
            status=PROJECT_PENDING,
            created_by=user.user_id,
        )
        db.add(project)
        await db.flush()
        logger.info("Project %s created by client %s", project.projects_task_id, user.user_id)
        return project

    async def get_live_project(self, db: AsyncSession, project_id: int) -> ProjectTask:
        """Non-deleted project or NotFoundError."""
        project = await db.get(ProjectTask, project_id)
        if project is None or project.is_deleted:
            raise NotFoundError(resource="project", resource_id=project_id)
        return project

    async def list_public_projects(
        self, db: AsyncSession, limit: int = 50, offset: int = 0
    ) -> List[ProjectTask]:
        result = await db.execute(
            select(ProjectTask)
            .where(
                ProjectTask.is_deleted.is_(False),
                ProjectTask.is_active.is_(True),
                ProjectTask.status == PROJECT_PENDING,
            )
            .order_by(ProjectTask.created_at.desc(), ProjectTask.projects_task_id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def list_my_projects(self, db: AsyncSession, user: CurrentUser) -> List[ProjectTask]:
        result = await db.execute(
            select(ProjectTask)
            .where(ProjectTask.client_id == user.user_id, ProjectTask.is_deleted.is_(False))
            .order_by(ProjectTask.created_at.desc(), ProjectTask.projects_task_id.desc())
        )
        return list(result.scalars().all())

    async def update_project(
        self, db: AsyncSession, user: CurrentUser, project_id: int, data: ProjectUpdate
    ) -> ProjectTask:
        project = await self.get_live_project(db, project_id)
        if project.client_id != user.user_id:
            raise PermissionDeniedError("Only the project owner can edit this project")

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        for name, value in changes.items():
            setattr(project, name, value)
        project.updated_by = user.user_id
        await db.flush()
        return project

    async def delete_project(self, db: AsyncSession, user: CurrentUser, project_id: int) -> None:
        project = await self.get_live_project(db, project_id)
        if project.client_id != user.user_id and not user.is_admin:
            raise PermissionDeniedError("Only the project owner or an admin can delete this project")

        project.soft_delete(user.user_id)
        await db.flush()
        logger.info("Project %s soft-deleted by user %s", project_id, user.user_id)


project_service = ProjectService()

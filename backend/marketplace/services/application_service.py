"""
Marketplace Backend — Application Service
==========================================

What:  Freelancers apply to projects; clients review and hire.
Why:   Hiring goes through the application, and both bids and escrow
       payments reference it.
Who:   Applications router; BidService resolves applications through
       `get_live_application()`.

Application Lifecycle:
    apply ──▶ 0 pending ──┬──▶ 1 ongoing (hired; project assigned to freelancer)
                          ├──▶ 3 rejected
                          └──▶ withdrawn (soft delete by the freelancer)
    1 ongoing ──▶ 2 completed

Duplicate handling:
    A second apply for the same (user, project) while the first application
    is not deleted returns the existing row with already_applied=True.
    A withdrawn (deleted) application does not block re-applying.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser
from marketplace.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.models.base import utcnow
from marketplace.models.project import (
    APPLICATION_COMPLETED,
    APPLICATION_ONGOING,
    APPLICATION_PENDING,
    APPLICATION_REJECTED,
    APPLICATION_STATUSES,
    PROJECT_ASSIGNED,
    AppliedProject,
    ProjectTask,
)
from marketplace.models.user import User
from marketplace.schemas.project import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicationWithProject,
)
from marketplace.services.notification_service import notification_service
from marketplace.services.project_service import project_service

logger = logging.getLogger(__name__)

FILTER_STATUSES = {
    "new": APPLICATION_PENDING,
    "ongoing": APPLICATION_ONGOING,
    "completed": APPLICATION_COMPLETED,
}


def _with_project(application: AppliedProject, project: ProjectTask) -> ApplicationWithProject:
    return ApplicationWithProject(
        **ApplicationResponse.model_validate(application).model_dump(),
        project_title=project.project_title,
        project_category=project.project_category,
        budget=project.budget,
        deadline=project.deadline,
    )


class ApplicationService:
    """
    Business logic for project applications.

    Ownership rules:
        - Freelancers read and withdraw only their own applications.
        - Only the owning client reviews applications of a project.
    """

    async def apply(
        self, db: AsyncSession, user: CurrentUser, data: ApplicationCreate
    ) -> Tuple[AppliedProject, bool]:
        """
        Create an application or return the caller's existing one.

        Returns:
            (application, already_applied)

        Raises:
            NotFoundError:   project missing or deleted
            ValidationError: bidding project without a positive bid_amount
        """
        result = await db.execute(
            select(AppliedProject).where(
                AppliedProject.projects_task_id == data.projects_task_id,
                AppliedProject.user_id == user.user_id,
                AppliedProject.is_deleted.is_(False),
            )
        )
        existing = result.scalars().first()
        if existing is not None:
            logger.info(
                "User %s already applied to project %s (application %s)",
                user.user_id, data.projects_task_id, existing.applied_projects_id,
            )
            return existing, True

        project = await project_service.get_live_project(db, data.projects_task_id)

        if project.bidding_enabled and (data.bid_amount is None or data.bid_amount <= 0):
            raise ValidationError(
                "Bid amount is required and must be greater than 0 for projects with bidding enabled",
                field="bid_amount",
            )

        application = AppliedProject(
            projects_task_id=project.projects_task_id,
            user_id=user.user_id,
            status=APPLICATION_PENDING,
            description=data.description,
            bid_amount=data.bid_amount,
            bid_message=data.bid_message,
            created_by=user.user_id,
        )
        db.add(application)
        await db.flush()

        await notification_service.notify(
            db,
            user_id=project.client_id,
            title="New Proposal Received",
            message=f"A freelancer has applied to your project: {project.project_title}",
            type="proposal",
            related_id=application.applied_projects_id,
            related_type="applied_projects",
        )
        return application, False

    async def get_live_application(self, db: AsyncSession, application_id: int) -> AppliedProject:
        application = await db.get(AppliedProject, application_id)
        if application is None or application.is_deleted:
            raise NotFoundError(resource="application", resource_id=application_id)
        return application

    async def get_my_applications(self, db: AsyncSession, user: CurrentUser) -> List[AppliedProject]:
        result = await db.execute(
            select(AppliedProject)
            .where(AppliedProject.user_id == user.user_id, AppliedProject.is_deleted.is_(False))
            .order_by(AppliedProject.created_at.desc(), AppliedProject.applied_projects_id.desc())
        )
        return list(result.scalars().all())

    async def get_my_application_by_project(
        self, db: AsyncSession, user: CurrentUser, project_id: int
    ) -> Optional[AppliedProject]:
        result = await db.execute(
            select(AppliedProject).where(
                AppliedProject.user_id == user.user_id,
                AppliedProject.projects_task_id == project_id,
                AppliedProject.is_deleted.is_(False),
            )
        )
        return result.scalars().first()

    async def withdraw(self, db: AsyncSession, user: CurrentUser, application_id: int) -> None:
        application = await db.get(AppliedProject, application_id)
        if application is None:
            raise NotFoundError(resource="application", resource_id=application_id)
        if application.user_id != user.user_id:
            raise PermissionDeniedError("You can only withdraw your own applications")
        if application.is_deleted:
            raise ValidationError("Application has already been withdrawn.")
        if application.status == APPLICATION_ONGOING:
            raise ValidationError(
                "Cannot withdraw from an approved project. Please contact support if you have concerns."
            )

        application.soft_delete(user.user_id)
        await db.flush()

        project = await db.get(ProjectTask, application.projects_task_id)
        freelancer = await db.get(User, user.user_id)
        if project is not None:
            name = freelancer.full_name if freelancer is not None else "A freelancer"
            await notification_service.notify(
                db,
                user_id=project.client_id,
                title="Application Withdrawn",
                message=f"{name} has withdrawn their application for \"{project.project_title}\".",
                type="application_withdrawn",
                related_id=project.projects_task_id,
                related_type="projects_task",
            )

    async def get_project_applications(
        self, db: AsyncSession, user: CurrentUser, project_id: int
    ) -> List[AppliedProject]:
        project = await project_service.get_live_project(db, project_id)
        if project.client_id != user.user_id:
            raise PermissionDeniedError("Only the project owner can view its applications")

        result = await db.execute(
            select(AppliedProject)
            .where(
                AppliedProject.projects_task_id == project_id,
                AppliedProject.is_deleted.is_(False),
            )
            .order_by(AppliedProject.created_at.desc(), AppliedProject.applied_projects_id.desc())
        )
        return list(result.scalars().all())

    async def update_status(
        self, db: AsyncSession, user: CurrentUser, application_id: int, status: int
    ) -> AppliedProject:
        """
        Client decision on an application.

        Status 1 (hired) also assigns the freelancer to the project. The
        freelancer is notified on hire and on rejection.
        """
        if status not in APPLICATION_STATUSES:
            raise ValidationError(
                "Status must be 0 (pending), 1 (ongoing), 2 (completed), or 3 (rejected)",
                field="status",
            )

        application = await self.get_live_application(db, application_id)
        project = await project_service.get_live_project(db, application.projects_task_id)
        if project.client_id != user.user_id:
            raise PermissionDeniedError("Only the project owner can update this application")

        application.status = status
        application.updated_by = user.user_id

        if status == APPLICATION_ONGOING:
            project.freelancer_id = application.user_id
            project.status = PROJECT_ASSIGNED
            project.assigned_at = utcnow()
            project.updated_by = user.user_id
        await db.flush()

        if status == APPLICATION_ONGOING:
            await notification_service.notify(
                db,
                user_id=application.user_id,
                title="Proposal Accepted!",
                message="Congratulations! You have been hired for the project.",
                type="hired",
                related_id=project.projects_task_id,
                related_type="projects_task",
            )
        elif status == APPLICATION_REJECTED:
            await notification_service.notify(
                db,
                user_id=application.user_id,
                title="Proposal Update",
                message="Your proposal for the project was not selected.",
                type="rejected",
                related_id=project.projects_task_id,
                related_type="projects_task",
            )

        logger.info("Application %s set to status %s by user %s", application_id, status, user.user_id)
        return application

    # ── Counters and filtered views ───────────────────────────────────────

    async def count_by_project(self, db: AsyncSession, project_id: int) -> int:
        result = await db.execute(
            select(func.count(AppliedProject.applied_projects_id)).where(
                AppliedProject.projects_task_id == project_id,
                AppliedProject.is_deleted.is_(False),
            )
        )
        return result.scalar() or 0

    async def list_by_status(self, db: AsyncSession, status: int) -> List[AppliedProject]:
        if status not in APPLICATION_STATUSES:
            raise ValidationError(
                "Status must be 0 (pending), 1 (ongoing), 2 (completed), or 3 (rejected)",
                field="status",
            )
        result = await db.execute(
            select(AppliedProject)
            .where(AppliedProject.status == status, AppliedProject.is_deleted.is_(False))
            .order_by(AppliedProject.created_at.desc(), AppliedProject.applied_projects_id.desc())
        )
        return list(result.scalars().all())

    async def applied_count(self, db: AsyncSession, user_id: int) -> int:
        # Counts every application ever made, withdrawn ones included
        result = await db.execute(
            select(func.count(AppliedProject.applied_projects_id)).where(
                AppliedProject.user_id == user_id
            )
        )
        return result.scalar() or 0

    async def _joined_by_status(
        self, db: AsyncSession, user_id: int, status: int
    ) -> List[ApplicationWithProject]:
        result = await db.execute(
            select(AppliedProject, ProjectTask)
            .join(ProjectTask, ProjectTask.projects_task_id == AppliedProject.projects_task_id)
            .where(
                AppliedProject.user_id == user_id,
                AppliedProject.status == status,
                AppliedProject.is_deleted.is_(False),
                AppliedProject.is_active.is_(True),
                ProjectTask.is_deleted.is_(False),
            )
            .order_by(AppliedProject.created_at.desc(), AppliedProject.applied_projects_id.desc())
        )
        return [_with_project(application, project) for application, project in result.all()]

    async def ongoing(self, db: AsyncSession, user_id: int) -> List[ApplicationWithProject]:
        return await self._joined_by_status(db, user_id, APPLICATION_ONGOING)

    async def filter_mine(
        self, db: AsyncSession, user: CurrentUser, filter_name: str
    ) -> List[ApplicationWithProject]:
        status = FILTER_STATUSES.get(filter_name)
        if status is None:
            raise ValidationError(
                f"Filter must be one of: {', '.join(FILTER_STATUSES)}", field="filter"
            )
        return await self._joined_by_status(db, user.user_id, status)

    async def completed_count(self, db: AsyncSession) -> int:
        result = await db.execute(
            select(func.count(AppliedProject.applied_projects_id)).where(
                AppliedProject.status == APPLICATION_COMPLETED,
                AppliedProject.is_deleted.is_(False),
            )
        )
        return result.scalar() or 0


application_service = ApplicationService()

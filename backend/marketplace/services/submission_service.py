"""
Marketplace Backend — Submission Service
=========================================

What:  The hired freelancer hands in finished work; the client reviews it.
Who:   Submissions router.

Submission Lifecycle:
    submit ──▶ 0 pending review ──┬──▶ 1 approved ──▶ project 2 completed,
                                  │                   application 2 completed
                                  └──▶ 2 rejected ──▶ freelancer may submit again

Rules:
    - Only the freelancer assigned to the project can submit.
    - One open submission per (project, freelancer): a pending or approved
      one blocks a new submit with 409.
    - Review is done by the project owner or an admin, once per submission.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser
from marketplace.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from marketplace.models.base import utcnow
from marketplace.models.project import (
    APPLICATION_COMPLETED,
    APPLICATION_ONGOING,
    PROJECT_COMPLETED,
    SUBMISSION_APPROVED,
    SUBMISSION_PENDING,
    SUBMISSION_REJECTED,
    AppliedProject,
    SubmittedProject,
)
from marketplace.schemas.project import SubmissionCreate
from marketplace.services.notification_service import notification_service
from marketplace.services.project_service import project_service

logger = logging.getLogger(__name__)


class SubmissionService:
    async def submit(
        self, db: AsyncSession, user: CurrentUser, project_id: int, data: SubmissionCreate
    ) -> SubmittedProject:
        """
        Record a delivery for a project the caller was hired on.

        Raises:
            NotFoundError:         project missing or deleted
            PermissionDeniedError: caller is not the assigned freelancer
            ConflictError:         a pending or approved submission already exists
        """
        project = await project_service.get_live_project(db, project_id)
        if project.freelancer_id != user.user_id:
            raise PermissionDeniedError("Only the freelancer hired for this project can submit work")

        result = await db.execute(
            select(SubmittedProject).where(
                SubmittedProject.projects_task_id == project_id,
                SubmittedProject.user_id == user.user_id,
                SubmittedProject.is_deleted.is_(False),
                SubmittedProject.status.in_((SUBMISSION_PENDING, SUBMISSION_APPROVED)),
            )
        )
        if result.scalars().first() is not None:
            raise ConflictError("Already Submitted")

        submission = SubmittedProject(
            projects_task_id=project_id,
            user_id=user.user_id,
            submitted_files=list(data.submitted_files),
            additional_notes=data.additional_notes,
            status=SUBMISSION_PENDING,
            created_by=user.user_id,
        )
        db.add(submission)
        await db.flush()

        await notification_service.notify(
            db,
            user_id=project.client_id,
            title="Work Submitted",
            message=f"The freelancer has submitted work for \"{project.project_title}\".",
            type="submission",
            related_id=submission.submission_id,
            related_type="submitted_projects",
        )
        logger.info("Submission %s created for project %s", submission.submission_id, project_id)
        return submission

    async def _get_live(self, db: AsyncSession, submission_id: int) -> SubmittedProject:
        submission = await db.get(SubmittedProject, submission_id)
        if submission is None or submission.is_deleted:
            raise NotFoundError(resource="submission", resource_id=submission_id)
        return submission

    async def review(
        self, db: AsyncSession, user: CurrentUser, submission_id: int, status: int
    ) -> SubmittedProject:
        """
        Approve (1) or reject (2) a pending submission.

        Approval completes the project and the freelancer's ongoing
        application in the same transaction.
        """
        if status not in (SUBMISSION_APPROVED, SUBMISSION_REJECTED):
            raise ValidationError("Status must be 1 (approved) or 2 (rejected)", field="status")

        submission = await self._get_live(db, submission_id)
        project = await project_service.get_live_project(db, submission.projects_task_id)
        if project.client_id != user.user_id and not user.is_admin:
            raise PermissionDeniedError("Only the project owner or an admin can review this submission")
        if submission.status != SUBMISSION_PENDING:
            raise ValidationError("Submission has already been reviewed")

        submission.status = status
        submission.updated_by = user.user_id

        if status == SUBMISSION_APPROVED:
            project.status = PROJECT_COMPLETED
            project.completed_at = utcnow()
            project.updated_by = user.user_id

            result = await db.execute(
                select(AppliedProject).where(
                    AppliedProject.projects_task_id == project.projects_task_id,
                    AppliedProject.user_id == submission.user_id,
                    AppliedProject.status == APPLICATION_ONGOING,
                    AppliedProject.is_deleted.is_(False),
                )
            )
            for application in result.scalars().all():
                application.status = APPLICATION_COMPLETED
                application.updated_by = user.user_id
        await db.flush()

        if status == SUBMISSION_APPROVED:
            await notification_service.notify(
                db,
                user_id=submission.user_id,
                title="Submission Approved",
                message=f"Your work for \"{project.project_title}\" was approved.",
                type="submission_approved",
                related_id=submission.submission_id,
                related_type="submitted_projects",
            )
        else:
            await notification_service.notify(
                db,
                user_id=submission.user_id,
                title="Changes Requested",
                message=f"Your work for \"{project.project_title}\" was not approved. You can submit again.",
                type="submission_rejected",
                related_id=submission.submission_id,
                related_type="submitted_projects",
            )

        logger.info("Submission %s set to status %s by user %s", submission_id, status, user.user_id)
        return submission

    async def get(self, db: AsyncSession, user: CurrentUser, submission_id: int) -> SubmittedProject:
        submission = await self._get_live(db, submission_id)
        if submission.user_id == user.user_id or user.is_admin:
            return submission
        project = await project_service.get_live_project(db, submission.projects_task_id)
        if project.client_id != user.user_id:
            raise PermissionDeniedError("You cannot view this submission")
        return submission

    async def list_by_project(
        self, db: AsyncSession, user: CurrentUser, project_id: int
    ) -> List[SubmittedProject]:
        project = await project_service.get_live_project(db, project_id)
        if project.client_id != user.user_id and not user.is_admin:
            raise PermissionDeniedError("Only the project owner can view its submissions")
        return await self.list_all(db, project_id=project_id)

    async def list_by_freelancer(self, db: AsyncSession, user_id: int) -> List[SubmittedProject]:
        return await self.list_all(db, user_id=user_id)

    async def list_all(
        self,
        db: AsyncSession,
        status: Optional[int] = None,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[SubmittedProject]:
        query = select(SubmittedProject).where(SubmittedProject.is_deleted.is_(False))
        if status is not None:
            query = query.where(SubmittedProject.status == status)
        if project_id is not None:
            query = query.where(SubmittedProject.projects_task_id == project_id)
        if user_id is not None:
            query = query.where(SubmittedProject.user_id == user_id)
        query = query.order_by(
            SubmittedProject.created_at.desc(), SubmittedProject.submission_id.desc()
        )
        result = await db.execute(query)
        return list(result.scalars().all())


submission_service = SubmissionService()

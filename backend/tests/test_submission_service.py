"""
Marketplace Backend — Submission and Saved Project Tests
=========================================================

What we test:
    ✅ Only the hired freelancer can submit; a second open submission → 409
    ✅ Approval completes the project and the ongoing application
    ✅ Rejection lets the freelancer submit again
    ✅ Review is owner / admin only and happens once
    ✅ Submission visibility (submitter, owner, admin)
    ✅ Saved projects: duplicate → 409, unsave → re-save reactivates the row
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from marketplace.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from marketplace.models import AppliedProject, Notification, SavedProject
from marketplace.models.project import (
    APPLICATION_COMPLETED,
    APPLICATION_ONGOING,
    PROJECT_COMPLETED,
    SUBMISSION_APPROVED,
    SUBMISSION_PENDING,
    SUBMISSION_REJECTED,
)
from marketplace.schemas.project import ApplicationCreate, ProjectCreate, SubmissionCreate
from marketplace.services.activity_service import SavedProjectService
from marketplace.services.application_service import application_service
from marketplace.services.project_service import project_service
from marketplace.services.submission_service import SubmissionService

DELIVERY = SubmissionCreate(
    submitted_files=["https://cdn.example.com/final_cut.mp4"],
    additional_notes="Colour graded, 4K master",
)


async def _hired(db, make_user):
    """Project with a hired freelancer: returns (client, freelancer, project, application)."""
    _, client = await make_user(roles=["CLIENT"])
    _, freelancer = await make_user(roles=["VIDEO_EDITOR"])
    project = await project_service.create_project(
        db, client, ProjectCreate(project_title="Brand film edit", budget=Decimal("3200.00"))
    )
    application, _ = await application_service.apply(
        db, freelancer, ApplicationCreate(projects_task_id=project.projects_task_id)
    )
    await application_service.update_status(
        db, client, application.applied_projects_id, APPLICATION_ONGOING
    )
    await db.commit()
    return client, freelancer, project, application


class TestSubmit:
    def setup_method(self):
        self.service = SubmissionService()

    @pytest.mark.asyncio
    async def test_submit_notifies_client(self, db_session, make_user):
        client, freelancer, project, _ = await _hired(db_session, make_user)

        submission = await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        assert submission.status == SUBMISSION_PENDING
        assert submission.submitted_files == ["https://cdn.example.com/final_cut.mp4"]
        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == client.user_id, Notification.type == "submission"
            )
        )
        assert result.scalars().first() is not None

    @pytest.mark.asyncio
    async def test_only_hired_freelancer_submits(self, db_session, make_user):
        _, _, project, _ = await _hired(db_session, make_user)
        _, outsider = await make_user(roles=["VIDEOGRAPHER"])

        with pytest.raises(PermissionDeniedError):
            await self.service.submit(db_session, outsider, project.projects_task_id, DELIVERY)

    @pytest.mark.asyncio
    async def test_second_pending_submission_conflicts(self, db_session, make_user):
        _, freelancer, project, _ = await _hired(db_session, make_user)
        await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        with pytest.raises(ConflictError):
            await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

    @pytest.mark.asyncio
    async def test_missing_project(self, db_session, make_user):
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        with pytest.raises(NotFoundError):
            await self.service.submit(db_session, freelancer, 9999, DELIVERY)


class TestReview:
    def setup_method(self):
        self.service = SubmissionService()

    @pytest.mark.asyncio
    async def test_approval_completes_project_and_application(self, db_session, make_user):
        client, freelancer, project, application = await _hired(db_session, make_user)
        submission = await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        reviewed = await self.service.review(db_session, client, submission.submission_id, SUBMISSION_APPROVED)

        assert reviewed.status == SUBMISSION_APPROVED
        assert project.status == PROJECT_COMPLETED
        assert project.completed_at is not None
        refreshed = await db_session.get(AppliedProject, application.applied_projects_id)
        assert refreshed.status == APPLICATION_COMPLETED

        # Approved work blocks another submit
        with pytest.raises(ConflictError):
            await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

    @pytest.mark.asyncio
    async def test_rejection_allows_resubmit(self, db_session, make_user):
        client, freelancer, project, _ = await _hired(db_session, make_user)
        first = await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        await self.service.review(db_session, client, first.submission_id, SUBMISSION_REJECTED)
        second = await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        assert second.submission_id != first.submission_id
        assert project.status != PROJECT_COMPLETED
        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == freelancer.user_id,
                Notification.type == "submission_rejected",
            )
        )
        assert result.scalars().first() is not None

    @pytest.mark.asyncio
    async def test_non_owner_cannot_review(self, db_session, make_user):
        _, freelancer, project, _ = await _hired(db_session, make_user)
        _, other_client = await make_user(roles=["CLIENT"])
        submission = await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        with pytest.raises(PermissionDeniedError):
            await self.service.review(db_session, other_client, submission.submission_id, SUBMISSION_APPROVED)

    @pytest.mark.asyncio
    async def test_admin_reviews_and_second_review_fails(self, db_session, make_user):
        _, freelancer, project, _ = await _hired(db_session, make_user)
        _, admin = await make_user(roles=["ADMIN"])
        submission = await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        await self.service.review(db_session, admin, submission.submission_id, SUBMISSION_REJECTED)
        with pytest.raises(ValidationError):
            await self.service.review(db_session, admin, submission.submission_id, SUBMISSION_APPROVED)

    @pytest.mark.asyncio
    async def test_review_status_range(self, db_session, make_user):
        client, freelancer, project, _ = await _hired(db_session, make_user)
        submission = await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        with pytest.raises(ValidationError):
            await self.service.review(db_session, client, submission.submission_id, SUBMISSION_PENDING)


class TestVisibility:
    def setup_method(self):
        self.service = SubmissionService()

    @pytest.mark.asyncio
    async def test_get_and_list(self, db_session, make_user):
        client, freelancer, project, _ = await _hired(db_session, make_user)
        _, outsider = await make_user(roles=["CLIENT"])
        submission = await self.service.submit(db_session, freelancer, project.projects_task_id, DELIVERY)

        assert (await self.service.get(db_session, client, submission.submission_id)) is submission
        assert (await self.service.get(db_session, freelancer, submission.submission_id)) is submission
        with pytest.raises(PermissionDeniedError):
            await self.service.get(db_session, outsider, submission.submission_id)

        by_project = await self.service.list_by_project(db_session, client, project.projects_task_id)
        assert [s.submission_id for s in by_project] == [submission.submission_id]
        with pytest.raises(PermissionDeniedError):
            await self.service.list_by_project(db_session, outsider, project.projects_task_id)

        mine = await self.service.list_by_freelancer(db_session, freelancer.user_id)
        assert len(mine) == 1
        assert await self.service.list_all(db_session, status=SUBMISSION_APPROVED) == []


class TestSavedProjects:
    def setup_method(self):
        self.service = SavedProjectService()

    async def _project(self, db, make_user):
        _, client = await make_user(roles=["CLIENT"])
        return await project_service.create_project(
            db, client, ProjectCreate(project_title="Travel vlog", budget=Decimal("800.00"))
        )

    @pytest.mark.asyncio
    async def test_duplicate_save_conflicts(self, db_session, make_user):
        project = await self._project(db_session, make_user)
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])

        await self.service.save(db_session, freelancer, project.projects_task_id)
        with pytest.raises(ConflictError):
            await self.service.save(db_session, freelancer, project.projects_task_id)

    @pytest.mark.asyncio
    async def test_resave_reactivates_same_row(self, db_session, make_user):
        project = await self._project(db_session, make_user)
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])

        first = await self.service.save(db_session, freelancer, project.projects_task_id)
        await self.service.unsave(db_session, freelancer, project.projects_task_id)
        assert await self.service.list_mine(db_session, freelancer) == []

        again = await self.service.save(db_session, freelancer, project.projects_task_id)
        assert again.saved_projects_id == first.saved_projects_id
        assert again.is_deleted is False

        rows = (await db_session.execute(select(SavedProject))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_unknown_project_and_missing_bookmark(self, db_session, make_user):
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])

        with pytest.raises(NotFoundError):
            await self.service.save(db_session, freelancer, 9999)
        with pytest.raises(NotFoundError):
            await self.service.unsave(db_session, freelancer, 9999)

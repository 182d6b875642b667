"""
Marketplace Backend — Application Service Tests
================================================

What we test:
    ✅ Applying twice returns the existing application instead of a duplicate
    ✅ Bidding projects require a positive bid amount
    ✅ Withdraw rules (owner only, not twice, not once hired)
    ✅ Hiring assigns the project and notifies the freelancer
    ✅ Status range and filter names are validated
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from marketplace.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.models import AppliedProject, Notification, ProjectTask
from marketplace.models.project import APPLICATION_ONGOING, PROJECT_ASSIGNED
from marketplace.schemas.project import ApplicationCreate, ProjectCreate
from marketplace.services.application_service import ApplicationService
from marketplace.services.project_service import project_service


async def _project(db, client, bidding=False):
    project = await project_service.create_project(
        db,
        client,
        ProjectCreate(project_title="Product shoot", budget=Decimal("2500.00"), bidding_enabled=bidding),
    )
    await db.commit()
    return project


class TestApply:
    def setup_method(self):
        self.service = ApplicationService()

    @pytest.mark.asyncio
    async def test_duplicate_application_returns_existing(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        data = ApplicationCreate(projects_task_id=project.projects_task_id, description="Available next week")

        first, first_dup = await self.service.apply(db_session, freelancer, data)
        await db_session.commit()
        second, second_dup = await self.service.apply(db_session, freelancer, data)

        assert first_dup is False
        assert second_dup is True
        assert second.applied_projects_id == first.applied_projects_id

        count = await db_session.execute(
            select(func.count(AppliedProject.applied_projects_id)).where(
                AppliedProject.projects_task_id == project.projects_task_id
            )
        )
        assert count.scalar() == 1

    @pytest.mark.asyncio
    async def test_apply_notifies_client(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)

        await self.service.apply(
            db_session, freelancer, ApplicationCreate(projects_task_id=project.projects_task_id)
        )

        result = await db_session.execute(
            select(Notification).where(Notification.user_id == client.user_id)
        )
        notification = result.scalars().first()
        assert notification is not None
        assert notification.type == "proposal"

    @pytest.mark.asyncio
    async def test_bidding_project_requires_bid_amount(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client, bidding=True)

        with pytest.raises(ValidationError):
            await self.service.apply(
                db_session, freelancer, ApplicationCreate(projects_task_id=project.projects_task_id)
            )
        with pytest.raises(ValidationError):
            await self.service.apply(
                db_session,
                freelancer,
                ApplicationCreate(projects_task_id=project.projects_task_id, bid_amount=Decimal("0")),
            )

        application, _ = await self.service.apply(
            db_session,
            freelancer,
            ApplicationCreate(projects_task_id=project.projects_task_id, bid_amount=Decimal("1500.00")),
        )
        assert application.bid_amount == Decimal("1500.00")

    @pytest.mark.asyncio
    async def test_apply_to_missing_project(self, db_session, make_user):
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        with pytest.raises(NotFoundError):
            await self.service.apply(db_session, freelancer, ApplicationCreate(projects_task_id=999))


class TestWithdraw:
    def setup_method(self):
        self.service = ApplicationService()

    @pytest.mark.asyncio
    async def test_withdraw_rules(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        _, other = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        application, _ = await self.service.apply(
            db_session, freelancer, ApplicationCreate(projects_task_id=project.projects_task_id)
        )

        with pytest.raises(PermissionDeniedError):
            await self.service.withdraw(db_session, other, application.applied_projects_id)

        await self.service.withdraw(db_session, freelancer, application.applied_projects_id)
        assert application.is_deleted is True

        with pytest.raises(ValidationError):
            await self.service.withdraw(db_session, freelancer, application.applied_projects_id)

    @pytest.mark.asyncio
    async def test_cannot_withdraw_after_hire(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        application, _ = await self.service.apply(
            db_session, freelancer, ApplicationCreate(projects_task_id=project.projects_task_id)
        )
        await self.service.update_status(db_session, client, application.applied_projects_id, APPLICATION_ONGOING)

        with pytest.raises(ValidationError):
            await self.service.withdraw(db_session, freelancer, application.applied_projects_id)

    @pytest.mark.asyncio
    async def test_withdraw_missing(self, db_session, make_user):
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        with pytest.raises(NotFoundError):
            await self.service.withdraw(db_session, freelancer, 12345)


class TestUpdateStatus:
    def setup_method(self):
        self.service = ApplicationService()

    @pytest.mark.asyncio
    async def test_hire_assigns_project_and_notifies(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        application, _ = await self.service.apply(
            db_session, freelancer, ApplicationCreate(projects_task_id=project.projects_task_id)
        )

        await self.service.update_status(db_session, client, application.applied_projects_id, 1)

        refreshed = await db_session.get(ProjectTask, project.projects_task_id)
        assert refreshed.status == PROJECT_ASSIGNED
        assert refreshed.freelancer_id == freelancer.user_id

        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == freelancer.user_id, Notification.type == "hired"
            )
        )
        assert result.scalars().first() is not None

        ongoing = await self.service.ongoing(db_session, freelancer.user_id)
        assert [a.applied_projects_id for a in ongoing] == [application.applied_projects_id]
        assert ongoing[0].project_title == "Product shoot"

    @pytest.mark.asyncio
    async def test_status_out_of_range(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        with pytest.raises(ValidationError):
            await self.service.update_status(db_session, client, 1, 7)
        with pytest.raises(ValidationError):
            await self.service.list_by_status(db_session, -1)

    @pytest.mark.asyncio
    async def test_only_owner_updates_status(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, other_client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        application, _ = await self.service.apply(
            db_session, freelancer, ApplicationCreate(projects_task_id=project.projects_task_id)
        )

        with pytest.raises(PermissionDeniedError):
            await self.service.update_status(db_session, other_client, application.applied_projects_id, 3)
        with pytest.raises(PermissionDeniedError):
            await self.service.get_project_applications(db_session, other_client, project.projects_task_id)

    @pytest.mark.asyncio
    async def test_filter_name_validated(self, db_session, make_user):
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        with pytest.raises(ValidationError):
            await self.service.filter_mine(db_session, freelancer, "archived")
        assert await self.service.filter_mine(db_session, freelancer, "new") == []

    @pytest.mark.asyncio
    async def test_applied_count_includes_withdrawn(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        application, _ = await self.service.apply(
            db_session, freelancer, ApplicationCreate(projects_task_id=project.projects_task_id)
        )
        await self.service.withdraw(db_session, freelancer, application.applied_projects_id)

        assert await self.service.applied_count(db_session, freelancer.user_id) == 1
        assert await self.service.count_by_project(db_session, project.projects_task_id) == 0

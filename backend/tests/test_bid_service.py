"""
Marketplace Backend — Bid Service Tests
========================================

What we test:
    ✅ Accepting a bid leaves exactly one accepted and zero pending bids on the project
    ✅ Acceptance assigns the project to the winning freelancer
    ✅ A failure during acceptance rolls back and raises DatabaseError
    ✅ Non-owners cannot accept; admins can reject but not accept
    ✅ Ownership is checked before the pending state (403, not 400)
    ✅ Bids that are no longer pending cannot be edited, withdrawn or deleted
    ✅ One live bid per freelancer per project
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from marketplace.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from marketplace.models import AppliedProject, Notification, ProjectBid, ProjectTask
from marketplace.models.project import PROJECT_ASSIGNED, PROJECT_PENDING, BidStatus
from marketplace.schemas.project import BidCreate, BidUpdate, ProjectCreate
from marketplace.services.bid_service import BidService
from marketplace.services.project_service import project_service


async def _project(db, client, **overrides):
    data = ProjectCreate(
        project_title=overrides.pop("title", "Wedding highlight reel"),
        budget=Decimal("5000.00"),
        **overrides,
    )
    project = await project_service.create_project(db, client, data)
    await db.commit()
    return project


async def _bid(db, service, project, freelancer, amount="1000.00"):
    application = AppliedProject(
        projects_task_id=project.projects_task_id,
        user_id=freelancer.user_id,
        status=0,
    )
    db.add(application)
    await db.flush()
    bid = await service.create_bid(
        db,
        freelancer,
        BidCreate(
            project_id=project.projects_task_id,
            application_id=application.applied_projects_id,
            bid_amount=Decimal(amount),
            delivery_time_days=7,
            proposal="Two-camera shoot, edited within a week",
        ),
    )
    await db.commit()
    return bid


class TestAcceptBid:
    """Acceptance is all-or-nothing across the project and every bid on it."""

    def setup_method(self):
        self.service = BidService()

    @pytest.mark.asyncio
    async def test_accept_leaves_one_accepted_and_no_pending(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, f1 = await make_user(roles=["VIDEOGRAPHER"])
        _, f2 = await make_user(roles=["VIDEO_EDITOR"])
        _, f3 = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)

        winner = await _bid(db_session, self.service, project, f1)
        await _bid(db_session, self.service, project, f2, amount="900.00")
        await _bid(db_session, self.service, project, f3, amount="1200.00")

        await self.service.update_bid_status(db_session, client, winner.bid_id, BidStatus.ACCEPTED)

        result = await db_session.execute(
            select(ProjectBid.status).where(ProjectBid.project_id == project.projects_task_id)
        )
        statuses = list(result.scalars().all())
        assert statuses.count(BidStatus.ACCEPTED) == 1
        assert statuses.count(BidStatus.PENDING) == 0
        assert statuses.count(BidStatus.REJECTED) == 2

    @pytest.mark.asyncio
    async def test_accept_assigns_project(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)

        await self.service.update_bid_status(db_session, client, bid.bid_id, BidStatus.ACCEPTED)

        refreshed = await db_session.get(ProjectTask, project.projects_task_id)
        await db_session.refresh(refreshed)
        assert refreshed.status == PROJECT_ASSIGNED
        assert refreshed.freelancer_id == freelancer.user_id
        assert refreshed.assigned_at is not None

    @pytest.mark.asyncio
    async def test_accept_notifies_winner(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)

        await self.service.update_bid_status(db_session, client, bid.bid_id, BidStatus.ACCEPTED)

        result = await db_session.execute(
            select(Notification).where(
                Notification.user_id == freelancer.user_id,
                Notification.type == "bid_accepted",
            )
        )
        assert result.scalars().first() is not None

    @pytest.mark.asyncio
    async def test_accept_on_assigned_project_rejected(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, f1 = await make_user(roles=["VIDEOGRAPHER"])
        _, f2 = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        first = await _bid(db_session, self.service, project, f1)
        second = await _bid(db_session, self.service, project, f2)

        await self.service.update_bid_status(db_session, client, first.bid_id, BidStatus.ACCEPTED)

        # The losing bid is now rejected, so the status check fires first
        with pytest.raises(ValidationError):
            await self.service.update_bid_status(db_session, client, second.bid_id, BidStatus.ACCEPTED)

    @pytest.mark.asyncio
    async def test_non_owner_cannot_accept(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, other_client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)

        with pytest.raises(PermissionDeniedError):
            await self.service.update_bid_status(db_session, other_client, bid.bid_id, BidStatus.ACCEPTED)

    @pytest.mark.asyncio
    async def test_non_owner_on_decided_bid_gets_403(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, other_client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)
        await self.service.update_bid_status(db_session, client, bid.bid_id, BidStatus.REJECTED)

        # Ownership is checked before the bid's state
        for status in (BidStatus.ACCEPTED, BidStatus.REJECTED):
            with pytest.raises(PermissionDeniedError):
                await self.service.update_bid_status(db_session, other_client, bid.bid_id, status)

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)

        with pytest.raises(ValidationError):
            await self.service.update_bid_status(db_session, client, bid.bid_id, BidStatus.WITHDRAWN)

    @pytest.mark.asyncio
    async def test_admin_cannot_accept_but_can_reject(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, admin = await make_user(roles=["ADMIN"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)

        with pytest.raises(PermissionDeniedError):
            await self.service.update_bid_status(db_session, admin, bid.bid_id, BidStatus.ACCEPTED)

        rejected = await self.service.update_bid_status(db_session, admin, bid.bid_id, BidStatus.REJECTED)
        assert rejected.status == BidStatus.REJECTED

    @pytest.mark.asyncio
    async def test_failure_rolls_back_and_raises_database_error(self, mock_db_session):
        """A failing UPDATE of the losing bids must roll back everything."""
        project = MagicMock(
            projects_task_id=10,
            client_id=1,
            is_deleted=False,
            status=PROJECT_PENDING,
            project_title="Launch video",
        )
        bid = MagicMock(bid_id=5, project_id=10, freelancer_id=2, status=BidStatus.PENDING)
        client = MagicMock(user_id=1, is_admin=False)

        mock_db_session.get = AsyncMock(return_value=project)
        mock_db_session.execute = AsyncMock(side_effect=RuntimeError("connection lost"))

        with pytest.raises(DatabaseError) as exc_info:
            await self.service.accept_bid(mock_db_session, client, bid)

        assert exc_info.value.message == "Error accepting bid"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_awaited()


class TestBidOwnerActions:
    """Edits, withdrawals and deletes by the bidding freelancer."""

    def setup_method(self):
        self.service = BidService()

    @pytest.mark.asyncio
    async def test_update_pending_bid(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)

        updated = await self.service.update_bid(
            db_session, freelancer, bid.bid_id, BidUpdate(bid_amount=Decimal("800.00"))
        )
        assert updated.bid_amount == Decimal("800.00")

    @pytest.mark.asyncio
    async def test_cannot_update_or_delete_non_pending_bid(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)
        await self.service.update_bid_status(db_session, client, bid.bid_id, BidStatus.ACCEPTED)

        with pytest.raises(ValidationError):
            await self.service.update_bid(
                db_session, freelancer, bid.bid_id, BidUpdate(proposal="Changed my mind")
            )
        with pytest.raises(ValidationError):
            await self.service.delete_bid(db_session, freelancer, bid.bid_id)
        with pytest.raises(ValidationError):
            await self.service.withdraw_bid(db_session, freelancer, bid.bid_id)

    @pytest.mark.asyncio
    async def test_other_user_cannot_touch_bid(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, owner = await make_user(roles=["VIDEOGRAPHER"])
        _, intruder = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, owner)

        with pytest.raises(PermissionDeniedError):
            await self.service.delete_bid(db_session, intruder, bid.bid_id)

    @pytest.mark.asyncio
    async def test_withdraw_then_delete_rejected(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)

        withdrawn = await self.service.withdraw_bid(db_session, freelancer, bid.bid_id)
        assert withdrawn.status == BidStatus.WITHDRAWN
        with pytest.raises(ValidationError):
            await self.service.delete_bid(db_session, freelancer, bid.bid_id)

    @pytest.mark.asyncio
    async def test_deleted_bid_hidden(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)

        await self.service.delete_bid(db_session, freelancer, bid.bid_id)

        assert await self.service.get_project_bids(db_session, project.projects_task_id) == []
        with pytest.raises(NotFoundError):
            await self.service.get_bid(db_session, bid.bid_id)


class TestCreateBid:
    def setup_method(self):
        self.service = BidService()

    @pytest.mark.asyncio
    async def test_second_bid_on_same_project_conflicts(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        first = await _bid(db_session, self.service, project, freelancer)

        with pytest.raises(ConflictError):
            await self.service.create_bid(
                db_session,
                freelancer,
                BidCreate(
                    project_id=project.projects_task_id,
                    application_id=first.application_id,
                    bid_amount=Decimal("700.00"),
                    delivery_time_days=3,
                    proposal="Cheaper offer",
                ),
            )

    @pytest.mark.asyncio
    async def test_bid_with_someone_elses_application_forbidden(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, owner = await make_user(roles=["VIDEOGRAPHER"])
        _, other = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, owner)

        with pytest.raises(PermissionDeniedError):
            await self.service.create_bid(
                db_session,
                other,
                BidCreate(
                    project_id=project.projects_task_id,
                    application_id=bid.application_id,
                    bid_amount=Decimal("500.00"),
                    delivery_time_days=2,
                    proposal="Borrowed application",
                ),
            )

    @pytest.mark.asyncio
    async def test_bid_on_closed_project_not_found(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, freelancer = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        bid = await _bid(db_session, self.service, project, freelancer)
        await project_service.delete_project(db_session, client, project.projects_task_id)
        await db_session.commit()

        with pytest.raises(NotFoundError):
            await self.service.create_bid(
                db_session,
                freelancer,
                BidCreate(
                    project_id=project.projects_task_id,
                    application_id=bid.application_id,
                    bid_amount=Decimal("500.00"),
                    delivery_time_days=2,
                    proposal="Too late",
                ),
            )

    @pytest.mark.asyncio
    async def test_project_bids_featured_first(self, db_session, make_user):
        _, client = await make_user(roles=["CLIENT"])
        _, f1 = await make_user(roles=["VIDEOGRAPHER"])
        _, f2 = await make_user(roles=["VIDEOGRAPHER"])
        project = await _project(db_session, client)
        plain = await _bid(db_session, self.service, project, f1)
        featured = await _bid(db_session, self.service, project, f2)
        plain.is_featured = False
        featured.is_featured = True
        await db_session.commit()

        bids = await self.service.get_project_bids(db_session, project.projects_task_id)
        assert [b.bid_id for b in bids][0] == featured.bid_id

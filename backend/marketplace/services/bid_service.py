"""
Marketplace Backend — Project Bid Service
==========================================

What:  Priced proposals on open projects, and the client's decision on them.
Why:   Bidding projects let freelancers compete on price and delivery time;
       the client picks one winner and everyone else is told no.
Who:   Project-bids router.
When:  Only while the project is open (status 0).

Bid Status Machine:
    pending ──┬──▶ accepted   (client; wins the project)
              ├──▶ rejected   (client, or automatically when another bid wins)
              └──▶ withdrawn  (owner)
    accepted / rejected / withdrawn are terminal. Only pending bids can be
    edited, withdrawn or deleted by their owner.

Acceptance (the one multi-row write in the system):
    ┌────────────────────────────────────────────────────────────┐
    │ 1. project.status = assigned, freelancer attached          │
    │ 2. winning bid    = accepted                               │
    │ 3. every other pending bid on the project = rejected       │
    └────────────────────────────────────────────────────────────┘
    All three commit together or not at all. Any failure rolls the session
    back and surfaces DatabaseError("Error accepting bid").

    The project row is read with SELECT ... FOR UPDATE, so two clients
    accepting different bids on one project cannot both win.
"""

import logging
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser
from marketplace.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from marketplace.models.base import utcnow
from marketplace.models.project import (
    PROJECT_ASSIGNED,
    PROJECT_PENDING,
    BidStatus,
    ProjectBid,
    ProjectTask,
)
from marketplace.schemas.project import BidCreate, BidUpdate
from marketplace.services.application_service import application_service
from marketplace.services.notification_service import notification_service

logger = logging.getLogger(__name__)


class BidService:
    """
    Business logic for project bids.

    Bids are owned by the bidding user (`freelancer_id` = users.user_id).
    """

    async def _get_live_bid(self, db: AsyncSession, bid_id: int) -> ProjectBid:
        bid = await db.get(ProjectBid, bid_id)
        if bid is None or bid.is_deleted:
            raise NotFoundError(resource="bid", resource_id=bid_id)
        return bid

    def _require_owned_pending(self, bid: ProjectBid, user: CurrentUser, action: str) -> None:
        if bid.freelancer_id != user.user_id:
            raise PermissionDeniedError(f"You can only {action} your own bids")
        if bid.status != BidStatus.PENDING:
            raise ValidationError(
                f"Cannot {action} bid that is not pending",
                context={"bid_status": bid.status},
            )

    async def create_bid(self, db: AsyncSession, user: CurrentUser, data: BidCreate) -> ProjectBid:
        """
        Place a bid against the caller's application.

        Raises:
            NotFoundError:         project closed / missing, or application missing
            PermissionDeniedError: application belongs to someone else
            ValidationError:       application targets another project
            ConflictError:         caller already has a live bid on the project
        """
        project = await db.get(ProjectTask, data.project_id)
        if (
            project is None
            or project.is_deleted
            or not project.is_active
            or project.status != PROJECT_PENDING
        ):
            raise NotFoundError(
                resource="project",
                resource_id=data.project_id,
                message="Project not found or not accepting bids",
            )

        application = await application_service.get_live_application(db, data.application_id)
        if application.user_id != user.user_id:
            raise PermissionDeniedError("You can only bid with your own application")
        if application.projects_task_id != project.projects_task_id:
            raise ValidationError(
                "Application does not belong to this project", field="application_id"
            )

        result = await db.execute(
            select(ProjectBid.bid_id).where(
                ProjectBid.project_id == project.projects_task_id,
                ProjectBid.freelancer_id == user.user_id,
                ProjectBid.is_deleted.is_(False),
            )
        )
        if result.scalars().first() is not None:
            raise ConflictError("You have already placed a bid on this project")

        bid = ProjectBid(
            project_id=project.projects_task_id,
            freelancer_id=user.user_id,
            application_id=application.applied_projects_id,
            bid_amount=data.bid_amount,
            delivery_time_days=data.delivery_time_days,
            proposal=data.proposal,
            milestones=data.milestones,
            additional_services=data.additional_services,
            status=BidStatus.PENDING,
            created_by=user.user_id,
        )
        db.add(bid)
        await db.flush()

        await notification_service.notify(
            db,
            user_id=project.client_id,
            title="New Bid Received",
            message=f"A freelancer placed a bid on your project: {project.project_title}",
            type="bid",
            related_id=bid.bid_id,
            related_type="project_bids",
        )
        logger.info("Bid %s placed on project %s by user %s", bid.bid_id, project.projects_task_id, user.user_id)
        return bid

    async def update_bid(
        self, db: AsyncSession, user: CurrentUser, bid_id: int, data: BidUpdate
    ) -> ProjectBid:
        bid = await self._get_live_bid(db, bid_id)
        self._require_owned_pending(bid, user, "update")

        for name, value in data.model_dump(exclude_unset=True).items():
            setattr(bid, name, value)
        bid.updated_by = user.user_id
        await db.flush()
        return bid

    async def update_bid_status(
        self, db: AsyncSession, user: CurrentUser, bid_id: int, status: str
    ) -> ProjectBid:
        """
        Client decision on a bid.

        Why: authorization runs before the bid's state check, so a caller
        without rights on the project gets 403 whatever state the bid is in.

        Raises:
            PermissionDeniedError: accept by a non-owner, reject by neither
                                   owner nor admin
            ValidationError:       bid no longer pending, or unknown status
        """
        if status not in (BidStatus.ACCEPTED, BidStatus.REJECTED):
            raise ValidationError("Status must be 'accepted' or 'rejected'", field="status")

        bid = await self._get_live_bid(db, bid_id)
        project = await db.get(ProjectTask, bid.project_id)
        owns_project = (
            project is not None and not project.is_deleted and project.client_id == user.user_id
        )
        if status == BidStatus.ACCEPTED and not owns_project:
            raise PermissionDeniedError("Only project owner can accept bids")
        if status == BidStatus.REJECTED and not owns_project and not user.is_admin:
            raise PermissionDeniedError("Only project owner can reject bids")

        if bid.status != BidStatus.PENDING:
            raise ValidationError(
                "Only pending bids can be accepted or rejected",
                context={"bid_status": bid.status},
            )

        if status == BidStatus.ACCEPTED:
            return await self.accept_bid(db, user, bid)
        return await self._reject_bid(db, user, bid)

    async def accept_bid(self, db: AsyncSession, user: CurrentUser, bid: ProjectBid) -> ProjectBid:
        """
        Award the project to `bid` in a single transaction.

        Only the project owner may accept. On any failure inside the
        transaction nothing is persisted and DatabaseError is raised.
        """
        # Row lock serializes concurrent accepts on the same project
        project = await db.get(ProjectTask, bid.project_id, with_for_update=True)
        if project is None or project.is_deleted or project.client_id != user.user_id:
            raise PermissionDeniedError("Only project owner can accept bids")
        if project.status != PROJECT_PENDING:
            raise ValidationError("Project has already been assigned")

        bid_id = bid.bid_id
        try:
            project.status = PROJECT_ASSIGNED
            project.freelancer_id = bid.freelancer_id
            project.assigned_at = utcnow()
            project.updated_by = user.user_id

            bid.status = BidStatus.ACCEPTED
            bid.updated_by = user.user_id
            await db.flush()

            await db.execute(
                update(ProjectBid)
                .where(
                    ProjectBid.project_id == bid.project_id,
                    ProjectBid.bid_id != bid_id,
                    ProjectBid.status == BidStatus.PENDING,
                )
                .values(status=BidStatus.REJECTED, updated_by=user.user_id, updated_at=utcnow())
                .execution_options(synchronize_session="fetch")
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Accepting bid %s failed, rolled back: %s", bid_id, e, exc_info=True)
            raise DatabaseError("Error accepting bid", context={"bid_id": bid_id}) from e

        logger.info("Bid %s accepted; project %s assigned", bid_id, bid.project_id)
        await notification_service.notify(
            db,
            user_id=bid.freelancer_id,
            title="Bid Accepted!",
            message=f"Your bid on \"{project.project_title}\" was accepted.",
            type="bid_accepted",
            related_id=bid.project_id,
            related_type="projects_task",
        )
        return bid

    async def _reject_bid(self, db: AsyncSession, user: CurrentUser, bid: ProjectBid) -> ProjectBid:
        # Caller already authorized by update_bid_status
        bid.status = BidStatus.REJECTED
        bid.updated_by = user.user_id
        await db.flush()
        return bid

    async def withdraw_bid(self, db: AsyncSession, user: CurrentUser, bid_id: int) -> ProjectBid:
        bid = await self._get_live_bid(db, bid_id)
        self._require_owned_pending(bid, user, "withdraw")

        bid.status = BidStatus.WITHDRAWN
        bid.updated_by = user.user_id
        await db.flush()
        return bid

    async def get_project_bids(self, db: AsyncSession, project_id: int) -> List[ProjectBid]:
        # Featured bids first, then newest
        result = await db.execute(
            select(ProjectBid)
            .where(ProjectBid.project_id == project_id, ProjectBid.is_deleted.is_(False))
            .order_by(
                ProjectBid.is_featured.desc(),
                ProjectBid.created_at.desc(),
                ProjectBid.bid_id.desc(),
            )
        )
        return list(result.scalars().all())

    async def get_my_bids(self, db: AsyncSession, user: CurrentUser) -> List[ProjectBid]:
        result = await db.execute(
            select(ProjectBid)
            .where(ProjectBid.freelancer_id == user.user_id, ProjectBid.is_deleted.is_(False))
            .order_by(ProjectBid.created_at.desc(), ProjectBid.bid_id.desc())
        )
        return list(result.scalars().all())

    async def get_bid(self, db: AsyncSession, bid_id: int) -> ProjectBid:
        return await self._get_live_bid(db, bid_id)

    async def delete_bid(self, db: AsyncSession, user: CurrentUser, bid_id: int) -> None:
        bid = await self._get_live_bid(db, bid_id)
        self._require_owned_pending(bid, user, "delete")

        bid.soft_delete(user.user_id)
        bid.updated_by = user.user_id
        await db.flush()


bid_service = BidService()

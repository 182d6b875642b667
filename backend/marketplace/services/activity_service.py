"""
Marketplace Backend — Favorite, Saved Project and Report Services
==================================================================

FavoriteService:  a client's bookmarked freelancers. Removing a favorite
                  soft-deletes it; adding it again reactivates the same row.
SavedProjectService: a freelancer's bookmarked projects, same lifecycle.
ReportService:    abuse reports against users or projects, moderated by admins.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser
from marketplace.exceptions import ConflictError, NotFoundError
from marketplace.models.activity import Favorite, Report, SavedProject
from marketplace.models.user import User
from marketplace.schemas.activity import (
    FavoriteDetail,
    FavoriteResponse,
    ProjectReportCreate,
    UserReportCreate,
)
from marketplace.services.project_service import project_service

logger = logging.getLogger(__name__)


class FavoriteService:
    async def add(self, db: AsyncSession, user: CurrentUser, freelancer_id: int) -> Favorite:
        freelancer = await db.get(User, freelancer_id)
        if freelancer is None or freelancer.is_deleted:
            raise NotFoundError(resource="freelancer", resource_id=freelancer_id)

        result = await db.execute(
            select(Favorite).where(
                Favorite.user_id == user.user_id, Favorite.freelancer_id == freelancer_id
            )
        )
        existing = result.scalars().first()
        if existing is not None and not existing.is_deleted:
            raise ConflictError("This freelancer is already in favorites")

        if existing is not None:
            existing.is_deleted = False
            existing.is_active = True
            existing.deleted_by = None
            existing.deleted_at = None
            existing.updated_by = user.user_id
            await db.flush()
            return existing

        favorite = Favorite(
            user_id=user.user_id, freelancer_id=freelancer_id, created_by=user.user_id
        )
        db.add(favorite)
        await db.flush()
        return favorite

    async def remove(self, db: AsyncSession, user: CurrentUser, freelancer_id: int) -> None:
        result = await db.execute(
            select(Favorite).where(
                Favorite.user_id == user.user_id,
                Favorite.freelancer_id == freelancer_id,
                Favorite.is_deleted.is_(False),
            )
        )
        favorite = result.scalars().first()
        if favorite is None:
            raise NotFoundError(resource="favorite", message="Favorite not found")

        favorite.soft_delete(user.user_id)
        favorite.updated_by = user.user_id
        await db.flush()

    async def list_mine(self, db: AsyncSession, user: CurrentUser) -> List[Favorite]:
        result = await db.execute(
            select(Favorite)
            .where(
                Favorite.user_id == user.user_id,
                Favorite.is_active.is_(True),
                Favorite.is_deleted.is_(False),
            )
            .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        )
        return list(result.scalars().all())

    async def list_mine_details(self, db: AsyncSession, user: CurrentUser) -> List[FavoriteDetail]:
        result = await db.execute(
            select(Favorite, User)
            .outerjoin(User, User.user_id == Favorite.freelancer_id)
            .where(Favorite.user_id == user.user_id, Favorite.is_deleted.is_(False))
            .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        )
        details = []
        for favorite, freelancer in result.all():
            detail = FavoriteDetail(**FavoriteResponse.model_validate(favorite).model_dump())
            if freelancer is not None:
                detail = detail.model_copy(update={
                    "username": freelancer.username,
                    "email": freelancer.email,
                    "first_name": freelancer.first_name,
                    "last_name": freelancer.last_name,
                    "profile_picture": freelancer.profile_picture,
                    "city": freelancer.city,
                    "country": freelancer.country,
                })
            details.append(detail)
        return details

    async def list_all(self, db: AsyncSession) -> List[Favorite]:
        result = await db.execute(select(Favorite).order_by(Favorite.id))
        return list(result.scalars().all())


class SavedProjectService:
    """Freelancer bookmarks of projects; same soft-delete lifecycle as favorites."""

    async def save(self, db: AsyncSession, user: CurrentUser, project_id: int) -> SavedProject:
        await project_service.get_live_project(db, project_id)

        result = await db.execute(
            select(SavedProject).where(
                SavedProject.user_id == user.user_id, SavedProject.projects_task_id == project_id
            )
        )
        existing = result.scalars().first()
        if existing is not None and not existing.is_deleted:
            raise ConflictError("This project is already saved")

        if existing is not None:
            existing.is_deleted = False
            existing.is_active = True
            existing.deleted_by = None
            existing.deleted_at = None
            existing.updated_by = user.user_id
            await db.flush()
            return existing

        saved = SavedProject(
            user_id=user.user_id, projects_task_id=project_id, created_by=user.user_id
        )
        db.add(saved)
        await db.flush()
        return saved

    async def unsave(self, db: AsyncSession, user: CurrentUser, project_id: int) -> None:
        result = await db.execute(
            select(SavedProject).where(
                SavedProject.user_id == user.user_id,
                SavedProject.projects_task_id == project_id,
                SavedProject.is_deleted.is_(False),
            )
        )
        saved = result.scalars().first()
        if saved is None:
            raise NotFoundError(resource="saved project", message="Saved project not found")

        saved.soft_delete(user.user_id)
        saved.updated_by = user.user_id
        await db.flush()

    async def list_mine(self, db: AsyncSession, user: CurrentUser) -> List[SavedProject]:
        result = await db.execute(
            select(SavedProject)
            .where(SavedProject.user_id == user.user_id, SavedProject.is_deleted.is_(False))
            .order_by(SavedProject.created_at.desc(), SavedProject.saved_projects_id.desc())
        )
        return list(result.scalars().all())

    async def list_all(self, db: AsyncSession) -> List[SavedProject]:
        result = await db.execute(
            select(SavedProject)
            .where(SavedProject.is_deleted.is_(False))
            .order_by(SavedProject.saved_projects_id)
        )
        return list(result.scalars().all())


class ReportService:
    """
    Reports start as `pending`. One live report per reporter and target;
    a repeat report is a ConflictError.
    """

    async def _ensure_not_reported(
        self,
        db: AsyncSession,
        reporter_id: int,
        report_type: str,
        reported_user_id: Optional[int] = None,
        reported_project_id: Optional[int] = None,
    ) -> None:
        query = select(Report.report_id).where(
            Report.reporter_id == reporter_id,
            Report.report_type == report_type,
            Report.is_deleted.is_(False),
        )
        if reported_user_id is not None:
            query = query.where(Report.reported_user_id == reported_user_id)
        if reported_project_id is not None:
            query = query.where(Report.reported_project_id == reported_project_id)

        result = await db.execute(query)
        if result.scalars().first() is not None:
            raise ConflictError(f"You have already reported this {report_type}.")

    async def report_user(
        self, db: AsyncSession, user: CurrentUser, data: UserReportCreate
    ) -> Report:
        target = await db.get(User, data.reported_user_id)
        if target is None or target.is_deleted:
            raise NotFoundError(resource="user", resource_id=data.reported_user_id)
        await self._ensure_not_reported(
            db, user.user_id, "user", reported_user_id=data.reported_user_id
        )
        return await self._insert(db, user, "user", data.model_dump())

    async def report_project(
        self, db: AsyncSession, user: CurrentUser, data: ProjectReportCreate
    ) -> Report:
        await project_service.get_live_project(db, data.reported_project_id)
        await self._ensure_not_reported(
            db, user.user_id, "project", reported_project_id=data.reported_project_id
        )
        return await self._insert(db, user, "project", data.model_dump())

    async def _insert(self, db: AsyncSession, user: CurrentUser, report_type: str, fields: dict) -> Report:
        report = Report(
            report_type=report_type,
            reporter_id=user.user_id,
            email=user.email,
            status="pending",
            created_by=user.user_id,
            **fields,
        )
        db.add(report)
        await db.flush()
        logger.info("Report %s filed by user %s (%s)", report.report_id, user.user_id, report_type)
        return report

    async def get_report(self, db: AsyncSession, report_id: int) -> Report:
        report = await db.get(Report, report_id)
        if report is None or report.is_deleted:
            raise NotFoundError(resource="report", resource_id=report_id)
        return report

    async def list_reports(self, db: AsyncSession, status: Optional[str] = None) -> List[Report]:
        query = select(Report).where(Report.is_deleted.is_(False))
        if status is not None:
            query = query.where(Report.status == status)
        result = await db.execute(query.order_by(Report.created_at.desc(), Report.report_id.desc()))
        return list(result.scalars().all())

    async def update_status(
        self,
        db: AsyncSession,
        user: CurrentUser,
        report_id: int,
        status: str,
        admin_remarks: Optional[str] = None,
    ) -> Report:
        report = await self.get_report(db, report_id)
        report.status = status
        report.admin_remarks = admin_remarks
        report.reviewed_by = user.user_id
        report.updated_by = user.user_id
        await db.flush()
        return report


favorite_service = FavoriteService()
saved_project_service = SavedProjectService()
report_service = ReportService()

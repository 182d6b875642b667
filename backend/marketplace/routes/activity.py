"""Favorites, saved projects and abuse reports."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, get_current_user, require_role
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.exceptions import PermissionDeniedError
from marketplace.models.user import ADMIN_ROLES
from marketplace.schemas.activity import (
    FavoriteCreate,
    FavoriteDetail,
    FavoriteResponse,
    ProjectReportCreate,
    ReportResponse,
    ReportStatusUpdate,
    SavedProjectCreate,
    SavedProjectResponse,
    UserReportCreate,
)
from marketplace.schemas.common import ErrorResponse, MessageResponse
from marketplace.services.activity_service import (
    favorite_service,
    report_service,
    saved_project_service,
)

admin_only = require_role(*ADMIN_ROLES)


# ── Favorites ─────────────────────────────────────────────────────────────

favorites_router = APIRouter(prefix=f"{settings.api_prefix}/favorites", tags=["Favorites"])


@favorites_router.post(
    "",
    status_code=201,
    response_model=FavoriteResponse,
    responses={
        404: {"description": "Freelancer not found", "model": ErrorResponse},
        409: {"description": "Already a favorite", "model": ErrorResponse},
    },
)
async def add_favorite(
    data: FavoriteCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FavoriteResponse:
    favorite = await favorite_service.add(db, user, data.freelancer_id)
    return FavoriteResponse.model_validate(favorite)


@favorites_router.get("", response_model=List[FavoriteResponse])
async def list_my_favorites(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[FavoriteResponse]:
    return [FavoriteResponse.model_validate(f) for f in await favorite_service.list_mine(db, user)]


@favorites_router.get("/details", response_model=List[FavoriteDetail])
async def list_my_favorite_details(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[FavoriteDetail]:
    return await favorite_service.list_mine_details(db, user)


@favorites_router.get("/all", response_model=List[FavoriteResponse])
async def list_all_favorites(
    _: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[FavoriteResponse]:
    return [FavoriteResponse.model_validate(f) for f in await favorite_service.list_all(db)]


@favorites_router.delete("/{freelancer_id}", response_model=MessageResponse)
async def remove_favorite(
    freelancer_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await favorite_service.remove(db, user, freelancer_id)
    return MessageResponse(message="Favorite removed successfully")


# ── Reports ───────────────────────────────────────────────────────────────

reports_router = APIRouter(prefix=f"{settings.api_prefix}/report", tags=["Reports"])

_report_create_errors = {
    404: {"description": "Reported user or project not found", "model": ErrorResponse},
    409: {"description": "Already reported", "model": ErrorResponse},
}


@reports_router.post("/user", status_code=201, response_model=ReportResponse, responses=_report_create_errors)
async def report_user(
    data: UserReportCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReportResponse:
    return ReportResponse.model_validate(await report_service.report_user(db, user, data))


@reports_router.post("/project", status_code=201, response_model=ReportResponse, responses=_report_create_errors)
async def report_project(
    data: ProjectReportCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReportResponse:
    return ReportResponse.model_validate(await report_service.report_project(db, user, data))


@reports_router.get("", response_model=List[ReportResponse])
async def list_reports(
    status: Optional[str] = None,
    _: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[ReportResponse]:
    return [ReportResponse.model_validate(r) for r in await report_service.list_reports(db, status)]


@reports_router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReportResponse:
    report = await report_service.get_report(db, report_id)
    if report.reporter_id != user.user_id and not user.is_admin:
        raise PermissionDeniedError("You can only view your own reports")
    return ReportResponse.model_validate(report)


@reports_router.patch("/{report_id}/status", response_model=ReportResponse)
async def update_report_status(
    report_id: int,
    data: ReportStatusUpdate,
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> ReportResponse:
    report = await report_service.update_status(
        db, user, report_id, data.status, admin_remarks=data.admin_remarks
    )
    return ReportResponse.model_validate(report)


# ── Saved projects ────────────────────────────────────────────────────────

saved_projects_router = APIRouter(prefix=f"{settings.api_prefix}/saved-projects", tags=["Saved Projects"])


@saved_projects_router.post(
    "",
    status_code=201,
    response_model=SavedProjectResponse,
    responses={
        404: {"description": "Project not found", "model": ErrorResponse},
        409: {"description": "Already saved", "model": ErrorResponse},
    },
)
async def save_project(
    data: SavedProjectCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SavedProjectResponse:
    saved = await saved_project_service.save(db, user, data.projects_task_id)
    return SavedProjectResponse.model_validate(saved)


@saved_projects_router.get("", response_model=List[SavedProjectResponse])
async def list_my_saved_projects(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[SavedProjectResponse]:
    return [SavedProjectResponse.model_validate(s) for s in await saved_project_service.list_mine(db, user)]


@saved_projects_router.get("/all", response_model=List[SavedProjectResponse])
async def list_all_saved_projects(
    _: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[SavedProjectResponse]:
    return [SavedProjectResponse.model_validate(s) for s in await saved_project_service.list_all(db)]


@saved_projects_router.delete("/{project_id}", response_model=MessageResponse)
async def unsave_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await saved_project_service.unsave(db, user, project_id)
    return MessageResponse(message="Project removed from saved list")

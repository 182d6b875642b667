"""
Marketplace Backend — Application Routes
=========================================

Freelancer side:
    POST   /api/v1/applications                        apply
    GET    /api/v1/applications/mine                   my applications
    GET    /api/v1/applications/mine/filter?filter=    new | ongoing | completed
    GET    /api/v1/applications/mine/project/{pid}     my application for a project
    DELETE /api/v1/applications/{id}                   withdraw

Client side:
    GET    /api/v1/applications/project/{pid}          applications on my project
    PATCH  /api/v1/applications/{id}/status            hire / reject / complete

Counters and admin views:
    GET    /api/v1/applications/project/{pid}/count
    GET    /api/v1/applications/users/{uid}/count
    GET    /api/v1/applications/users/{uid}/ongoing
    GET    /api/v1/applications/status/{status}        (admin)
    GET    /api/v1/applications/completed/count        (admin)
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, get_current_user, require_role
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.exceptions import NotFoundError
from marketplace.models.user import ADMIN_ROLES, CLIENT, FREELANCER_ROLES
from marketplace.schemas.common import CountResponse, ErrorResponse, MessageResponse
from marketplace.schemas.project import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicationStatusUpdate,
    ApplicationWithProject,
    ApplyResponse,
)
from marketplace.services.application_service import application_service

router = APIRouter(prefix=f"{settings.api_prefix}/applications", tags=["Applications"])

freelancer_only = require_role(*FREELANCER_ROLES)
admin_only = require_role(*ADMIN_ROLES)


@router.post(
    "",
    response_model=ApplyResponse,
    status_code=201,
    responses={
        200: {"description": "Already applied; existing application returned", "model": ApplyResponse},
        400: {"description": "Bid amount missing on a bidding project", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
    },
    summary="Apply to a project",
)
async def apply(
    data: ApplicationCreate,
    response: Response,
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> ApplyResponse:
    application, already_applied = await application_service.apply(db, user, data)
    if already_applied:
        response.status_code = 200
    return ApplyResponse(
        already_applied=already_applied,
        message="Already applied to this project" if already_applied else "Applied to project successfully",
        application=ApplicationResponse.model_validate(application),
    )


@router.get("/mine", response_model=List[ApplicationResponse], summary="My applications")
async def get_my_applications(
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[ApplicationResponse]:
    rows = await application_service.get_my_applications(db, user)
    return [ApplicationResponse.model_validate(r) for r in rows]


@router.get(
    "/mine/filter",
    response_model=List[ApplicationWithProject],
    summary="My applications by stage",
)
async def filter_my_applications(
    filter: str = Query(description="new, ongoing or completed"),
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[ApplicationWithProject]:
    return await application_service.filter_mine(db, user, filter)


@router.get(
    "/mine/project/{project_id}",
    response_model=ApplicationResponse,
    responses={404: {"description": "No application for this project", "model": ErrorResponse}},
    summary="My application for a project",
)
async def get_my_application_by_project(
    project_id: int,
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationResponse:
    application = await application_service.get_my_application_by_project(db, user, project_id)
    if application is None:
        raise NotFoundError(resource="application", message="You have not applied to this project")
    return ApplicationResponse.model_validate(application)


@router.delete(
    "/{application_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Already withdrawn or already approved", "model": ErrorResponse},
        403: {"description": "Not your application", "model": ErrorResponse},
        404: {"description": "Application not found", "model": ErrorResponse},
    },
    summary="Withdraw an application",
)
async def withdraw_application(
    application_id: int,
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await application_service.withdraw(db, user, application_id)
    return MessageResponse(message="Application withdrawn successfully")


@router.get(
    "/project/{project_id}",
    response_model=List[ApplicationResponse],
    summary="Applications on one of my projects",
)
async def get_project_applications(
    project_id: int,
    user: CurrentUser = Depends(require_role(CLIENT)),
    db: AsyncSession = Depends(get_db_session),
) -> List[ApplicationResponse]:
    rows = await application_service.get_project_applications(db, user, project_id)
    return [ApplicationResponse.model_validate(r) for r in rows]


@router.patch(
    "/{application_id}/status",
    response_model=ApplicationResponse,
    responses={
        400: {"description": "Status outside 0..3", "model": ErrorResponse},
        403: {"description": "Caller does not own the project", "model": ErrorResponse},
    },
    summary="Update an application's status",
)
async def update_application_status(
    application_id: int,
    data: ApplicationStatusUpdate,
    user: CurrentUser = Depends(require_role(CLIENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationResponse:
    application = await application_service.update_status(db, user, application_id, data.status)
    return ApplicationResponse.model_validate(application)


@router.get("/project/{project_id}/count", response_model=CountResponse)
async def count_by_project(
    project_id: int,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CountResponse:
    return CountResponse(count=await application_service.count_by_project(db, project_id))


@router.get("/users/{user_id}/count", response_model=CountResponse)
async def applied_count(
    user_id: int,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CountResponse:
    return CountResponse(count=await application_service.applied_count(db, user_id))


@router.get("/users/{user_id}/ongoing", response_model=List[ApplicationWithProject])
async def ongoing_projects(
    user_id: int,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[ApplicationWithProject]:
    return await application_service.ongoing(db, user_id)


@router.get("/status/{status}", response_model=List[ApplicationResponse])
async def list_by_status(
    status: int,
    _: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[ApplicationResponse]:
    rows = await application_service.list_by_status(db, status)
    return [ApplicationResponse.model_validate(r) for r in rows]


@router.get("/completed/count", response_model=CountResponse)
async def completed_count(
    _: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> CountResponse:
    return CountResponse(count=await application_service.completed_count(db))

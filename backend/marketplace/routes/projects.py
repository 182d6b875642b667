"""
Marketplace Backend — Project Routes
=====================================

    POST   /api/v1/projects               create (CLIENT)
    GET    /api/v1/projects               open projects (public)
    GET    /api/v1/projects/mine          caller's projects (CLIENT)
    GET    /api/v1/projects/{id}          detail (public)
    PUT    /api/v1/projects/{id}          edit (owner)
    DELETE /api/v1/projects/{id}          soft delete (owner or admin)
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, get_current_user, require_role
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.models.user import CLIENT
from marketplace.schemas.common import ErrorResponse, MessageResponse
from marketplace.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from marketplace.services.project_service import project_service

router = APIRouter(prefix=f"{settings.api_prefix}/projects", tags=["Projects"])


@router.post(
    "",
    status_code=201,
    response_model=ProjectResponse,
    responses={403: {"description": "Caller is not a client", "model": ErrorResponse}},
    summary="Post a new project",
)
async def create_project(
    data: ProjectCreate,
    user: CurrentUser = Depends(require_role(CLIENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    project = await project_service.create_project(db, user, data)
    return ProjectResponse.model_validate(project)


@router.get("", response_model=List[ProjectResponse], summary="List open projects")
async def list_public_projects(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> List[ProjectResponse]:
    projects = await project_service.list_public_projects(db, limit=limit, offset=offset)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get("/mine", response_model=List[ProjectResponse], summary="List my projects")
async def list_my_projects(
    user: CurrentUser = Depends(require_role(CLIENT)),
    db: AsyncSession = Depends(get_db_session),
) -> List[ProjectResponse]:
    projects = await project_service.list_my_projects(db, user)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    responses={404: {"description": "Project not found", "model": ErrorResponse}},
    summary="Get a project",
)
async def get_project(
    project_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    project = await project_service.get_live_project(db, project_id)
    return ProjectResponse.model_validate(project)


@router.put(
    "/{project_id}",
    response_model=ProjectResponse,
    responses={
        403: {"description": "Caller does not own the project", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
    },
    summary="Edit a project",
)
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    user: CurrentUser = Depends(require_role(CLIENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    project = await project_service.update_project(db, user, project_id, data)
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", response_model=MessageResponse, summary="Delete a project")
async def delete_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await project_service.delete_project(db, user, project_id)
    return MessageResponse(message="Project deleted successfully")

"""
Marketplace Backend — Submission Routes
========================================

Freelancer side:
    POST   /api/v1/projects/{pid}/submit               hand in work (hired freelancer)
    GET    /api/v1/submissions/freelancer/{uid}        submissions by a freelancer

Client side:
    GET    /api/v1/projects/{pid}/submissions          submissions on my project
    PATCH  /api/v1/submissions/{id}/review             approve (1) / reject (2)

Shared:
    GET    /api/v1/submissions/{id}                    submitter, owner or admin
    GET    /api/v1/submissions                         all, filterable (admin)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, get_current_user, require_role
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.exceptions import PermissionDeniedError
from marketplace.models.user import ADMIN_ROLES, CLIENT, FREELANCER_ROLES
from marketplace.schemas.common import ErrorResponse
from marketplace.schemas.project import SubmissionCreate, SubmissionResponse, SubmissionReview
from marketplace.services.submission_service import submission_service

router = APIRouter(prefix=settings.api_prefix, tags=["Submissions"])

admin_only = require_role(*ADMIN_ROLES)


@router.post(
    "/projects/{project_id}/submit",
    status_code=201,
    response_model=SubmissionResponse,
    responses={
        403: {"description": "Caller is not the hired freelancer", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
        409: {"description": "Already submitted", "model": ErrorResponse},
    },
    summary="Submit finished work",
)
async def submit_project(
    project_id: int,
    data: SubmissionCreate,
    user: CurrentUser = Depends(require_role(*FREELANCER_ROLES)),
    db: AsyncSession = Depends(get_db_session),
) -> SubmissionResponse:
    submission = await submission_service.submit(db, user, project_id, data)
    return SubmissionResponse.model_validate(submission)


@router.get("/projects/{project_id}/submissions", response_model=List[SubmissionResponse])
async def list_project_submissions(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[SubmissionResponse]:
    submissions = await submission_service.list_by_project(db, user, project_id)
    return [SubmissionResponse.model_validate(s) for s in submissions]


@router.get("/submissions", response_model=List[SubmissionResponse])
async def list_submissions(
    status: Optional[int] = None,
    project_id: Optional[int] = None,
    user_id: Optional[int] = None,
    _: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[SubmissionResponse]:
    submissions = await submission_service.list_all(
        db, status=status, project_id=project_id, user_id=user_id
    )
    return [SubmissionResponse.model_validate(s) for s in submissions]


@router.get("/submissions/freelancer/{user_id}", response_model=List[SubmissionResponse])
async def list_freelancer_submissions(
    user_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[SubmissionResponse]:
    if user_id != user.user_id and not user.is_admin:
        raise PermissionDeniedError("You can only list your own submissions")
    submissions = await submission_service.list_by_freelancer(db, user_id)
    return [SubmissionResponse.model_validate(s) for s in submissions]


@router.get(
    "/submissions/{submission_id}",
    response_model=SubmissionResponse,
    responses={404: {"description": "Submission not found", "model": ErrorResponse}},
)
async def get_submission(
    submission_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SubmissionResponse:
    return SubmissionResponse.model_validate(await submission_service.get(db, user, submission_id))


@router.patch(
    "/submissions/{submission_id}/review",
    response_model=SubmissionResponse,
    responses={
        400: {"description": "Already reviewed", "model": ErrorResponse},
        403: {"description": "Caller does not own the project", "model": ErrorResponse},
    },
    summary="Approve or reject a submission",
)
async def review_submission(
    submission_id: int,
    data: SubmissionReview,
    user: CurrentUser = Depends(require_role(CLIENT, *ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db_session),
) -> SubmissionResponse:
    submission = await submission_service.review(db, user, submission_id, data.status)
    return SubmissionResponse.model_validate(submission)

"""
Marketplace Backend — Project Bid Routes
=========================================

    POST   /api/v1/project-bids                   place a bid (freelancer)
    PUT    /api/v1/project-bids/{id}              edit a pending bid (owner)
    PATCH  /api/v1/project-bids/{id}/status       accept / reject (client, admin)
    POST   /api/v1/project-bids/{id}/withdraw     withdraw a pending bid (owner)
    GET    /api/v1/project-bids/project/{pid}     bids on a project
    GET    /api/v1/project-bids/mine              caller's bids
    GET    /api/v1/project-bids/{id}              single bid
    DELETE /api/v1/project-bids/{id}              soft delete a pending bid (owner)
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, get_current_user, require_role
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.models.user import ADMIN, CLIENT, FREELANCER_ROLES
from marketplace.schemas.common import ErrorResponse, MessageResponse
from marketplace.schemas.project import BidCreate, BidResponse, BidStatusUpdate, BidUpdate
from marketplace.services.bid_service import bid_service

router = APIRouter(prefix=f"{settings.api_prefix}/project-bids", tags=["Project Bids"])

freelancer_only = require_role(*FREELANCER_ROLES)

_owner_errors = {
    400: {"description": "Bid is no longer pending", "model": ErrorResponse},
    403: {"description": "Not your bid", "model": ErrorResponse},
    404: {"description": "Bid not found", "model": ErrorResponse},
}


@router.post(
    "",
    status_code=201,
    response_model=BidResponse,
    responses={
        400: {"description": "Application targets another project", "model": ErrorResponse},
        403: {"description": "Application belongs to another user", "model": ErrorResponse},
        404: {"description": "Project closed or application missing", "model": ErrorResponse},
        409: {"description": "Already bid on this project", "model": ErrorResponse},
    },
    summary="Place a bid",
)
async def create_bid(
    data: BidCreate,
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> BidResponse:
    bid = await bid_service.create_bid(db, user, data)
    return BidResponse.model_validate(bid)


@router.get("/mine", response_model=List[BidResponse], summary="My bids")
async def get_my_bids(
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[BidResponse]:
    bids = await bid_service.get_my_bids(db, user)
    return [BidResponse.model_validate(b) for b in bids]


@router.get(
    "/project/{project_id}",
    response_model=List[BidResponse],
    summary="Bids on a project",
    description="Featured bids first, then newest first.",
)
async def get_project_bids(
    project_id: int,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[BidResponse]:
    bids = await bid_service.get_project_bids(db, project_id)
    return [BidResponse.model_validate(b) for b in bids]


@router.get(
    "/{bid_id}",
    response_model=BidResponse,
    responses={404: {"description": "Bid not found", "model": ErrorResponse}},
)
async def get_bid(
    bid_id: int,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BidResponse:
    return BidResponse.model_validate(await bid_service.get_bid(db, bid_id))


@router.put("/{bid_id}", response_model=BidResponse, responses=_owner_errors, summary="Edit a bid")
async def update_bid(
    bid_id: int,
    data: BidUpdate,
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> BidResponse:
    bid = await bid_service.update_bid(db, user, bid_id, data)
    return BidResponse.model_validate(bid)


@router.patch(
    "/{bid_id}/status",
    response_model=BidResponse,
    responses={
        400: {"description": "Bid or project no longer open", "model": ErrorResponse},
        403: {"description": "Caller does not own the project", "model": ErrorResponse},
        404: {"description": "Bid not found", "model": ErrorResponse},
        500: {"description": "Acceptance rolled back", "model": ErrorResponse},
    },
    summary="Accept or reject a bid",
    description=(
        "Accepting awards the project to the bidder and rejects every other "
        "pending bid on it in one transaction."
    ),
)
async def update_bid_status(
    bid_id: int,
    data: BidStatusUpdate,
    user: CurrentUser = Depends(require_role(CLIENT, ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> BidResponse:
    bid = await bid_service.update_bid_status(db, user, bid_id, data.status)
    return BidResponse.model_validate(bid)


@router.post("/{bid_id}/withdraw", response_model=BidResponse, responses=_owner_errors)
async def withdraw_bid(
    bid_id: int,
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> BidResponse:
    bid = await bid_service.withdraw_bid(db, user, bid_id)
    return BidResponse.model_validate(bid)


@router.delete("/{bid_id}", response_model=MessageResponse, responses=_owner_errors)
async def delete_bid(
    bid_id: int,
    user: CurrentUser = Depends(freelancer_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await bid_service.delete_bid(db, user, bid_id)
    return MessageResponse(message="Bid deleted successfully")

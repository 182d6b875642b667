"""
Marketplace Backend — Payment Routes
=====================================

    POST /api/v1/payments/orders                 open an escrow order (CLIENT)
    GET  /api/v1/payments/history                all transactions (admin)
    GET  /api/v1/payments/mine                   caller's transactions
    GET  /api/v1/payments/project/{pid}          transactions for a project
    POST /api/v1/webhook/razorpay                gateway callback (signed)

The webhook route reads the raw request body: the HMAC signature is computed
over the exact bytes the gateway sent, so the body must not be parsed and
re-serialized before verification.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, get_current_user, require_role
from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.models.user import ADMIN_ROLES, CLIENT
from marketplace.schemas.common import ErrorResponse
from marketplace.schemas.payment import OrderCreate, OrderResponse, TransactionResponse, WebhookAck
from marketplace.services.payment_service import payment_service, webhook_service

router = APIRouter(prefix=f"{settings.api_prefix}/payments", tags=["Payments"])
webhook_router = APIRouter(prefix=f"{settings.api_prefix}/webhook", tags=["Webhooks"])


@router.post(
    "/orders",
    status_code=201,
    response_model=OrderResponse,
    responses={
        403: {"description": "Payee is not a freelancer", "model": ErrorResponse},
        404: {"description": "Payee, project or application not found", "model": ErrorResponse},
        502: {"description": "Payment gateway rejected the order", "model": ErrorResponse},
        503: {"description": "Payment gateway temporarily unavailable", "model": ErrorResponse},
    },
    summary="Create an escrow payment order",
)
async def create_order(
    data: OrderCreate,
    user: CurrentUser = Depends(require_role(CLIENT)),
    db: AsyncSession = Depends(get_db_session),
) -> OrderResponse:
    return await payment_service.create_order(db, user, data)


@router.get("/history", response_model=List[TransactionResponse])
async def payment_history(
    status: Optional[str] = None,
    _: CurrentUser = Depends(require_role(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db_session),
) -> List[TransactionResponse]:
    return [TransactionResponse.model_validate(t) for t in await payment_service.history(db, status)]


@router.get(
    "/mine",
    response_model=List[TransactionResponse],
    summary="My transactions",
    description="Clients see payments they made; freelancers see payments made to them.",
)
async def my_payment_history(
    status: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[TransactionResponse]:
    rows = await payment_service.my_history(db, user, status)
    return [TransactionResponse.model_validate(t) for t in rows]


@router.get(
    "/project/{project_id}",
    response_model=List[TransactionResponse],
    responses={404: {"description": "Project not found", "model": ErrorResponse}},
)
async def project_transactions(
    project_id: int,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[TransactionResponse]:
    rows = await payment_service.project_transactions(db, project_id)
    return [TransactionResponse.model_validate(t) for t in rows]


@webhook_router.post(
    "/razorpay",
    response_model=WebhookAck,
    responses={
        400: {"description": "Missing or invalid signature", "model": ErrorResponse},
        500: {"description": "Webhook secret not configured", "model": ErrorResponse},
    },
    summary="Razorpay webhook receiver",
)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> WebhookAck:
    raw_body = await request.body()
    return await webhook_service.handle(db, raw_body, x_razorpay_signature)

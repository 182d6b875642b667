"""
Marketplace Backend — Notification Routes
==========================================

    GET   /api/v1/notifications              caller's notifications (newest first)
    PATCH /api/v1/notifications/{id}/read    mark one read
    PATCH /api/v1/notifications/read-all     mark all read
    WS    /ws/notifications?token=<jwt>      live push of new notifications

The websocket only pushes; clients never send anything meaningful on it.
Incoming frames are read and discarded so disconnects are noticed.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, get_current_user, resolve_user
from marketplace.config import settings
from marketplace.database import async_session_factory, get_db_session
from marketplace.exceptions import AuthenticationError
from marketplace.schemas.activity import NotificationResponse
from marketplace.schemas.common import CountResponse, ErrorResponse
from marketplace.services.notification_hub import notification_hub
from marketplace.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.api_prefix}/notifications", tags=["Notifications"])
ws_router = APIRouter(tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[NotificationResponse]:
    rows = await notification_service.list_mine(db, user.user_id, unread_only=unread_only, limit=limit)
    return [NotificationResponse.model_validate(n) for n in rows]


@router.patch("/read-all", response_model=CountResponse, summary="Mark every notification read")
async def mark_all_read(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CountResponse:
    return CountResponse(count=await notification_service.mark_all_read(db, user.user_id))


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses={
        403: {"description": "Belongs to another user", "model": ErrorResponse},
        404: {"description": "Notification not found", "model": ErrorResponse},
    },
)
async def mark_read(
    notification_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    notification = await notification_service.mark_read(db, user.user_id, notification_id)
    return NotificationResponse.model_validate(notification)


@ws_router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, token: str = Query(default="")) -> None:
    # Browsers cannot set headers on a websocket handshake, hence the query token
    try:
        async with async_session_factory() as db:
            user = await resolve_user(db, token)
    except AuthenticationError as e:
        logger.info("Notification socket refused: %s", e.message)
        await websocket.close(code=1008)
        return

    await websocket.accept()
    await notification_hub.register(user.user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await notification_hub.unregister(user.user_id, websocket)

"""
Marketplace Backend — Notification Service
===========================================

What:  Stores in-app notifications and serves the caller's inbox.
Who:   ApplicationService, BidService, SubmissionService and WebhookService
       call `notify()`; the notifications router calls the inbox methods.

Push:
    `notify()` flushes the row (so it has an id) and registers the socket
    push as an after-commit callback on the session. A rolled-back
    transaction never reaches the socket; a push failure never fails the
    surrounding operation.
"""

import functools
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import call_after_commit
from marketplace.exceptions import NotFoundError, PermissionDeniedError
from marketplace.models.activity import Notification
from marketplace.models.base import utcnow
from marketplace.schemas.activity import NotificationResponse
from marketplace.services.notification_hub import notification_hub

logger = logging.getLogger(__name__)


class NotificationService:
    async def notify(
        self,
        db: AsyncSession,
        user_id: int,
        title: str,
        message: str,
        type: str,
        related_id: Optional[int] = None,
        related_type: Optional[str] = None,
        redirect_url: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            related_id=related_id,
            related_type=related_type,
            redirect_url=redirect_url,
            meta=meta,
            is_read=False,
        )
        db.add(notification)
        await db.flush()

        payload = NotificationResponse.model_validate(notification).model_dump(mode="json")
        call_after_commit(db, functools.partial(notification_hub.send_to_user, user_id, payload))
        logger.debug("Notification %s (%s) stored for user %s", notification.id, type, user_id)
        return notification

    async def list_mine(
        self, db: AsyncSession, user_id: int, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def mark_read(self, db: AsyncSession, user_id: int, notification_id: int) -> Notification:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(resource="notification", resource_id=notification_id)
        if notification.user_id != user_id:
            raise PermissionDeniedError("This notification belongs to another user")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await db.flush()
        return notification

    async def mark_all_read(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
        )
        return result.rowcount or 0


notification_service = NotificationService()

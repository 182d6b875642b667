"""
Marketplace Backend — Notification Socket Registry
===================================================

What:  In-process map of user id → open websockets, used to push freshly
       stored notifications to connected clients.
How:   The /ws/notifications route registers a socket after authenticating
       it; NotificationService queues `send_to_user` to run once the insert commits.
Who:   Single module-level instance `notification_hub`.

Delivery is best effort:
    - Sockets live in one worker process; users connected to another worker
      only see the notification on their next list call.
    - A send that raises drops that socket from the registry.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class NotificationHub:
    """
    Registry of live notification sockets, keyed by user id.

    Thread Safety:
        An asyncio.Lock guards registration; sends iterate over a snapshot
        so a socket closing mid-send cannot break the loop.
    """

    def __init__(self) -> None:
        self._connections: Dict[int, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def register(self, user_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.setdefault(user_id, set()).add(websocket)
        logger.info("Notification socket opened for user %s", user_id)

    async def unregister(self, user_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._connections[user_id]
        logger.info("Notification socket closed for user %s", user_id)

    async def send_to_user(self, user_id: int, payload: Dict[str, Any]) -> int:
        """
        Push `payload` to every socket of `user_id`.

        Returns:
            Number of sockets the message reached.
        """
        async with self._lock:
            sockets = list(self._connections.get(user_id, ()))
        if not sockets:
            return 0

        message = json.dumps({"type": "notification", "data": payload}, default=str)
        delivered = 0
        for websocket in sockets:
            try:
                await websocket.send_text(message)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping notification socket for user %s: %s", user_id, e)
                await self.unregister(user_id, websocket)
        return delivered

    def connection_count(self) -> int:
        return sum(len(s) for s in self._connections.values())


notification_hub = NotificationHub()

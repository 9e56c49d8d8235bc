"""
MindSync Backend — Notification Hub
=====================================

What:  In-process registry of open notification WebSockets per user and
       a publish() that fans an event out to all of a user's sockets.
How:   Dict[user_id → set[WebSocket]] guarded by an asyncio.Lock; sends
       happen outside the lock so one slow client cannot stall the others.
Who:   Route handlers publish after the service call has returned; the
       /ws/notifications endpoint registers and unregisters sockets.

Events:
    session-started     payload: SessionResponse
    session-completed   payload: SessionResponse
    emotion-recorded    payload: EmotionReadingResponse

Message format (server → client):
    {"event": "session-completed", "data": {...}, "timestamp": "...Z"}

The hub holds no business state. Losing it (restart, other worker
process) only loses live pushes; clients re-read over HTTP.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Set
from uuid import UUID

from fastapi import WebSocket

logger = logging.getLogger(__name__)

SESSION_STARTED = "session-started"
SESSION_COMPLETED = "session-completed"
EMOTION_RECORDED = "emotion-recorded"


class NotificationHub:
    """
    Per-user WebSocket fan-out.

    A user may hold several sockets (tabs, devices); every one of them
    receives each event. A socket whose send fails is dropped.
    """

    def __init__(self):
        self._connections: Dict[UUID, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return sum(len(sockets) for sockets in self._connections.values())

    def is_connected(self, user_id: UUID) -> bool:
        return bool(self._connections.get(user_id))

    async def connect(self, user_id: UUID, websocket: WebSocket) -> None:
        """Register an already-accepted socket for a user."""
        async with self._lock:
            self._connections.setdefault(user_id, set()).add(websocket)
        logger.info("Notification socket connected for user %s", user_id)

    async def disconnect(self, user_id: UUID, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._connections[user_id]
        logger.info("Notification socket disconnected for user %s", user_id)

    async def publish(self, user_id: UUID, event: str, payload: Dict[str, Any]) -> int:
        """
        Send an event to every socket of a user.

        Returns:
            Number of sockets that received the message. Publishing to a
            user with no open socket is a no-op returning 0.
        """
        async with self._lock:
            sockets = list(self._connections.get(user_id, ()))

        if not sockets:
            logger.debug("No notification socket for user %s; dropping %s", user_id, event)
            return 0

        message = {
            "event": event,
            "data": payload,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        delivered = 0
        for websocket in sockets:
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Dropping notification socket for user %s after send failure: %s",
                    user_id,
                    str(e),
                )
                await self.disconnect(user_id, websocket)
        return delivered

    async def close_all(self) -> None:
        """Close every socket (application shutdown)."""
        async with self._lock:
            sockets = [
                (user_id, ws)
                for user_id, user_sockets in self._connections.items()
                for ws in user_sockets
            ]
            self._connections.clear()

        for user_id, websocket in sockets:
            try:
                await websocket.close(code=1001)
            except Exception as e:
                logger.debug("Error closing socket for user %s: %s", user_id, str(e))
        if sockets:
            logger.info("Closed %d notification sockets", len(sockets))


# ── Singleton Instance ────────────────────────────────────────────────────
notification_hub = NotificationHub()

"""
MindSync Backend — Notification WebSocket
===========================================

What:  WS /ws/notifications?user_id=<uuid>: a server → client push channel
       for session and emotion events.

Connection Establishment:
    1. Client connects with its user id in the query string
    2. Server resolves the user; unknown/malformed ids are accepted and
       immediately closed with 4401
    3. Otherwise the socket is registered with the NotificationHub
    4. Incoming frames are read only to notice disconnects; a "ping" text
       frame is answered with "pong"
"""

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from mindsync.database import async_session_factory
from mindsync.exceptions import AuthenticationError
from mindsync.routes.deps import resolve_user
from mindsync.services.notification_hub import notification_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])

CLOSE_UNAUTHORIZED = 4401


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    user_id: str | None = Query(default=None),
):
    try:
        async with async_session_factory() as db:
            user = await resolve_user(db, user_id)
    except AuthenticationError as e:
        # Accept first so the client sees the close code instead of a bare 403
        logger.warning("Notification socket rejected: %s", e.message)
        await websocket.accept()
        await websocket.close(code=CLOSE_UNAUTHORIZED, reason="Unauthorized")
        return

    await websocket.accept()
    await notification_hub.connect(user.id, websocket)

    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug("Notification socket closed by client (user %s)", user.id)
    finally:
        await notification_hub.disconnect(user.id, websocket)

"""
WebSocket realtime router for live channel and user events.
"""

import json
import logging
import re

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from teamchat.db import async_session_maker
from teamchat.deps import resolve_session_user
from teamchat.errors import AuthenticationError
from teamchat.models.user import User
from teamchat.services import memberships
from teamchat.services.broadcaster import broadcaster
from teamchat.settings import settings

logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])

# Close code for rejected subscriptions
POLICY_VIOLATION = 4003

_CHANNEL_TOPIC = re.compile(r"^channel-(\d+)$")
_USER_TOPIC = re.compile(r"^private-user-(\d+)$")


async def authorize_topic(db: AsyncSession, user: User, topic: str) -> bool:
    """Channel topics need channel membership; user topics need the same user."""
    match = _CHANNEL_TOPIC.match(topic)
    if match:
        return await memberships.is_channel_member(db, user.id, int(match.group(1)))
    match = _USER_TOPIC.match(topic)
    if match:
        return int(match.group(1)) == user.id
    return False


async def verify_topic_access(websocket: WebSocket, topic: str) -> User | None:
    """Resolve the session cookie and check the user may subscribe to ``topic``."""
    token = websocket.cookies.get(settings.session_cookie_name)
    if not token:
        return None

    async with async_session_maker() as db:
        try:
            user = await resolve_session_user(db, token)
        except AuthenticationError:
            return None
        if not await authorize_topic(db, user, topic):
            logger.info(f"User {user.id} denied subscription to {topic}")
            return None
        return user


@router.websocket("/ws/{topic}")
async def websocket_topic(websocket: WebSocket, topic: str):
    """WebSocket endpoint for subscribing to one topic."""
    user = await verify_topic_access(websocket, topic)
    if not user:
        await websocket.close(code=POLICY_VIOLATION)
        return

    await websocket.accept()
    await broadcaster.subscribe(websocket, topic)

    try:
        await websocket.send_json({"type": "connected", "topic": topic, "user_id": user.id})

        # Keep connection alive and answer keepalive pings
        while True:
            try:
                data = await websocket.receive_json()
            except WebSocketDisconnect:
                break
            except json.JSONDecodeError:
                continue

            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    finally:
        await broadcaster.unsubscribe(websocket, topic)

"""
Topic-based fan-out of realtime events to WebSocket subscribers.

Topics are named per channel (``channel-{id}``) and per user
(``private-user-{id}``). Publishing never raises because of a broken
subscriber: dead sockets are dropped and logged.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Event names
MESSAGE_SENT = "message-sent"
WORKSPACE_INVITE = "workspace:invite"
INVITE_SENT = "invite:sent"


def channel_topic(channel_id: int) -> str:
    return f"channel-{channel_id}"


def user_topic(user_id: int) -> str:
    return f"private-user-{user_id}"


class ConnectionManager:
    """Manage WebSocket subscriptions per topic."""

    def __init__(self):
        # topic -> set of subscribed sockets
        self.subscriptions: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def subscribe(self, websocket: WebSocket, topic: str) -> None:
        """Register an accepted WebSocket on a topic."""
        async with self._lock:
            self.subscriptions[topic].add(websocket)
        logger.info(f"WebSocket subscribed to {topic}")

    async def unsubscribe(self, websocket: WebSocket, topic: str) -> None:
        async with self._lock:
            sockets = self.subscriptions.get(topic)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self.subscriptions[topic]
        logger.info(f"WebSocket unsubscribed from {topic}")

    async def publish(self, topic: str, event: str, payload: dict[str, Any]) -> int:
        """Send an event to every subscriber of ``topic``.

        Returns the number of sockets the frame was delivered to.
        """
        async with self._lock:
            sockets = list(self.subscriptions.get(topic, ()))

        frame = {"event": event, "topic": topic, "data": payload}
        delivered = 0
        disconnected = []
        for websocket in sockets:
            try:
                await websocket.send_json(frame)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to send {event} on {topic}: {e}")
                disconnected.append(websocket)

        for websocket in disconnected:
            await self.unsubscribe(websocket, topic)

        logger.debug(f"Published {event} to {topic} ({delivered} subscribers)")
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self.subscriptions.get(topic, ()))


# Global connection manager
broadcaster = ConnectionManager()


def get_broadcaster() -> ConnectionManager:
    """Dependency returning the process-wide broadcaster."""
    return broadcaster

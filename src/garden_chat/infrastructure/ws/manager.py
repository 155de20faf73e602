"""In-process registry of relay sockets and the conversations they joined."""
from __future__ import annotations

import logging

from fastapi import WebSocket

from garden_chat.domain.entities.message import Message
from garden_chat.infrastructure.ws.protocol import message_frame

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._subscriptions: dict[int, set[WebSocket]] = {}

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._connections.add(ws)
        logger.debug("WS connected (total=%d)", len(self._connections))

    def disconnect(self, ws: WebSocket) -> None:
        self._connections.discard(ws)
        for conversation_id in list(self._subscriptions):
            subs = self._subscriptions[conversation_id]
            subs.discard(ws)
            if not subs:
                del self._subscriptions[conversation_id]
        logger.debug("WS disconnected (total=%d)", len(self._connections))

    def join(self, ws: WebSocket, conversation_id: int) -> None:
        self._subscriptions.setdefault(conversation_id, set()).add(ws)

    def subscriber_count(self, conversation_id: int) -> int:
        return len(self._subscriptions.get(conversation_id, ()))

    async def broadcast_message(self, message: Message) -> int:
        """Send a ``mensaje`` event to every socket joined to its conversation."""
        subs = self._subscriptions.get(message.conversation_id, set())
        raw = message_frame(message)
        dead: list[WebSocket] = []
        delivered = 0
        for ws in list(subs):
            try:
                await ws.send_text(raw)
                delivered += 1
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)
        return delivered

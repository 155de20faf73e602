"""App-wide message feed across every conversation of the current user."""
from __future__ import annotations

import logging
from typing import Callable

from garden_chat.application.exceptions import ProtocolError
from garden_chat.application.ports.clock import Sleeper, asyncio_sleep
from garden_chat.application.ports.transport import Transport
from garden_chat.config import Settings, settings as default_settings
from garden_chat.domain.entities.message import Message
from garden_chat.domain.value_objects.enums import ConnectionState, EventType
from garden_chat.infrastructure.mappers.message import record_to_entity
from garden_chat.infrastructure.ws.protocol import parse_event
from garden_chat.infrastructure.ws.reconnecting import ReconnectingSocket

logger = logging.getLogger(__name__)

InboxListener = Callable[[int, Message], None]


class ConversationInbox:
    """Single unjoined connection feeding conversation lists and unread badges.

    Messages from other users increment the unread counter of their
    conversation unless that conversation is the one currently on screen.
    """

    def __init__(
        self,
        user_id: int,
        transport: Transport,
        *,
        settings: Settings = default_settings,
        sleep: Sleeper = asyncio_sleep,
    ) -> None:
        self._user_id = user_id
        self._processed: set[int] = set()
        self._unread: dict[int, int] = {}
        self._open_conversation: int | None = None
        self._listeners: list[InboxListener] = []
        self._socket = ReconnectingSocket(
            settings.websocket_url,
            transport,
            self._handle_frame,
            max_attempts=settings.WS_RECONNECT_MAX_ATTEMPTS,
            delay=settings.reconnect_delay,
            sleep=sleep,
            name=f"inbox:{user_id}",
        )

    @property
    def state(self) -> ConnectionState:
        return self._socket.state

    def start(self) -> None:
        self._socket.start()

    async def close(self) -> None:
        await self._socket.close()
        self._processed.clear()
        self._unread.clear()

    def add_listener(self, listener: InboxListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def set_open_conversation(self, conversation_id: int | None) -> None:
        self._open_conversation = conversation_id
        if conversation_id is not None:
            self.mark_read(conversation_id)

    def mark_read(self, conversation_id: int) -> None:
        self._unread.pop(conversation_id, None)

    def unread_counts(self) -> dict[int, int]:
        return dict(self._unread)

    def _handle_frame(self, raw: str) -> None:
        try:
            event = parse_event(raw)
            if event.tipo != EventType.MESSAGE:
                return
            msg = record_to_entity(event.fields)
        except ProtocolError as exc:
            logger.warning("Inbox dropping frame: %s", exc.detail)
            return

        if msg.id in self._processed:
            return
        self._processed.add(msg.id)

        if msg.sender_id != self._user_id and msg.conversation_id != self._open_conversation:
            self._unread[msg.conversation_id] = self._unread.get(msg.conversation_id, 0) + 1
            logger.debug("Unread counters: %s", self._unread)

        for listener in list(self._listeners):
            try:
                listener(msg.conversation_id, msg)
            except Exception:
                logger.exception("Inbox listener failed")

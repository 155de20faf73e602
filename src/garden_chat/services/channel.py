"""Realtime view of one conversation.

The channel loads the history once, keeps a websocket subscription joined to
the conversation, and exposes a deduplicated, append-only message list.
Nothing raised inside the channel reaches the caller: failures are logged
and the view degrades to whatever it already holds.
"""
from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Callable, Self

from garden_chat.application.exceptions import ProtocolError
from garden_chat.application.ports.api import MessageApi
from garden_chat.application.ports.clock import Sleeper, asyncio_sleep
from garden_chat.application.ports.transport import Connection, Transport
from garden_chat.config import Settings, settings as default_settings
from garden_chat.domain.entities.message import Message
from garden_chat.domain.value_objects.enums import (
    ConnectionState,
    DisconnectReason,
    EventType,
)
from garden_chat.infrastructure.mappers.message import record_to_entity
from garden_chat.infrastructure.ws.protocol import join_frame, parse_event
from garden_chat.infrastructure.ws.reconnecting import ReconnectingSocket

logger = logging.getLogger(__name__)

ChangeListener = Callable[["ConversationChannel"], None]


class ConversationChannel:
    def __init__(
        self,
        conversation_id: int,
        api: MessageApi,
        transport: Transport,
        *,
        settings: Settings = default_settings,
        sleep: Sleeper = asyncio_sleep,
    ) -> None:
        self._conversation_id = conversation_id
        self._api = api
        self._messages: list[Message] = []
        self._ids: set[int] = set()
        self._loading = False
        self._opened = False
        self._closed = False
        self._history_task: asyncio.Task[None] | None = None
        self._listeners: list[ChangeListener] = []
        self._socket = ReconnectingSocket(
            settings.websocket_url,
            transport,
            self._handle_frame,
            on_open=self._join,
            on_state_change=self._handle_state_change,
            max_attempts=settings.WS_RECONNECT_MAX_ATTEMPTS,
            delay=settings.reconnect_delay,
            sleep=sleep,
            name=f"chat:{conversation_id}",
        )

    @property
    def conversation_id(self) -> int:
        return self._conversation_id

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def state(self) -> ConnectionState:
        return self._socket.state

    @property
    def disconnect_reason(self) -> DisconnectReason | None:
        return self._socket.reason

    @property
    def reconnect_attempts(self) -> int:
        return self._socket.attempts

    @property
    def connected(self) -> bool:
        return self._socket.state == ConnectionState.CONNECTED

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> Self:
        """Start the history fetch and the live subscription.

        Must be called from inside a running event loop. Calling it again
        restarts a subscription that gave up and otherwise does nothing; a
        closed channel stays closed.
        """
        if self._closed:
            logger.warning("open() on closed channel conversation=%s", self._conversation_id)
            return self
        if self._opened:
            self.resume()
            return self
        self._opened = True
        self._loading = True
        self._history_task = asyncio.create_task(
            self._load_history(), name=f"chat:{self._conversation_id}-history",
        )
        self._socket.start()
        self._notify()
        return self

    async def wait_loaded(self) -> None:
        """Wait for the history fetch to finish, successfully or not."""
        if self._history_task is not None:
            await asyncio.shield(self._history_task)

    async def send(self, body: str) -> None:
        text = body.strip()
        if not text:
            logger.debug("Ignoring empty message for conversation=%s", self._conversation_id)
            return
        try:
            created = await self._api.submit_message(self._conversation_id, text)
        except Exception:
            logger.exception("Failed to send message to conversation=%s", self._conversation_id)
            return
        # the created message is displayed when the subscription delivers it
        logger.debug("Message %s accepted for conversation=%s", created.id, self._conversation_id)

    def resume(self) -> bool:
        """Reconnect after the retry policy gave up, e.g. when the app is foregrounded."""
        if not self._opened or self._closed:
            return False
        if self._socket.reason != DisconnectReason.EXHAUSTED:
            return False
        logger.info("Resuming subscription for conversation=%s", self._conversation_id)
        return self._socket.restart()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._socket.close()
        self._listeners.clear()

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def __aenter__(self) -> Self:
        return self.open()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _load_history(self) -> None:
        conversation_id = self._conversation_id
        try:
            history = await self._api.fetch_history(conversation_id)
        except Exception:
            logger.exception("Failed to load history for conversation=%s", conversation_id)
            history = None

        if self._closed:
            logger.debug("Discarding history for closed channel conversation=%s", conversation_id)
            return

        if history is not None:
            self._apply_history(history)
        self._loading = False
        self._notify()

    def _apply_history(self, history: list[Message]) -> None:
        """Replace the list with the snapshot, keeping live arrivals it lacks."""
        merged: list[Message] = []
        seen: set[int] = set()
        for msg in history:
            if msg.conversation_id != self._conversation_id or msg.id in seen:
                continue
            merged.append(msg)
            seen.add(msg.id)
        for msg in self._messages:
            if msg.id not in seen:
                merged.append(msg)
                seen.add(msg.id)
        self._messages = merged
        self._ids = seen
        logger.debug(
            "History applied for conversation=%s (%d messages)",
            self._conversation_id,
            len(merged),
        )

    async def _join(self, conn: Connection) -> None:
        await conn.send(join_frame(self._conversation_id))

    def _handle_frame(self, raw: str) -> None:
        try:
            event = parse_event(raw)
        except ProtocolError as exc:
            logger.warning("Dropping websocket frame: %s", exc.detail)
            return

        if event.tipo == EventType.ERROR:
            logger.error("WebSocket error: %s (raw=%s)", event.fields.get("error"), raw)
            return
        if event.tipo != EventType.MESSAGE:
            return

        try:
            msg = record_to_entity(event.fields)
        except ProtocolError as exc:
            logger.warning("Dropping message event: %s (raw=%s)", exc.detail, raw)
            return
        self._append(msg)

    def _append(self, msg: Message) -> None:
        if self._closed:
            return
        if msg.conversation_id != self._conversation_id:
            return
        if msg.id in self._ids:
            return
        self._messages.append(msg)
        self._ids.add(msg.id)
        self._notify()

    def _handle_state_change(
        self, state: ConnectionState, reason: DisconnectReason | None,
    ) -> None:
        if not self._closed:
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Channel listener failed")


def open_channel(
    conversation_id: int,
    api: MessageApi,
    transport: Transport,
    *,
    settings: Settings = default_settings,
) -> ConversationChannel:
    """Create a channel for ``conversation_id`` and open it."""
    return ConversationChannel(
        conversation_id, api, transport, settings=settings,
    ).open()

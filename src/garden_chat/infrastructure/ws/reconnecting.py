"""Websocket connection with a fixed-delay reconnection policy.

State machine::

    DISCONNECTED(not_started) --start()--> CONNECTING
    CONNECTING --established--> CONNECTED          (attempts reset to 0)
    CONNECTING|CONNECTED --lost--> DISCONNECTED(retry_pending)
                                   or DISCONNECTED(exhausted) once attempts == max
    DISCONNECTED(retry_pending) --delay elapsed--> CONNECTING
    any --close()--> DISCONNECTED(closed)           (terminal)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from garden_chat.application.ports.clock import Sleeper, asyncio_sleep
from garden_chat.application.ports.transport import Connection, Transport
from garden_chat.domain.value_objects.enums import ConnectionState, DisconnectReason

logger = logging.getLogger(__name__)

OnOpenCallback = Callable[[Connection], Awaitable[None]]
OnFrameCallback = Callable[[str], None]
OnStateCallback = Callable[[ConnectionState, DisconnectReason | None], None]


class ReconnectingSocket:
    def __init__(
        self,
        url: str,
        transport: Transport,
        on_frame: OnFrameCallback,
        *,
        on_open: OnOpenCallback | None = None,
        on_state_change: OnStateCallback | None = None,
        max_attempts: int = 5,
        delay: float = 2.0,
        sleep: Sleeper = asyncio_sleep,
        name: str = "ws",
    ) -> None:
        self._url = url
        self._transport = transport
        self._on_frame = on_frame
        self._on_open = on_open
        self._on_state_change = on_state_change
        self._max_attempts = max_attempts
        self._delay = delay
        self._sleep = sleep
        self._name = name

        self._state = ConnectionState.DISCONNECTED
        self._reason: DisconnectReason | None = DisconnectReason.NOT_STARTED
        self._attempts = 0
        self._conn: Connection | None = None
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reason(self) -> DisconnectReason | None:
        """Set only while ``state`` is ``DISCONNECTED``."""
        return self._reason

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._closed or self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"{self._name}-connection")

    def restart(self) -> bool:
        """Begin a fresh attempt cycle after the policy gave up."""
        if self._closed or self.running:
            return False
        self._attempts = 0
        self.start()
        return True

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        conn = self._conn
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if conn is not None:
            try:
                await conn.close()
            except Exception:
                logger.warning("[%s] error while closing connection", self._name, exc_info=True)
        self._conn = None
        self._set_state(ConnectionState.DISCONNECTED, DisconnectReason.CLOSED)
        logger.info("[%s] closed", self._name)

    async def _run(self) -> None:
        while True:
            self._set_state(ConnectionState.CONNECTING, None)
            logger.info("[%s] connecting to %s", self._name, self._url)
            try:
                conn = await self._transport.connect(self._url)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("[%s] connect failed: %s", self._name, exc)
            else:
                await self._serve(conn)

            if self._attempts >= self._max_attempts:
                self._set_state(ConnectionState.DISCONNECTED, DisconnectReason.EXHAUSTED)
                logger.error(
                    "[%s] max reconnection attempts reached (%d), giving up",
                    self._name,
                    self._max_attempts,
                )
                return

            self._attempts += 1
            self._set_state(ConnectionState.DISCONNECTED, DisconnectReason.RETRY_PENDING)
            logger.info(
                "[%s] reconnecting (attempt %d/%d) in %.1fs",
                self._name,
                self._attempts,
                self._max_attempts,
                self._delay,
            )
            await self._sleep(self._delay)

    async def _serve(self, conn: Connection) -> None:
        self._conn = conn
        self._attempts = 0
        self._set_state(ConnectionState.CONNECTED, None)
        logger.info("[%s] connected", self._name)
        try:
            if self._on_open is not None:
                await self._on_open(conn)
            async for frame in conn:
                try:
                    self._on_frame(frame)
                except Exception:
                    logger.exception("[%s] error processing frame", self._name)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[%s] connection error", self._name)
        finally:
            self._conn = None
        logger.info("[%s] connection lost", self._name)

    def _set_state(self, state: ConnectionState, reason: DisconnectReason | None) -> None:
        if state == self._state and reason == self._reason:
            return
        self._state = state
        self._reason = reason
        if self._on_state_change is not None:
            try:
                self._on_state_change(state, reason)
            except Exception:
                logger.exception("[%s] state listener failed", self._name)

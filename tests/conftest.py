"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

import pytest

from garden_chat.config import Settings
from garden_chat.domain.entities.message import Message


@pytest.fixture
def settings() -> Settings:
    return Settings(API_URL="http://chat.test", WS_RECONNECT_MAX_ATTEMPTS=5, WS_RECONNECT_DELAY_MS=2000)


def make_message(
    *,
    message_id: int = 1,
    conversation_id: int = 7,
    sender_id: int = 42,
    body: str = "hola",
    created_at: str | None = "2025-01-01T10:00:00Z",
) -> Message:
    return Message(
        id=message_id,
        conversation_id=conversation_id,
        sender_id=sender_id,
        body=body,
        created_at=created_at,
    )


def message_event(
    *,
    message_id: int,
    conversation_id: int = 7,
    sender_id: int = 42,
    body: str = "hola",
) -> str:
    return json.dumps({
        "tipo": "mensaje",
        "id": message_id,
        "conversacionId": conversation_id,
        "remitenteId": sender_id,
        "cuerpo": body,
        "creadoEn": "2025-01-01T10:00:00Z",
    })


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Let background tasks run until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


@dataclass
class RecordingSleeper:
    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


@dataclass
class FakeMessageApi:
    history: list[Message] = field(default_factory=list)
    history_error: Exception | None = None
    send_error: Exception | None = None
    history_gate: asyncio.Event | None = None
    history_calls: list[int] = field(default_factory=list)
    submitted: list[tuple[int, str]] = field(default_factory=list)
    _next_id: int = 1000

    async def fetch_history(self, conversation_id: int) -> list[Message]:
        self.history_calls.append(conversation_id)
        if self.history_gate is not None:
            await self.history_gate.wait()
        if self.history_error is not None:
            raise self.history_error
        return list(self.history)

    async def submit_message(self, conversation_id: int, body: str) -> Message:
        self.submitted.append((conversation_id, body))
        if self.send_error is not None:
            raise self.send_error
        self._next_id += 1
        return make_message(message_id=self._next_id, conversation_id=conversation_id, body=body)


class FakeConnection:
    """Scripted websocket: frames pushed by the test, ``drop`` simulates loss."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, frame: str) -> None:
        self.sent.append(frame)

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def push(self, frame: str) -> None:
        self._inbox.put_nowait(frame)

    def drop(self) -> None:
        self._inbox.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            frame = await self._inbox.get()
            if frame is None:
                return
            yield frame


@dataclass
class FakeTransport:
    """Hands out scripted outcomes per connect call; refuses once the script runs out."""

    script: list[FakeConnection | Exception] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    opened: list[FakeConnection] = field(default_factory=list)

    async def connect(self, url: str) -> FakeConnection:
        self.urls.append(url)
        outcome: Any = self.script.pop(0) if self.script else ConnectionRefusedError("refused")
        if isinstance(outcome, Exception):
            raise outcome
        self.opened.append(outcome)
        return outcome

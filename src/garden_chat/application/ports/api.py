from __future__ import annotations

from typing import Protocol

from garden_chat.domain.entities.message import Message


class MessageApi(Protocol):
    """REST side of the chat: history listing and message submission."""

    async def fetch_history(self, conversation_id: int) -> list[Message]: ...

    async def submit_message(self, conversation_id: int, body: str) -> Message: ...

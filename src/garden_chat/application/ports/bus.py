from __future__ import annotations

from typing import Protocol

from garden_chat.domain.entities.message import Message


class MessagePublisher(Protocol):
    async def publish_message(self, message: Message) -> None: ...

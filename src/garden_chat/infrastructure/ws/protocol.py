"""WebSocket envelope models.

Every frame is a JSON object discriminated by ``tipo``. Message events carry
the message fields at the top level next to ``tipo``.
"""
from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from garden_chat.application.exceptions import ProtocolError
from garden_chat.domain.entities.message import Message
from garden_chat.domain.value_objects.enums import EventType
from garden_chat.infrastructure.mappers.message import entity_to_record


class WsEvent(BaseModel):
    """Any frame: the discriminator plus whatever else it carries."""

    tipo: str
    model_config = ConfigDict(extra="allow")

    @property
    def fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class JoinDirective(BaseModel):
    """Client → Server, right after connecting."""

    tipo: str = EventType.JOIN.value
    conversation_id: int = Field(alias="conversacionId")

    model_config = ConfigDict(populate_by_name=True)


class ErrorEvent(BaseModel):
    """Server → Client."""

    tipo: str = EventType.ERROR.value
    error: str


def parse_event(raw: str | bytes) -> WsEvent:
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ProtocolError(f"invalid JSON frame: {exc}") from exc
    if not isinstance(data, dict):
        raise ProtocolError("frame is not a JSON object")
    try:
        return WsEvent.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError("frame has no tipo") from exc


def join_frame(conversation_id: int) -> str:
    return JoinDirective(conversation_id=conversation_id).model_dump_json(by_alias=True)


def message_frame(message: Message) -> str:
    return json.dumps({"tipo": EventType.MESSAGE.value, **entity_to_record(message)})


def error_frame(error: str) -> str:
    return ErrorEvent(error=error).model_dump_json()


def pong_frame() -> str:
    return json.dumps({"tipo": EventType.PONG.value})

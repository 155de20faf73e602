from __future__ import annotations

import json
from typing import Any

from garden_chat.application.exceptions import ProtocolError
from garden_chat.domain.entities.message import Message
from garden_chat.domain.value_objects.enums import EventType
from garden_chat.infrastructure.mappers.message import entity_to_record, record_to_entity


def serialize_message(message: Message) -> str:
    envelope = {"event": EventType.MESSAGE.value, "data": entity_to_record(message)}
    return json.dumps(envelope)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    try:
        data = json.loads(raw)
        return data["event"], data["data"]
    except (ValueError, KeyError, TypeError) as exc:
        raise ProtocolError(f"malformed bus envelope: {exc}") from exc


def deserialize_message(raw: str | bytes) -> Message:
    event, data = deserialize_event(raw)
    if event != EventType.MESSAGE:
        raise ProtocolError(f"unexpected bus event {event!r}")
    return record_to_entity(data)

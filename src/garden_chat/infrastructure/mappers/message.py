"""Boundary adapter between wire message records and the Message entity.

The chat API is inconsistent about key style: the same record can arrive as
``conversacionId`` or ``conversacion_id`` (likewise ``remitenteId`` and
``creadoEn``). Every inbound record goes through ``record_to_entity`` and the
rest of the package only ever sees ``Message``. Outbound dumps always use the
compact style.
"""
from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from garden_chat.application.exceptions import ProtocolError
from garden_chat.domain.entities.message import Message


class MessageRecord(BaseModel):
    id: int
    conversation_id: int = Field(
        validation_alias=AliasChoices("conversacionId", "conversacion_id"),
        serialization_alias="conversacionId",
    )
    sender_id: int = Field(
        validation_alias=AliasChoices("remitenteId", "remitente_id"),
        serialization_alias="remitenteId",
    )
    body: str = Field(validation_alias="cuerpo", serialization_alias="cuerpo")
    created_at: str | None = Field(
        default=None,
        validation_alias=AliasChoices("creadoEn", "creado_en"),
        serialization_alias="creadoEn",
    )

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


def record_to_entity(raw: dict[str, Any]) -> Message:
    try:
        record = MessageRecord.model_validate(raw)
    except ValidationError as exc:
        raise ProtocolError(f"malformed message record: {exc.error_count()} error(s)") from exc
    return Message(
        id=record.id,
        conversation_id=record.conversation_id,
        sender_id=record.sender_id,
        body=record.body,
        created_at=record.created_at,
    )


def entity_to_record(entity: Message) -> dict[str, Any]:
    """Compact wire form: ``{id, conversacionId, remitenteId, cuerpo, creadoEn}``."""
    record = MessageRecord.model_construct(
        id=entity.id,
        conversation_id=entity.conversation_id,
        sender_id=entity.sender_id,
        body=entity.body,
        created_at=entity.created_at,
    )
    return record.model_dump(by_alias=True)

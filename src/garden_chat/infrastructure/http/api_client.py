"""httpx implementation of ``MessageApi``."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from garden_chat.application.exceptions import ProtocolError, RemoteError
from garden_chat.config import Settings, settings as default_settings
from garden_chat.domain.entities.message import Message
from garden_chat.infrastructure.mappers.message import record_to_entity

logger = logging.getLogger(__name__)


class HttpMessageApi:
    """Talks to the chat REST endpoints with the caller's session cookie.

    ``session_token`` is the value of the auth cookie issued at login; cookie
    issuing itself belongs to the login flow.
    """

    def __init__(
        self,
        session_token: str | None = None,
        *,
        settings: Settings = default_settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cookies = {settings.SESSION_COOKIE_NAME: session_token} if session_token else None
        self._client = httpx.AsyncClient(
            base_url=settings.API_URL.rstrip("/"),
            cookies=cookies,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def fetch_history(self, conversation_id: int) -> list[Message]:
        resp = await self._client.get(f"/conversaciones/{conversation_id}/mensajes")
        data = self._json_or_raise(resp)
        if not isinstance(data, list):
            raise ProtocolError("history response is not a list")
        logger.debug("Fetched %d messages for conversation=%s", len(data), conversation_id)
        messages: list[Message] = []
        for item in data:
            try:
                messages.append(record_to_entity(item))
            except ProtocolError as exc:
                logger.warning("Skipping history record: %s (raw=%r)", exc.detail, item)
        return messages

    async def submit_message(self, conversation_id: int, body: str) -> Message:
        resp = await self._client.post(
            "/mensajes",
            json={"conversacionId": conversation_id, "cuerpo": body},
        )
        data = self._json_or_raise(resp)
        if not isinstance(data, dict):
            raise ProtocolError("send response is not an object")
        return record_to_entity(data)

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _json_or_raise(resp: httpx.Response) -> Any:
        if resp.is_error:
            raise RemoteError(resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as exc:
            raise ProtocolError("response body is not JSON") from exc

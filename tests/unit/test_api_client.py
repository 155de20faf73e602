from __future__ import annotations

import json
import logging

import httpx
import pytest

from garden_chat.application.exceptions import ProtocolError, RemoteError
from garden_chat.infrastructure.http.api_client import HttpMessageApi


def _api(settings, handler) -> HttpMessageApi:
    return HttpMessageApi("jwt-cookie", settings=settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_history_sends_cookie_and_normalizes(settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[
            {"id": 1, "conversacion_id": 7, "remitente_id": 2, "cuerpo": "a", "creado_en": "t1"},
            {"id": 2, "conversacionId": 7, "remitenteId": 3, "cuerpo": "b", "creadoEn": "t2"},
        ])

    api = _api(settings, handler)
    messages = await api.fetch_history(7)
    await api.aclose()

    assert [m.id for m in messages] == [1, 2]
    assert {m.conversation_id for m in messages} == {7}
    assert str(seen[0].url) == "http://chat.test/conversaciones/7/mensajes"
    assert "token=jwt-cookie" in seen[0].headers["cookie"]


@pytest.mark.asyncio
async def test_submit_message_posts_body(settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        payload = json.loads(request.content)
        return httpx.Response(201, json={
            "id": 50,
            "conversacion_id": payload["conversacionId"],
            "remitente_id": 2,
            "cuerpo": payload["cuerpo"],
            "creado_en": "t",
        })

    api = _api(settings, handler)
    msg = await api.submit_message(7, "hola")
    await api.aclose()

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/mensajes"
    assert json.loads(seen[0].content) == {"conversacionId": 7, "cuerpo": "hola"}
    assert msg.id == 50 and msg.body == "hola"


@pytest.mark.asyncio
async def test_error_status_raises_remote_error(settings):
    api = _api(settings, lambda request: httpx.Response(401, text="No autorizado"))

    with pytest.raises(RemoteError) as exc_info:
        await api.fetch_history(7)
    await api.aclose()

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_non_list_history_raises_protocol_error(settings):
    api = _api(settings, lambda request: httpx.Response(200, json={"error": "x"}))

    with pytest.raises(ProtocolError):
        await api.fetch_history(7)
    await api.aclose()


@pytest.mark.asyncio
async def test_bad_history_record_is_skipped_alone(settings, caplog):
    caplog.set_level(logging.WARNING, logger="garden_chat.infrastructure.http.api_client")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[
            {"id": 1, "conversacionId": 7, "remitenteId": 2, "cuerpo": "a"},
            {"id": 2, "conversacionId": 7, "remitenteId": 2, "cuerpo": None},
            {"id": 3, "conversacion_id": 7, "remitente_id": 2, "cuerpo": "c"},
        ])

    api = _api(settings, handler)
    messages = await api.fetch_history(7)
    await api.aclose()

    assert [m.id for m in messages] == [1, 3]
    assert "Skipping history record" in caplog.text

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from garden_chat.api.middleware.correlation_id import correlation_id_ctx
from garden_chat.application.exceptions import ProtocolError
from garden_chat.config import settings
from garden_chat.domain.value_objects.enums import EventType
from garden_chat.infrastructure.ws.manager import ConnectionManager
from garden_chat.infrastructure.ws.protocol import error_frame, parse_event, pong_frame

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    return manager


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket) -> None:
    cid = correlation_id_ctx.get()
    await manager.connect(websocket)
    logger.info("WS connected cid=%s", cid)
    heartbeat_task = asyncio.create_task(_heartbeat(websocket), name="ws-heartbeat")
    try:
        await _read_loop(websocket)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error cid=%s", cid)
    finally:
        heartbeat_task.cancel()
        manager.disconnect(websocket)
        logger.info("WS disconnected cid=%s", cid)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(pong_frame())
    except asyncio.CancelledError:
        pass
    except Exception:
        pass


async def _read_loop(ws: WebSocket) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            event = parse_event(raw)
        except ProtocolError as exc:
            await ws.send_text(error_frame(exc.detail))
            continue

        if event.tipo == EventType.JOIN:
            conversation_id = event.fields.get("conversacionId")
            if not isinstance(conversation_id, int) or isinstance(conversation_id, bool):
                await ws.send_text(error_frame("join requires an integer conversacionId"))
                continue
            manager.join(ws, conversation_id)
            logger.info(
                "WS joined conversation=%s cid=%s", conversation_id, correlation_id_ctx.get(),
            )

        elif event.tipo == EventType.PING:
            await ws.send_text(pong_frame())

        else:
            await ws.send_text(error_frame(f"unknown tipo {event.tipo!r}"))

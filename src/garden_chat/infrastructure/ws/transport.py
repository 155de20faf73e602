"""``websockets`` implementation of the ``Transport`` port."""
from __future__ import annotations

from typing import AsyncIterator

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed


class WebsocketsConnection:
    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def send(self, frame: str) -> None:
        await self._ws.send(frame)

    async def close(self) -> None:
        await self._ws.close()

    async def __aiter__(self) -> AsyncIterator[str]:
        try:
            async for frame in self._ws:
                yield frame if isinstance(frame, str) else frame.decode()
        except ConnectionClosed:
            # abnormal close ends the stream the same way a clean one does
            return


class WebsocketsTransport:
    def __init__(self, *, open_timeout: float = 10.0) -> None:
        self._open_timeout = open_timeout

    async def connect(self, url: str) -> WebsocketsConnection:
        ws = await connect(url, open_timeout=self._open_timeout)
        return WebsocketsConnection(ws)

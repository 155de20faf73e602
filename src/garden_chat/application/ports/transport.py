from __future__ import annotations

from typing import AsyncIterator, Protocol


class Connection(Protocol):
    """An established duplex connection.

    Iterating yields inbound text frames and stops when the peer goes away.
    """

    async def send(self, frame: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str]: ...


class Transport(Protocol):
    async def connect(self, url: str) -> Connection: ...

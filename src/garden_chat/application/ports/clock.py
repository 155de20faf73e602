from __future__ import annotations

import asyncio
from typing import Protocol


class Sleeper(Protocol):
    async def __call__(self, seconds: float) -> None: ...


async def asyncio_sleep(seconds: float) -> None:
    """Default sleeper used between reconnect attempts."""
    await asyncio.sleep(seconds)

"""Follow a conversation in the terminal and send lines typed on stdin.

    python -m garden_chat.scripts.tail_conversation 12 --token <cookie value>
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from garden_chat.infrastructure.http.api_client import HttpMessageApi
from garden_chat.infrastructure.ws.transport import WebsocketsTransport
from garden_chat.logging_setup import configure_logging
from garden_chat.services.channel import ConversationChannel

logger = logging.getLogger(__name__)


async def tail(conversation_id: int, token: str | None) -> None:
    api = HttpMessageApi(token)
    printed = 0

    def _print_new(channel: ConversationChannel) -> None:
        nonlocal printed
        for msg in channel.messages[printed:]:
            print(f"[{msg.created_at or '-'}] {msg.sender_id}: {msg.body}")
        printed = len(channel.messages)

    try:
        async with ConversationChannel(conversation_id, api, WebsocketsTransport()) as channel:
            channel.add_listener(_print_new)
            await channel.wait_loaded()
            loop = asyncio.get_running_loop()
            while True:
                line = await loop.run_in_executor(None, sys.stdin.readline)
                if not line:
                    break
                await channel.send(line)
    finally:
        await api.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("conversation_id", type=int)
    parser.add_argument("--token", help="session cookie value")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    configure_logging(args.log_level)
    try:
        asyncio.run(tail(args.conversation_id, args.token))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()

from __future__ import annotations

import json

import pytest

from garden_chat.application.exceptions import ProtocolError
from garden_chat.infrastructure.bus.redis_pubsub import RedisPubSubPublisher, RedisPubSubSubscriber
from garden_chat.infrastructure.bus.serializer import deserialize_message, serialize_message
from garden_chat.infrastructure.ws.manager import ConnectionManager
from tests.conftest import make_message


class FakeWebSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.frames: list[str] = []
        self._broken = broken

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, raw: str) -> None:
        if self._broken:
            raise RuntimeError("socket gone")
        self.frames.append(raw)


class FakeRedis:
    def __init__(self) -> None:
        self.published: list[tuple[str, str]] = []

    async def publish(self, channel: str, raw: str) -> None:
        self.published.append((channel, raw))


@pytest.mark.asyncio
async def test_broadcast_reaches_only_joined_sockets():
    manager = ConnectionManager()
    joined, other, broken = FakeWebSocket(), FakeWebSocket(), FakeWebSocket(broken=True)
    for ws in (joined, other, broken):
        await manager.connect(ws)
    manager.join(joined, 7)
    manager.join(broken, 7)
    manager.join(other, 8)

    delivered = await manager.broadcast_message(make_message(message_id=1, conversation_id=7))

    assert delivered == 1
    assert other.frames == []
    event = json.loads(joined.frames[0])
    assert event["tipo"] == "mensaje"
    assert event["conversacionId"] == 7 and event["id"] == 1
    assert manager.subscriber_count(7) == 1


@pytest.mark.asyncio
async def test_disconnect_drops_all_subscriptions():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    await manager.connect(ws)
    manager.join(ws, 7)
    manager.join(ws, 8)

    manager.disconnect(ws)

    assert manager.subscriber_count(7) == 0
    assert manager.subscriber_count(8) == 0


def test_bus_envelope_carries_compact_record():
    raw = serialize_message(make_message(message_id=4, conversation_id=7))

    assert json.loads(raw)["data"]["conversacionId"] == 7
    assert deserialize_message(raw) == make_message(message_id=4, conversation_id=7)


@pytest.mark.parametrize("raw", ["nope", '{"event": "mensaje"}', '{"event": "otro", "data": {}}'])
def test_bad_bus_envelope_raises(raw):
    with pytest.raises(ProtocolError):
        deserialize_message(raw)


@pytest.mark.asyncio
async def test_publisher_and_subscriber_dispatch():
    redis = FakeRedis()
    publisher = RedisPubSubPublisher(redis, "chat.mensajes")
    await publisher.publish_message(make_message(message_id=9))

    received = []

    async def _callback(message):
        received.append(message)

    subscriber = RedisPubSubSubscriber(redis, "chat.mensajes", _callback)
    channel, raw = redis.published[0]
    await subscriber.dispatch(raw)
    await subscriber.dispatch("garbage")

    assert channel == "chat.mensajes"
    assert [m.id for m in received] == [9]

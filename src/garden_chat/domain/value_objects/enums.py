from __future__ import annotations

from enum import StrEnum


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class DisconnectReason(StrEnum):
    """Why a socket sits in ``DISCONNECTED``."""

    NOT_STARTED = "not_started"
    RETRY_PENDING = "retry_pending"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


class EventType(StrEnum):
    """Values of the ``tipo`` discriminator on the websocket."""

    JOIN = "join"
    MESSAGE = "mensaje"
    ERROR = "error"
    PING = "ping"
    PONG = "pong"

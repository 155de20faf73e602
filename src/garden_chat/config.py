from __future__ import annotations

import re

from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_URL: str = "http://localhost:3001"
    WS_PATH: str = "/ws"

    WS_RECONNECT_MAX_ATTEMPTS: int = 5
    WS_RECONNECT_DELAY_MS: int = 2000
    WS_HEARTBEAT_SECONDS: int = 30

    HTTP_TIMEOUT_SECONDS: float = 15.0
    SESSION_COOKIE_NAME: str = "token"

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "chat.mensajes"

    CORS_ORIGINS: list[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    @field_validator("API_URL")
    @classmethod
    def require_http_scheme(cls, value: str) -> str:
        if not re.match(r"^https?://[^/]", value):
            raise ValueError("API_URL must start with http:// or https://")
        return value

    @property
    def websocket_url(self) -> str:
        """API_URL with http mapped to ws and https to wss."""
        base = re.sub(
            r"^(https?)://",
            lambda m: "wss://" if m.group(1) == "https" else "ws://",
            self.API_URL.rstrip("/"),
        )
        return f"{base}{self.WS_PATH}"

    @property
    def reconnect_delay(self) -> float:
        return self.WS_RECONNECT_DELAY_MS / 1000

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()

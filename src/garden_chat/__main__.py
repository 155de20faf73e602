"""Entrypoint: python -m garden_chat"""
from __future__ import annotations

import uvicorn

from garden_chat.config import settings
from garden_chat.logging_setup import configure_logging


def main() -> None:
    configure_logging()
    uvicorn.run(
        "garden_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()

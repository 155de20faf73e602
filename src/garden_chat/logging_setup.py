from __future__ import annotations

import logging

from garden_chat.config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger from ``LOG_LEVEL``."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

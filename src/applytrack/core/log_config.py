"""Process-wide logging setup."""

from __future__ import annotations

import logging

from .config_loader import get_logging_config

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int | None = None) -> int:
    """Configure root logging once from the argument or `logging.level` config."""
    resolved = level
    if resolved is None:
        configured = get_logging_config().get("level")
        resolved = configured if isinstance(configured, (str, int)) else "INFO"
    if isinstance(resolved, str):
        numeric = logging.getLevelName(resolved.strip().upper())
        resolved = numeric if isinstance(numeric, int) else logging.INFO

    logging.basicConfig(level=resolved, format=DEFAULT_FORMAT)
    logging.getLogger().setLevel(resolved)
    return int(resolved)

"""Logging helpers."""

import logging
from logging import handlers
from pathlib import Path
from typing import Union


def configure_logging(log_path: Path, level: Union[int, str] = logging.INFO) -> None:
    """Send all records to a rotating file; the board owns the terminal."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = handlers.RotatingFileHandler(
        log_path, maxBytes=512000, backupCount=3, encoding="utf-8"
    )
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[handler],
        force=True,
    )

# mahjong_relay/log.py
"""
Logging setup.

Call ``setup_logging()`` once at startup; modules get their logger with
``get_logger(__name__)``.
"""
from __future__ import annotations

import logging
import sys

# time | level | module | message
_LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=_LOG_FORMAT,
        datefmt=_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    # uvicorn logs every websocket accept at INFO; we log our own
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

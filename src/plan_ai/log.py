"""Logging setup shared by the CLI and the HTTP server.

Every record goes to *stderr* as one pipe-separated line with an ISO 8601
timestamp::

    2024-03-20T09:00:00 | INFO     | plan_ai.service | Session s1: planning from 4 turn(s)

uvicorn configures its own loggers when it starts, so ``plan-ai serve``
hands it :func:`uvicorn_log_config` to keep its lines in the same format.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Attribute set on the handler we install; lets repeated setup calls find it.
_HANDLER_ATTR = "_plan_ai_log_handler"

# Third-party loggers that log every request at INFO.
_CHATTY_LOGGERS = ("httpx", "google_genai", "googleapiclient.discovery_cache")


def _resolve_level(level: str) -> int:
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Invalid log level: {level!r}")
    return numeric


def setup_logging(level: str = "INFO", stream: IO[str] | None = None) -> None:
    """Install the plan-ai handler on the root logger.

    Safe to call more than once: later calls only change the level of the
    handler installed by the first one.

    Args:
        level: Logging level name, case-insensitive (``"debug"``,
            ``"INFO"``, ...).
        stream: Where records are written.  Defaults to ``sys.stderr``.

    Raises:
        ValueError: If *level* is not a logging level name.
    """
    numeric = _resolve_level(level)
    root = logging.getLogger()
    root.setLevel(numeric)

    installed = [h for h in root.handlers if getattr(h, _HANDLER_ATTR, False)]
    if installed:
        for handler in installed:
            handler.setLevel(numeric)
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(numeric)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        setattr(handler, _HANDLER_ATTR, True)
        root.addHandler(handler)

    chatty_level = logging.DEBUG if numeric <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)


def uvicorn_log_config(level: str = "INFO") -> dict[str, Any]:
    """A ``logging.config.dictConfig`` mapping for ``uvicorn.run(log_config=...)``.

    Routes uvicorn's server and access loggers through the plan-ai format.
    """
    name = logging.getLevelName(_resolve_level(level))
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plan_ai": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "plan_ai",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            logger_name: {"handlers": ["stderr"], "level": name, "propagate": False}
            for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access")
        },
    }

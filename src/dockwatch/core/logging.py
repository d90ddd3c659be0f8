"""
Dockwatch Logging

Every dockwatch module logs through get_logger(__name__). Records go to
stderr through one shared handler, as text lines or, with
DOCKWATCH_LOG_JSON, one JSON object per line. The level comes from
DOCKWATCH_LOG_LEVEL and `dockwatch -v` lowers it to DEBUG at runtime.

The dispatch loop reports through this log only: one line per delivery
outcome (`<key> notified` / `Error can't notify <key>: <reason>`) and one
per lost daemon connection.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

from .config import get_settings

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "taskName"}


class DockwatchFormatter(logging.Formatter):
    """
    Render records as `<utc time> [DOCKWATCH LEVEL] [module] message`.

    With json_output the same fields, plus any `extra=` values such as a
    target key, are emitted as a single JSON object.
    """

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        exc_text = (
            "".join(traceback.format_exception(*record.exc_info)) if record.exc_info else None
        )

        if self.json_output:
            log_data: dict[str, Any] = {
                "timestamp": timestamp,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            log_data.update(
                (key, value)
                for key, value in record.__dict__.items()
                if key not in _RESERVED_ATTRS
            )
            if exc_text:
                log_data["exception"] = exc_text
            return json.dumps(log_data, default=str)

        module = record.name.rsplit(".", 1)[-1]
        line = f"{timestamp} [DOCKWATCH {record.levelname}] [{module}] {record.getMessage()}"
        if exc_text:
            line += f"\n{exc_text}"
        return line


_loggers: dict[str, logging.Logger] = {}
_handler: logging.Handler | None = None


def _get_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(DockwatchFormatter(json_output=get_settings().log_json))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """
    Get the dockwatch logger for a module.

    Args:
        name: Module name (typically __name__)
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(get_settings().log_level_int)
    logger.addHandler(_get_handler())
    logger.propagate = False

    _loggers[name] = logger
    return logger


def set_log_level(level: int) -> None:
    """Change the level of every dockwatch logger created so far."""
    for logger in _loggers.values():
        logger.setLevel(level)


def reset_logging() -> None:
    """
    Return dockwatch loggers to the logging defaults.

    Propagation is restored and levels cleared so pytest's caplog sees
    dockwatch records; the shared handler is dropped and rebuilt from
    settings on next use.
    """
    global _handler

    for logger in _loggers.values():
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
        if _handler is not None:
            logger.removeHandler(_handler)

    _handler = None

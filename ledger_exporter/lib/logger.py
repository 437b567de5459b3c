"""Process-wide structured logging configuration."""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import UTC, datetime
from typing import Any

_DEFAULT_LEVEL = logging.INFO

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Records emitted off the main thread (the ledger ingest loop) carry the
    thread name so ingest and scrape-side events can be told apart.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.threadName and record.threadName != threading.main_thread().name:
            payload["thread"] = record.threadName

        payload.update((key, value) for key, value in record.__dict__.items() if key not in _RECORD_ATTRS)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=repr)


class _ExporterHandler(logging.StreamHandler):
    """Stderr handler owned by ``configure_logging``."""


def configure_logging(level: int | str = _DEFAULT_LEVEL) -> None:
    """Install the JSON handler on the root logger, writing to stderr.

    Stdout is left alone: the exporter may share a pipe with the ledger tail.
    Handlers installed by others stay in place; calling again replaces only the
    exporter's own handler and updates the level.
    """

    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in [h for h in root.handlers if isinstance(h, _ExporterHandler)]:
        root.removeHandler(handler)

    handler = _ExporterHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

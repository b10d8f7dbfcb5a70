"""JSON line logging for notebridge.

Each record becomes one JSON object on *stderr*, for example::

    {"ts": "2025-07-01T12:00:00.123456+00:00", "level": "WARNING",
     "logger": "notebridge.pipeline", "message": "Image reference skipped",
     "op": "resolve", "document": "blog/hello.md", "raw_path": "missing.png"}

Modules create their logger once at import time and attach structured
fields through ``extra``::

    log = get_logger("notebridge.pipeline")
    log.info("Publish complete", extra={"extra_fields": {"slug": slug}})

The default threshold comes from ``NOTEBRIDGE_LOG_LEVEL`` (``INFO`` when
unset), so command line runs are not flooded with per-request debug lines.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

LOG_LEVEL_ENV = "NOTEBRIDGE_LOG_LEVEL"


class StructuredFormatter(logging.Formatter):
    """Render a record as a single-line JSON object.

    ``ts``, ``level``, ``logger`` and ``message`` are always present.  The
    mapping passed as ``extra={"extra_fields": {...}}`` is merged in at the
    top level, and a traceback is added under ``exception`` when the record
    carries one.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "extra_fields", None) or {})

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


_configured_loggers: set[str] = set()


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV) or "INFO"
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def get_logger(
    name: str = "notebridge",
    *,
    level: int | str | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Return the logger *name*, attaching a JSON handler the first time.

    Parameters
    ----------
    name:
        Logger name, normally the dotted module path.
    level:
        Threshold as an ``int`` or a level name.  Defaults to
        ``NOTEBRIDGE_LOG_LEVEL`` or ``INFO``; unknown names fall back to
        ``INFO``.
    stream:
        Handler output.  Defaults to ``sys.stderr``.

    Later calls for the same *name* return the configured logger unchanged.
    """
    logger = logging.getLogger(name)
    if name in _configured_loggers:
        return logger

    logger.setLevel(_resolve_level(level))
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    _configured_loggers.add(name)
    return logger

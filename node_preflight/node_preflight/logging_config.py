"""Logging setup for preflight runs.

With ``PREFLIGHT_STRUCTURED_LOGGING=true`` each log record is emitted as
a single-line JSON object::

    {
        "timestamp": "2025-05-15T12:34:56.789012+00:00",
        "level": "INFO",
        "logger": "node_preflight.engine",
        "message": "Validating kernel...",
        "check": "kernel",           // present on per-check records
        "item": "CONFIG_NAMESPACES", // present on sink records
        "category": "bad",           // present on sink records
        "exc_info": "Traceback ..."  // present only on exceptions
    }
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any

from node_preflight.config import Settings

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_PACKAGE_LOGGER = "node_preflight"

# Record attributes set through ``extra=`` by the engine and LoggingReporter.
_CONTEXT_FIELDS = ("check", "item", "category")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value:
                payload[field] = value

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Replaces handlers installed by a previous call so repeated
    configuration does not duplicate output.
    """
    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.handlers.clear()

    handler = logging.StreamHandler()
    if settings.structured_logging:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if settings.debug else settings.log_level)
    return package_logger

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import Any

from .config import Settings, get_settings

# LogRecord attributes promoted to top-level JSON keys when set via ``extra``
CONTEXT_FIELDS = (
    "check_in_id",
    "step",
    "emotion",
    "operation",
    "status",
    "duration_ms",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra_fields`` dicts are merged into the payload."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            payload.update(extra_fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        # UUIDs and datetimes in extras fall back to str()
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(settings: Settings | None = None) -> None:
    """Attach JSON file and console handlers to the root logger, once per process."""

    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    settings = settings or get_settings()
    formatter = JsonFormatter()
    file_handler = RotatingFileHandler(
        settings.log_file,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()
    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level)


__all__ = ["CONTEXT_FIELDS", "JsonFormatter", "configure_logging"]

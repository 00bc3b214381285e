"""Logging configuration.

- Development: human-readable format
- Production: JSON format (one object per line)
- Log level: controlled via LOG_LEVEL env variable
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from report_engine.core.config import Settings

EXTRA_FIELDS = ("project_id", "report_id", "template_id", "user_id", "timeframe")


class JSONFormatter(logging.Formatter):
    """JSON log formatter for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = str(value)
        return json.dumps(entry, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    """Single-line formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%H:%M:%S")
        extras = " ".join(
            f"{key}={getattr(record, key)}" for key in EXTRA_FIELDS if getattr(record, key, None) is not None
        )
        base = f"{ts} {record.levelname:<8} {record.name}: {record.getMessage()}"
        if extras:
            base = f"{base} [{extras}]"
        if record.exc_info and record.exc_info[0] is not None:
            base += "\n" + self.formatException(record.exc_info)
        return base


def configure_logging(settings: Settings) -> None:
    """Install a single stderr handler on the root logger."""

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter: logging.Formatter = JSONFormatter() if settings.log_json else ReadableFormatter()

    root = logging.getLogger()
    # Avoid duplicate handlers when the app factory runs more than once (tests).
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("sqlalchemy.engine", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

"""
Structured logging configuration.

Formats:
    json      one object per line (production default, log aggregation)
    readable  colored single line with workspace / journey tags (dev default)

Env:
    LOG_LEVEL   DEBUG | INFO | WARNING | ...  (default: INFO in prod, DEBUG otherwise)
    LOG_FORMAT  json | readable               (overrides the per-environment default)

Every record passes through ``RequestContextFilter`` so lines emitted while a
request is active carry its request id and workspace id without each caller
adding them to ``extra``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Record attributes copied into the JSON entry when present.
EXTRA_FIELDS = (
    "request_id",
    "workspace_id",
    "journey_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "row_count",
    "performer_count",
    "event_type",
)

_NOISY_LOGGERS = ("werkzeug", "sqlalchemy.engine", "alembic", "flask_limiter")


class RequestContextFilter(logging.Filter):
    """Attach ``request_id`` / ``workspace_id`` of the active request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = getattr(g, "request_id", None)
        if getattr(record, "workspace_id", None) is None:
            record.workspace_id = (request.view_args or {}).get("workspace_id")
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            (key, value)
            for key in EXTRA_FIELDS
            if (value := getattr(record, key, None)) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored dev output: ``12:00:01 INFO  journey_map.x: msg ws=ab12cd34 rows=12``."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    # (record attribute, label, formatter)
    TAGS = (
        ("workspace_id", "ws", lambda v: str(v)[:8]),
        ("journey_id", "journey", lambda v: str(v)[:8]),
        ("row_count", "rows", str),
        ("performer_count", "performers", str),
        ("duration_ms", "took", lambda v: f"{v:.0f}ms"),
    )

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tags = " ".join(
            f"{label}={fmt(value)}"
            for attr, label, fmt in self.TAGS
            if (value := getattr(record, attr, None)) is not None
        )
        line = f"{color}{stamp} {record.levelname:<5}{self.RESET} {record.name}: {record.getMessage()}"
        if tags:
            line += f"  {tags}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _pick_formatter(is_prod: bool) -> logging.Formatter:
    fmt = os.getenv("LOG_FORMAT", "json" if is_prod else "readable").lower()
    return JSONFormatter() if fmt == "json" else ReadableFormatter()


def configure_logging(app):
    """Install one stderr handler on the root logger for this app.

    The root handlers are replaced, not appended to, so calling
    ``create_app()`` repeatedly (tests, CLI) never duplicates output.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_pick_formatter(is_prod))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured (level=%s, formatter=%s)",
                        level_name, type(handler.formatter).__name__)

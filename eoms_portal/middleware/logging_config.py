"""
Structured logging configuration.

Production writes one JSON object per record; development and tests use a
single readable line. Every record emitted inside a request is stamped with
the request id and the acting viewer, so an engine write such as a
carry-over can be traced back to the unit and campus it was made for.

LOG_LEVEL overrides the default level (INFO in production, DEBUG otherwise).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Stamped from the request by RequestContextFilter
VIEWER_FIELDS = ("request_id", "user_id", "role", "unit_id", "campus_id")

# Supplied as ``extra`` by the timing middleware
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")


class RequestContextFilter(logging.Filter):
    """Copy request id and viewer identity from ``g`` onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        viewer = getattr(g, "viewer", None)
        values = {
            "request_id": getattr(g, "request_id", None),
            "user_id": getattr(viewer, "user_id", None),
            "role": getattr(viewer, "role", None),
            "unit_id": getattr(viewer, "unit_id", None),
            "campus_id": getattr(viewer, "campus_id", None),
        }
        for key, value in values.items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production / log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in VIEWER_FIELDS + REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    """``12:00:01 INFO     [req-id user@unit] logger: message``"""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%H:%M:%S")
        request_id = getattr(record, "request_id", None)
        who = ""
        if request_id:
            user = getattr(record, "user_id", None) or "-"
            unit = getattr(record, "unit_id", None) or "-"
            who = f" [{request_id} {user}@{unit}]"
        line = f"{ts} {record.levelname:<8}{who} {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install a single stderr handler on the root logger.

    Existing root handlers are replaced, so building several apps in one
    process (the test suite) never duplicates output.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if is_prod else "readable")

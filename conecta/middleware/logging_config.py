"""
Logging setup for Conecta Tool.

Development and testing write one readable line per record; production
writes JSON lines.  ``LOG_LEVEL`` overrides the level.

Request timing and the services pass their ids through ``extra=``; both
formatters pick up the keys in ``CONTEXT_KEYS`` so a status move or a
quotation save can be traced back to its project / request.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

REQUEST_KEYS = ("request_id", "method", "path", "status", "duration_ms")
SCOPE_KEYS = (
    "project_id",
    "category_id",
    "activity_id",
    "project_request_id",
    "quotation_id",
)
EVENT_KEYS = ("event_type", "actor", "count")
CONTEXT_KEYS = REQUEST_KEYS + SCOPE_KEYS + EVENT_KEYS


def record_context(record: logging.LogRecord, keys=CONTEXT_KEYS) -> dict:
    return {key: getattr(record, key) for key in keys if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [project_id=7 activity_id=12]``"""

    COLORS = {"WARNING": "\033[33m", "ERROR": "\033[31m", "CRITICAL": "\033[35m"}
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        if self.color and record.levelname in self.COLORS:
            level = f"{self.COLORS[record.levelname]}{level}{self.RESET}"
        line = f"{ts} {level} {record.name}: {record.getMessage()}"

        scope = record_context(record, SCOPE_KEYS)
        if scope:
            line += " [" + " ".join(f"{k}={v}" for k, v in scope.items()) + "]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install one stderr handler on the root logger for this app."""
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter(color=not is_testing))

    # Repeated create_app() calls must not stack handlers
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    app.logger.setLevel(level)

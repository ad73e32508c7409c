"""Centralized logging configuration.

Two concerns specific to a key-rotating proxy:
  - any ``key=<secret>`` that reaches a log line is redacted by RedactKeysFilter
  - dispatch context passed via ``extra=`` (request_id, credential_index,
    attempts, outcome_kind) becomes top-level fields in JSON output
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone

from app.core.config import settings

# key=<secret> as a URL parameter (?key=, &key=) or as a bare query string
# such as Sentry's "http.query" span data
KEY_PARAM_RE = re.compile(r"((?:^|[?&\s\"'])key=)[^&\s\"']+")

CONTEXT_FIELDS = ("request_id", "credential_index", "attempts", "outcome_kind")


def redact_api_keys(text: str) -> str:
    return KEY_PARAM_RE.sub(r"\1[redacted]", text)


class RedactKeysFilter(logging.Filter):
    """Rewrite the rendered message so query-string API keys never hit the output."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_api_keys(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_data["exception"] = redact_api_keys(self.formatException(record.exc_info))
        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)
        return json.dumps(log_data, ensure_ascii=False)


def setup_logging() -> None:
    """Configure logging for the entire application."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(RedactKeysFilter())

    if settings.log_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root.addHandler(handler)

    # httpx logs full request URLs at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING if not settings.app_debug else level)

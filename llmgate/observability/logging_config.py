"""
Logging setup for llmgate.

Library modules log event names (`dispatch_chat`, `cache_read_failed`,
...) with the dispatch fields passed through `extra`. Every dispatch
runs inside a request scope, so all records emitted while a call is
being routed carry the same request_id, including nested calls made by
the configuration resolver through the adapters.

configure_logging() attaches one handler to the `llmgate` logger:
JSON lines when LLMGATE_ENV=production, colored text otherwise.

Usage:
    from llmgate.observability.logging_config import configure_logging, request_scope

    configure_logging()

    with request_scope("req-42"):
        manager.chat(messages)   # dispatch logs carry request_id=req-42
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import IO, Any, Iterator, Optional

LIBRARY_LOGGER = "llmgate"

# Fields llmgate modules put in `extra`, in display order
DISPATCH_FIELDS = (
    "request_id", "operation", "provider", "configuration", "model",
    "adapter_type", "tag", "key", "error",
)

QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic")

_local = threading.local()


# ---------------------------------------------------------------------------
# Request scope
# ---------------------------------------------------------------------------

def current_request_id() -> Optional[str]:
    return getattr(_local, "request_id", None)


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a request id to the current thread for the duration of a call.

    An explicit id always wins. Without one, an enclosing scope's id is
    reused, otherwise a fresh short id is generated. The previous id is
    restored on exit.
    """
    previous = current_request_id()
    active = request_id or previous or uuid.uuid4().hex[:12]
    _local.request_id = active
    try:
        yield active
    finally:
        _local.request_id = previous


class RequestIdFilter(logging.Filter):
    """Stamps the active request id onto records that lack one."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = current_request_id()
        if request_id and not hasattr(record, "request_id"):
            record.request_id = request_id  # type: ignore[attr-defined]
        return True


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

# Any attribute not in a bare LogRecord came from `extra`
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed via `extra`, dispatch fields first."""
    extras = {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }
    ordered = {key: extras.pop(key) for key in DISPATCH_FIELDS if key in extras}
    ordered.update(extras)
    return ordered


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line:

        {"timestamp": "...", "level": "DEBUG", "logger": "llmgate.manager",
         "message": "dispatch_chat", "request_id": "3f2a...", "provider": "openai"}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in extra_fields(record).items():
            entry[key] = _jsonable(value)
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class DevFormatter(logging.Formatter):
    """`[HH:MM:SS] LEVEL logger: message [provider=... model=...]`"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        fields = extra_fields(record)
        inline = " ".join(
            f"{key}={fields[key]}"
            for key in DISPATCH_FIELDS
            if fields.get(key) is not None
        )
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        line = (
            f"[{self.formatTime(record, '%H:%M:%S')}] "
            f"{color}{record.levelname:<8}{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )
        if inline:
            line += f" [{inline}]"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def configure_logging(
    env: Optional[str] = None,
    level: int = logging.INFO,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """
    Attach a single formatted handler to the `llmgate` logger.

    Args:
        env: "production" selects JSON on stdout; anything else colored
             text on stderr. Defaults to LLMGATE_ENV, then "development".
        level: Level for the llmgate logger.
        stream: Write here instead of stdout/stderr.

    Calling it again replaces the handler it installed before. Handlers
    added by the application are left alone.
    """
    env = (env or os.environ.get("LLMGATE_ENV") or "development").lower().strip()
    production = env == "production"

    handler = logging.StreamHandler(stream or (sys.stdout if production else sys.stderr))
    handler.setFormatter(JSONFormatter() if production else DevFormatter())
    handler.addFilter(RequestIdFilter())
    handler.set_name("llmgate")

    library_logger = logging.getLogger(LIBRARY_LOGGER)
    for existing in library_logger.handlers[:]:
        if existing.get_name() == "llmgate":
            library_logger.removeHandler(existing)
    library_logger.addHandler(handler)
    library_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler

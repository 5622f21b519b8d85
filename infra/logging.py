"""
Centralized Logging
-------------------
Structured logging with request_id propagation for request traceability.

Design:
- Every API call gets a unique request_id
- request_id propagates through: client -> rate limiter -> token gate
- Console output through Rich, file output as JSON lines
- Severity discipline: DEBUG=wire detail, INFO=state, WARNING=recoverable, ERROR=failed call

Usage:
    from infra.logging import get_logger, RequestContext

    logger = get_logger("api.client")

    with RequestContext() as request_id:
        logger.info("Fetching orders")
"""

import contextvars
import json
import logging
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "grocer"

# Characters of a token that may appear in debug output
TOKEN_PREFIX_CHARS = 10

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return _request_id_var.get()


class RequestContext:
    """
    Context manager scoping logs to one API call.

    Usage:
        with RequestContext() as request_id:
            logger.info("Processing...")
    """

    def __init__(self, request_id: Optional[str] = None):
        self._request_id = request_id or generate_request_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _request_id_var.set(self._request_id)
        return self._request_id

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _request_id_var.reset(self._token)


class RequestIdFilter(logging.Filter):
    """Logging filter that adds request_id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured file logging."""

    EXTRA_FIELDS = ("method", "url", "status_code", "duration_ms", "http_code", "attempt")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry)


def redact_token(token: Optional[str]) -> str:
    """Show only a short prefix of a secret."""
    if not token:
        return "<none>"
    return f"{token[:TOKEN_PREFIX_CHARS]}..."


def redact_authorization(value: str) -> str:
    """Redact the credential part of an Authorization header value."""
    scheme, _, credential = value.partition(" ")
    if not credential:
        return redact_token(scheme)
    return f"{scheme} {redact_token(credential)}"


def truncate(text: Optional[str], limit: int = 500) -> str:
    if text is None:
        return ""
    return text if len(text) <= limit else f"{text[:limit]}..."


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    console: Optional[Console] = None,
    file: bool = False,
) -> logging.Logger:
    """
    Configure the grocer logger tree.

    Args:
        level: Console logging level (default INFO)
        log_dir: Directory for the JSON log file (default: ./logs)
        console: Rich console to write to (default: stderr)
        file: Enable file output
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG if file else level)
    root_logger.handlers.clear()

    request_filter = RequestIdFilter()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
    )
    console_handler.setLevel(level)
    console_handler.addFilter(request_filter)
    root_logger.addHandler(console_handler)

    if file:
        log_path = Path(log_dir) if log_dir else Path("logs")
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path / "grocer.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # File gets everything
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(request_filter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger in the grocer namespace.

    Args:
        name: Logger name (prefixed with 'grocer.' if not already)
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)

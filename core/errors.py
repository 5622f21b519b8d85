"""
Error Handling Module
---------------------
Typed API errors with classification and user-facing messages.

Every failure of a typed endpoint surfaces as an ApiError (or subclass).
The category decides whether the failure is transient:
- VALIDATION, AUTH, CLIENT, DECODE: permanent, never retried
- SERVER, TRANSPORT: transient, retried for idempotent calls only
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Dict, List, Optional
import logging


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""
    VALIDATION = auto()  # Local input check failed, nothing sent
    AUTH = auto()        # 401/403, stored token already cleared
    CLIENT = auto()      # Other 4xx
    SERVER = auto()      # 5xx
    TRANSPORT = auto()   # Connection failure, timeout
    DECODE = auto()      # Body missing or not the expected shape


TRANSIENT_CATEGORIES = frozenset({ErrorCategory.SERVER, ErrorCategory.TRANSPORT})


class ApiError(Exception):
    """
    Unified error raised by typed endpoints.

    Carries a human-readable message and the HTTP status code when one
    was received.
    """

    category: ErrorCategory = ErrorCategory.CLIENT

    def __init__(self, message: str, http_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.http_code = http_code

    @property
    def retryable(self) -> bool:
        return self.category in TRANSIENT_CATEGORIES

    def __repr__(self) -> str:
        code = f", http_code={self.http_code}" if self.http_code is not None else ""
        return f"{type(self).__name__}({self.message!r}{code})"


class ValidationError(ApiError):
    """Input rejected before any network call."""
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, field_name: str = ""):
        super().__init__(message, http_code=400)
        self.field_name = field_name


class AuthError(ApiError):
    category = ErrorCategory.AUTH


class ClientError(ApiError):
    category = ErrorCategory.CLIENT


class ServerError(ApiError):
    category = ErrorCategory.SERVER


class TransportError(ApiError):
    category = ErrorCategory.TRANSPORT


class DecodeError(ApiError):
    category = ErrorCategory.DECODE


class PaginationError(ApiError):
    """Server kept reporting further pages past the configured limit."""
    category = ErrorCategory.DECODE


AUTH_STATUS_CODES = frozenset({401, 403})


def error_for_status(status_code: int, message: str) -> ApiError:
    """Build the ApiError subclass matching an HTTP status code."""
    if status_code in AUTH_STATUS_CODES:
        return AuthError(message, status_code)
    if 500 <= status_code <= 599:
        return ServerError(message, status_code)
    return ClientError(message, status_code)


def is_transient(error: BaseException) -> bool:
    """Check whether a failure may succeed when repeated."""
    return isinstance(error, ApiError) and error.retryable


@dataclass
class ErrorRecord:
    """An observed error kept in the handler history."""
    category: ErrorCategory
    message: str
    http_code: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)


class ErrorHandler:
    """
    Central error handler with logging and user-facing messages.
    """

    LOG_LEVELS: Dict[ErrorCategory, int] = {
        ErrorCategory.VALIDATION: logging.INFO,
        ErrorCategory.AUTH: logging.WARNING,
        ErrorCategory.CLIENT: logging.WARNING,
        ErrorCategory.DECODE: logging.ERROR,
        ErrorCategory.SERVER: logging.ERROR,
        ErrorCategory.TRANSPORT: logging.ERROR,
    }

    def __init__(self, max_history: int = 100):
        self._logger = logging.getLogger("grocer.errors")
        self._error_history: List[ErrorRecord] = []
        self._max_history = max_history

    def handle(self, error: ApiError) -> str:
        """
        Record an error and return the message to show the user.
        """
        level = self.LOG_LEVELS.get(error.category, logging.ERROR)
        self._logger.log(
            level,
            f"{error.category.name}: {error.message}",
            extra={"http_code": error.http_code},
        )

        self._error_history.append(
            ErrorRecord(error.category, error.message, error.http_code)
        )
        if len(self._error_history) > self._max_history:
            self._error_history.pop(0)

        return user_message(error)

    def get_error_stats(self) -> Dict[str, int]:
        """Get error counts per category."""
        stats: Dict[str, int] = {}
        for record in self._error_history:
            key = record.category.name
            stats[key] = stats.get(key, 0) + 1
        return stats

    def clear_history(self) -> None:
        self._error_history.clear()


def user_message(error: ApiError) -> str:
    """Generate a user-friendly message for an error."""
    if error.category is ErrorCategory.AUTH:
        return "Your session has expired. Please re-enter your token."
    if error.category is ErrorCategory.TRANSPORT:
        return "Network error. Please check your connection and try again."
    if error.category is ErrorCategory.SERVER:
        return f"Server error ({error.http_code}). Please try again later."
    if error.category is ErrorCategory.VALIDATION:
        return f"Invalid request: {error.message}"
    if error.http_code == 404:
        return f"Resource not found: {error.message}"
    return error.message

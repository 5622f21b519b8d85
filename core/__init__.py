# Core module - Error taxonomy and retry policy
# Shared by every API call; no network code lives here

from .errors import (
    ApiError, AuthError, ClientError, DecodeError, ErrorCategory, ErrorHandler,
    PaginationError, ServerError, TransportError, ValidationError,
)
from .retry import RetryPolicy

__all__ = [
    "ApiError", "AuthError", "ClientError", "DecodeError", "ErrorCategory",
    "ErrorHandler", "PaginationError", "ServerError", "TransportError",
    "ValidationError",
    "RetryPolicy",
]

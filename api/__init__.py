# API module - Request dispatch layer for the shop API
# Validation, rate limiting and token handling in front of every call

from .client import ApiClient
from .debug import (
    ENDPOINTS, EndpointDefinition, HttpMethod, RequestDescriptor, ResponseEnvelope,
    find_endpoint,
)
from .pagination import PaginationWalker
from .rate_limiter import RateLimitConfig, RateLimiter
from .token_gate import TokenGate
from .validation import Invalid, RecommendationType, Valid, Validator, ensure_valid

__all__ = [
    "ApiClient",
    "ENDPOINTS", "EndpointDefinition", "HttpMethod", "RequestDescriptor",
    "ResponseEnvelope", "find_endpoint",
    "PaginationWalker",
    "RateLimitConfig", "RateLimiter",
    "TokenGate",
    "Invalid", "RecommendationType", "Valid", "Validator", "ensure_valid",
]

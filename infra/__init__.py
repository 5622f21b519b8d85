# Infrastructure module - Configuration, credentials and logging

from .config import ApiConfig, ConfigManager, load_config
from .credentials import CredentialStore, InMemoryCredentialStore, extract_customer_id
from .logging import (
    RequestContext, configure_logging, get_logger, get_request_id, redact_token,
)

__all__ = [
    # Config
    "ApiConfig",
    "ConfigManager",
    "load_config",
    # Credentials
    "CredentialStore",
    "InMemoryCredentialStore",
    "extract_customer_id",
    # Logging
    "RequestContext",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "redact_token",
]

"""
Credential Store
----------------
Access to the bearer token the API client authenticates with.

The real store (encrypted on-device storage, keychain, ...) lives outside
this package. The client only needs get / clear; saving happens in the
login or token-entry flow.

Rules:
- Token values are never logged
- Clearing is idempotent
"""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
import base64
import binascii
import json
import logging
import os
import threading


@runtime_checkable
class CredentialStore(Protocol):
    """Opaque storage for the bearer token and its customer."""

    customer_id: Optional[str]

    def get_token(self) -> Optional[str]: ...

    def save_token(self, token: str) -> None: ...

    def clear_token(self) -> None: ...

    def has_token(self) -> bool: ...


class InMemoryCredentialStore:
    """
    Thread-safe in-process credential store.

    Used by the CLI and tests; counts clears so callers can observe the
    effect of an auth failure.
    """

    TOKEN_ENV = "GROCER_TOKEN"
    CUSTOMER_ENV = "GROCER_CUSTOMER_ID"

    def __init__(self, token: Optional[str] = None, customer_id: Optional[str] = None):
        self._lock = threading.Lock()
        self._token = token
        self._stored_at: Optional[datetime] = datetime.now() if token else None
        self.customer_id = customer_id
        self.clear_count = 0
        self._logger = logging.getLogger("grocer.infra.credentials")

    @classmethod
    def from_environment(cls) -> "InMemoryCredentialStore":
        """Seed the store from GROCER_TOKEN / GROCER_CUSTOMER_ID."""
        token = os.getenv(cls.TOKEN_ENV)
        customer_id = os.getenv(cls.CUSTOMER_ENV)
        if token and not customer_id:
            customer_id = extract_customer_id(token)
        return cls(token=token, customer_id=customer_id)

    def get_token(self) -> Optional[str]:
        with self._lock:
            return self._token

    def save_token(self, token: str) -> None:
        with self._lock:
            self._token = token
            self._stored_at = datetime.now()
        self._logger.info("Token saved")

    def clear_token(self) -> None:
        with self._lock:
            had_token = self._token is not None
            self._token = None
            self._stored_at = None
            self.clear_count += 1
        if had_token:
            self._logger.warning("Stored token cleared")

    def has_token(self) -> bool:
        return self.get_token() is not None

    @property
    def stored_at(self) -> Optional[datetime]:
        with self._lock:
            return self._stored_at


def extract_customer_id(token: str) -> Optional[str]:
    """
    Read the `customer_uuid` claim from a JWT payload.

    The signature is not verified. Returns None for anything that is not a
    three-part token with a JSON payload.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None

    payload = parts[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    if not isinstance(claims, dict):
        return None
    customer_id = claims.get("customer_uuid")
    return str(customer_id) if customer_id is not None else None

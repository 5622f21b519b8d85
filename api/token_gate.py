"""
Token Gate
----------
httpx auth flow that adds the stored bearer token to outgoing requests and
clears the store when the server rejects it.

The flow runs attach -> send -> observe inside httpx, so by the time the
client sees a 401/403 response the stored token is already gone.
"""

from typing import Generator, Optional, Tuple
import logging

import httpx

from core.errors import AUTH_STATUS_CODES
from infra.credentials import CredentialStore
from infra.logging import redact_token

AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "


class TokenGate(httpx.Auth):
    """
    Bearer authentication backed by an external credential store.

    Rules:
    - Token read fresh for every request
    - Raw token never logged; a short prefix only with debug_logging on
    - With base_url set, the token is only sent to that scheme, host and port
    """

    def __init__(
        self,
        store: CredentialStore,
        debug_logging: bool = False,
        base_url: Optional[str] = None,
    ):
        self._store = store
        self._origin = _origin(httpx.URL(base_url)) if base_url else None
        self._debug_logging = debug_logging
        self._logger = logging.getLogger("grocer.api.token_gate")

    @property
    def store(self) -> CredentialStore:
        return self._store

    def attach(self, request: httpx.Request) -> httpx.Request:
        """Add the Authorization header when a token is stored."""
        token = self._store.get_token()
        if token is None:
            return request
        if self._origin is not None and _origin(request.url) != self._origin:
            self._logger.warning(f"Not attaching token to foreign host {request.url.host}")
            return request

        request.headers[AUTHORIZATION_HEADER] = f"{BEARER_PREFIX}{token}"
        if self._debug_logging:
            self._logger.debug(f"Attached token {redact_token(token)}")
        return request

    def observe(self, response: httpx.Response) -> bool:
        """
        Clear the stored token when the response rejects it.

        Returns True if the store was cleared. A response is acted on once;
        observing it again is a no-op.
        """
        if response.status_code not in AUTH_STATUS_CODES:
            return False
        if response.extensions.get("token_cleared"):
            return False

        response.extensions["token_cleared"] = True
        self._store.clear_token()
        self._logger.warning(
            f"Server rejected credentials ({response.status_code}); stored token cleared"
        )
        return True

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        response = yield self.attach(request)
        self.observe(response)


def bearer_token(request: httpx.Request) -> Optional[str]:
    """Token carried by a request, if any."""
    value = request.headers.get(AUTHORIZATION_HEADER)
    if value is None or not value.startswith(BEARER_PREFIX):
        return None
    return value[len(BEARER_PREFIX):]


def _origin(url: httpx.URL) -> Tuple[str, str, Optional[int]]:
    return url.scheme, url.host, url.port

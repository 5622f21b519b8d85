"""
API Client
----------
Rate-limited, authenticated access to the shop API.

Every typed call runs the same pipeline:
    validate input -> rate limiter slot -> token attached -> HTTP call
    -> token cleared on 401/403 -> typed result or ApiError

Rules:
- Invalid input fails with ValidationError before any slot is taken
- GET calls are retried on transient failures, PUT calls never are
- execute_debug() never raises; failures come back as a ResponseEnvelope
"""

from typing import List, Mapping, Optional, Type, TypeVar, Union
import logging
import time

import httpx
from pydantic import ValidationError as SchemaError

from core.errors import (
    AuthError, DecodeError, TransportError, ValidationError, error_for_status,
)
from core.retry import RetryPolicy
from infra.config import ApiConfig
from infra.credentials import CredentialStore, InMemoryCredentialStore
from infra.logging import RequestContext, redact_authorization, truncate

from .debug import HttpMethod, QueryParams, RequestDescriptor, ResponseEnvelope
from .models import (
    ApiModel, Cart, CartUpdate, CustomerInfo, Order, OrderLinesPage, OrderPage,
    RecommendationsPage, SetWarehouseRequest, SetWarehouseResult,
)
from .pagination import PaginationWalker
from .rate_limiter import RateLimitConfig, RateLimiter
from .token_gate import AUTHORIZATION_HEADER, TokenGate
from .validation import RecommendationType, Validator, ensure_valid

M = TypeVar("M", bound=ApiModel)

JSON_CONTENT_TYPE = "application/json"


class ApiClient:
    """
    Request executor for the shop API.

    Collaborators are injected so tests can swap any of them; the defaults
    are built from ApiConfig.
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        credential_store: Optional[CredentialStore] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        validator: Optional[Validator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        walker: Optional[PaginationWalker] = None,
    ):
        self.config = config or ApiConfig()
        self._logger = logging.getLogger("grocer.api.client")

        self._store = credential_store or InMemoryCredentialStore()
        self._rate_limiter = rate_limiter or RateLimiter(RateLimitConfig(
            max_requests=self.config.rate_limit_requests,
            window_seconds=self.config.rate_limit_window,
        ))
        self._retry = retry_policy or RetryPolicy(
            max_attempts=self.config.retry_max_attempts,
            base_delay=self.config.retry_base_delay,
            max_delay=self.config.retry_max_delay,
        )
        self._validator = validator or Validator()
        self._walker = walker or PaginationWalker()
        self._token_gate = TokenGate(
            self._store,
            debug_logging=self.config.debug_logging,
            base_url=self.config.base_url,
        )

        self._http = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout(),
            transport=transport,
            auth=self._token_gate,
            headers={
                "Accept": JSON_CONTENT_TYPE,
                "User-Agent": self.config.user_agent,
            },
        )

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def token_gate(self) -> TokenGate:
        return self._token_gate

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    # Customer

    async def get_customer_info(self, customer_id: str) -> CustomerInfo:
        """
        Get customer information.

        Also the token check: success means the stored token is valid.

        Endpoint: GET customers/{customer_id}/
        """
        ensure_valid(self._validator.customer_id(customer_id), "customer_id")
        descriptor = RequestDescriptor.build(HttpMethod.GET, f"customers/{customer_id}/")
        return await self._get(descriptor, CustomerInfo, "Failed to get customer info")

    async def validate_token(self, customer_id: str) -> bool:
        """
        Check the stored token against the API.

        Returns False on 401/403 (the token has been cleared by then).
        Any other failure is raised, not treated as an invalid token.
        """
        try:
            await self.get_customer_info(customer_id)
        except AuthError:
            return False
        return True

    # Orders

    async def get_order_page(self, customer_id: str, page: int = 1) -> OrderPage:
        """
        Get one page of the order history.

        Endpoint: GET customers/{customer_id}/orders/?page={page}
        """
        ensure_valid(self._validator.customer_id(customer_id), "customer_id")
        if page < 1:
            raise ValidationError(
                f"Validation failed for page: page must be at least 1, got {page}",
                field_name="page",
            )
        return await self._fetch_order_page(customer_id, page)

    async def _fetch_order_page(self, customer_id: str, page: int) -> OrderPage:
        descriptor = RequestDescriptor.build(
            HttpMethod.GET, f"customers/{customer_id}/orders/", [("page", str(page))]
        )
        return await self._get(descriptor, OrderPage, f"Failed to fetch orders page {page}")

    async def get_all_orders(self, customer_id: str) -> List[Order]:
        """
        Get every order from every page, in server order.

        The customer ID is validated once; every page is rate limited.
        """
        ensure_valid(self._validator.customer_id(customer_id), "customer_id")
        return await self._walker.walk(
            lambda page: self._fetch_order_page(customer_id, page)
        )

    async def get_order_lines(self, customer_id: str, order_id: str) -> OrderLinesPage:
        """
        Get the prepared product lines of one order.

        Endpoint: GET customers/{customer_id}/orders/{order_id}/lines/prepared/
        """
        ensure_valid(self._validator.customer_id(customer_id), "customer_id")
        ensure_valid(self._validator.order_id(order_id), "order_id")
        descriptor = RequestDescriptor.build(
            HttpMethod.GET, f"customers/{customer_id}/orders/{order_id}/lines/prepared/"
        )
        return await self._get(
            descriptor, OrderLinesPage, f"Failed to fetch order lines for order {order_id}"
        )

    # Cart

    async def get_cart(self, customer_id: str) -> Cart:
        """Endpoint: GET customers/{customer_id}/cart/"""
        ensure_valid(self._validator.customer_id(customer_id), "customer_id")
        descriptor = RequestDescriptor.build(HttpMethod.GET, f"customers/{customer_id}/cart/")
        return await self._get(descriptor, Cart, "Failed to fetch cart")

    async def update_cart(self, customer_id: str, cart: CartUpdate) -> Cart:
        """
        Replace the cart contents.

        cart.version must match the server's current version. Sending no
        lines clears the cart. Not retried automatically.

        Endpoint: PUT customers/{customer_id}/cart/
        """
        ensure_valid(self._validator.customer_id(customer_id), "customer_id")
        descriptor = RequestDescriptor.build(
            HttpMethod.PUT, f"customers/{customer_id}/cart/", body=cart.model_dump_json()
        )
        return await self._execute(descriptor, Cart, "Failed to update cart")

    async def clear_cart(self, customer_id: str, cart: Cart) -> Cart:
        """Empty the cart at its current version."""
        return await self.update_cart(
            customer_id, CartUpdate(id=cart.id, version=cart.version, lines=[])
        )

    # Recommendations

    async def get_recommendations(
        self,
        customer_id: str,
        rec_type: Union[str, RecommendationType] = RecommendationType.PRECISION,
    ) -> RecommendationsPage:
        """
        Get personalized recommendations.

        Endpoint: GET customers/{customer_id}/recommendations/myregulars/{type}/
        """
        ensure_valid(self._validator.customer_id(customer_id), "customer_id")
        ensure_valid(self._validator.recommendation_type(rec_type), "recommendation_type")
        kind = RecommendationType(rec_type).value
        descriptor = RequestDescriptor.build(
            HttpMethod.GET, f"customers/{customer_id}/recommendations/myregulars/{kind}/"
        )
        return await self._get(descriptor, RecommendationsPage, "Failed to fetch recommendations")

    # Warehouse

    async def set_warehouse(self, postal_code: str) -> SetWarehouseResult:
        """
        Switch the active warehouse by postal code. Not retried automatically.

        Endpoint: PUT postal-codes/actions/change-pc/
        """
        ensure_valid(self._validator.postal_code(postal_code), "postal_code")
        body = SetWarehouseRequest(new_postal_code=postal_code).model_dump_json()
        descriptor = RequestDescriptor.build(
            HttpMethod.PUT, "postal-codes/actions/change-pc/", body=body
        )
        return await self._execute(descriptor, SetWarehouseResult, "Failed to set warehouse")

    # Debug

    async def execute_debug(
        self,
        method: Union[str, HttpMethod],
        path: str,
        query_params: QueryParams = None,
        body: Optional[str] = None,
        path_params: Optional[Mapping[str, str]] = None,
    ) -> ResponseEnvelope:
        """
        Send an arbitrary request and describe what happened.

        Never raises (task cancellation excepted): a request that produced
        no response yields status_code -1 with the error message.
        """
        start = time.monotonic()
        try:
            descriptor = RequestDescriptor.build(method, path, query_params, body, path_params)
            await self._rate_limiter.acquire()
            start = time.monotonic()
            with RequestContext():
                response = await self._send(descriptor)
        except Exception as e:
            duration_ms = int((time.monotonic() - start) * 1000)
            self._logger.warning(f"Debug request failed: {e}")
            return ResponseEnvelope(
                status_code=-1,
                status_message="Error",
                body=None,
                duration_ms=duration_ms,
                error=str(e) or type(e).__name__,
            )

        duration_ms = int((time.monotonic() - start) * 1000)
        return ResponseEnvelope(
            status_code=response.status_code,
            status_message=response.reason_phrase,
            headers=response.headers,
            body=response.text,
            duration_ms=duration_ms,
            url=str(response.request.url),
            request_headers=_redacted_headers(response.request.headers),
        )

    # Pipeline

    async def _get(self, descriptor: RequestDescriptor, model: Type[M], context: str) -> M:
        return await self._retry.run(
            lambda: self._execute(descriptor, model, context), description=context
        )

    async def _execute(self, descriptor: RequestDescriptor, model: Type[M], context: str) -> M:
        await self._rate_limiter.acquire()
        with RequestContext():
            try:
                response = await self._send(descriptor)
            except httpx.RequestError as e:
                raise TransportError(f"{context}: {str(e) or type(e).__name__}") from e
            return self._handle_response(response, model, context)

    async def _send(self, descriptor: RequestDescriptor) -> httpx.Response:
        headers = {"Content-Type": JSON_CONTENT_TYPE} if descriptor.body is not None else None
        request = self._http.build_request(
            descriptor.method.value,
            descriptor.path,
            params=list(descriptor.query) or None,
            content=descriptor.content(),
            headers=headers,
        )
        self._log_request(request, descriptor.body)

        start = time.monotonic()
        response = await self._http.send(request)
        self._logger.debug(
            f"Response: {response.status_code} {response.reason_phrase}",
            extra={
                "status_code": response.status_code,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return response

    def _handle_response(self, response: httpx.Response, model: Type[M], context: str) -> M:
        """Map a response to the typed model or raise the matching ApiError."""
        code = response.status_code
        if not response.is_success:
            error = error_for_status(
                code, f"{context}: {code} {response.reason_phrase}. {response.text}"
            )
            self._logger.warning(f"{context}: HTTP {code}", extra={"http_code": code})
            raise error

        if not response.content:
            raise DecodeError(f"{context}: empty response body", code)

        try:
            return model.model_validate_json(response.content)
        except SchemaError as e:
            raise DecodeError(
                f"{context}: unexpected response shape ({e.error_count()} error(s))", code
            ) from e

    def _log_request(self, request: httpx.Request, body: Optional[str]) -> None:
        self._logger.debug(
            f"Request: {request.method} {request.url}",
            extra={"method": request.method, "url": str(request.url)},
        )
        if self.config.debug_logging and body:
            self._logger.debug(f"  Body: {truncate(body)}")


def _redacted_headers(headers: httpx.Headers) -> dict:
    return {
        name: redact_authorization(value) if name.lower() == AUTHORIZATION_HEADER.lower() else value
        for name, value in headers.items()
    }

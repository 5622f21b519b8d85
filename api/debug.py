"""
Debug Request Types
-------------------
Schema-less request/response types for interactive API exploration,
plus the catalog of known endpoints used to prefill requests.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union
import re

import httpx


class HttpMethod(str, Enum):
    """HTTP methods the debug executor can send."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: Union[str, "HttpMethod"]) -> "HttpMethod":
        if isinstance(value, HttpMethod):
            return value
        try:
            return cls(value.strip().upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(f"Unsupported HTTP method {value!r} (expected one of: {allowed})")

    @property
    def sends_body(self) -> bool:
        """POST and PUT always carry a body, empty if none was given."""
        return self in (HttpMethod.POST, HttpMethod.PUT)


QueryParams = Union[Mapping[str, str], Sequence[Tuple[str, str]], None]

_PLACEHOLDER = re.compile(r"\{([A-Za-z0-9_]+)\}")


@dataclass(frozen=True)
class RequestDescriptor:
    """
    One outbound request: method, relative path, ordered query pairs and an
    optional serialized JSON body.
    """
    method: HttpMethod
    path: str
    query: Tuple[Tuple[str, str], ...] = ()
    body: Optional[str] = None

    @classmethod
    def build(
        cls,
        method: Union[str, HttpMethod],
        path: str,
        query_params: QueryParams = None,
        body: Optional[str] = None,
        path_params: Optional[Mapping[str, str]] = None,
    ) -> "RequestDescriptor":
        if path_params:
            path = fill_path(path, path_params)
        if query_params is None:
            query: Tuple[Tuple[str, str], ...] = ()
        elif isinstance(query_params, Mapping):
            query = tuple((str(k), str(v)) for k, v in query_params.items())
        else:
            query = tuple((str(k), str(v)) for k, v in query_params)
        return cls(HttpMethod.parse(method), relative_path(path), query, body)

    def content(self) -> Optional[bytes]:
        if self.body is None:
            return b"" if self.method.sends_body else None
        return self.body.encode("utf-8")


def relative_path(path: str) -> str:
    """
    Normalize a path to be resolved against the base URL.

    Absolute URLs and scheme-bearing paths are rejected so a request can
    never leave the configured host with the stored token attached.
    """
    path = path.lstrip("/")
    try:
        url = httpx.URL(path)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid path {path!r}: {e}") from e
    if url.scheme or url.host:
        raise ValueError(f"Path must be relative to the base URL, got {path!r}")
    return path


def fill_path(path: str, path_params: Mapping[str, str]) -> str:
    """Substitute {placeholders}; unknown placeholders are left in place."""
    return _PLACEHOLDER.sub(
        lambda m: str(path_params.get(m.group(1), m.group(0))), path
    )


@dataclass
class ResponseEnvelope:
    """
    Outcome of a debug request. Failures are data, never exceptions:
    a request that got no response has status_code -1 and error set.
    """
    status_code: int
    status_message: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Optional[str] = None
    duration_ms: int = 0
    error: Optional[str] = None
    url: Optional[str] = None
    request_headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300


@dataclass(frozen=True)
class EndpointDefinition:
    """A known API endpoint with {placeholders} for path parameters."""
    id: str
    name: str
    method: HttpMethod
    path: str
    description: str
    path_params: Tuple[str, ...] = ()
    query_params: Tuple[str, ...] = ()
    has_body: bool = False
    sample_body: Optional[str] = None

    def describe(
        self,
        path_params: Optional[Mapping[str, str]] = None,
        query_params: QueryParams = None,
        body: Optional[str] = None,
    ) -> RequestDescriptor:
        """Build a request for this endpoint, defaulting to the sample body."""
        missing = [p for p in self.path_params if not (path_params or {}).get(p)]
        if missing:
            raise ValueError(f"Missing path parameters for {self.id}: {', '.join(missing)}")
        if body is None and self.has_body:
            body = self.sample_body
        return RequestDescriptor.build(
            self.method, self.path, query_params, body, path_params
        )


ENDPOINTS: List[EndpointDefinition] = [
    EndpointDefinition(
        id="customer_info",
        name="Customer Info",
        method=HttpMethod.GET,
        path="customers/{customer_id}/",
        path_params=("customer_id",),
        description="Get customer information and validate token",
    ),
    EndpointDefinition(
        id="get_cart",
        name="Get Cart",
        method=HttpMethod.GET,
        path="customers/{customer_id}/cart/",
        path_params=("customer_id",),
        description="Get current shopping cart",
    ),
    EndpointDefinition(
        id="list_orders",
        name="List Orders",
        method=HttpMethod.GET,
        path="customers/{customer_id}/orders/",
        path_params=("customer_id",),
        query_params=("page",),
        description="Get paginated list of orders",
    ),
    EndpointDefinition(
        id="get_order",
        name="Get Order Details",
        method=HttpMethod.GET,
        path="customers/{customer_id}/orders/{order_id}/",
        path_params=("customer_id", "order_id"),
        description="Get details of a specific order",
    ),
    EndpointDefinition(
        id="order_lines",
        name="Order Lines (Prepared)",
        method=HttpMethod.GET,
        path="customers/{customer_id}/orders/{order_id}/lines/prepared/",
        path_params=("customer_id", "order_id"),
        description="Get the prepared product lines of an order",
    ),
    EndpointDefinition(
        id="get_recommendations_precision",
        name="Recommendations (Precision)",
        method=HttpMethod.GET,
        path="customers/{customer_id}/recommendations/myregulars/precision/",
        path_params=("customer_id",),
        description="Get product recommendations - What I most buy",
    ),
    EndpointDefinition(
        id="get_recommendations_recall",
        name="Recommendations (Recall)",
        method=HttpMethod.GET,
        path="customers/{customer_id}/recommendations/myregulars/recall/",
        path_params=("customer_id",),
        description="Get product recommendations - I also buy",
    ),
    EndpointDefinition(
        id="set_warehouse",
        name="Set Warehouse",
        method=HttpMethod.PUT,
        path="postal-codes/actions/change-pc/",
        has_body=True,
        description="Change warehouse by postal code",
        sample_body='{"new_postal_code": "28001"}',
    ),
    EndpointDefinition(
        id="update_cart",
        name="Update Cart",
        method=HttpMethod.PUT,
        path="customers/{customer_id}/cart/",
        path_params=("customer_id",),
        has_body=True,
        description="Update shopping cart with products",
        sample_body=(
            '{"id": "cart_id_here", "version": 1, '
            '"lines": [{"product_id": "12345", "quantity": 1, "sources": []}]}'
        ),
    ),
]


def find_endpoint(endpoint_id: str) -> Optional[EndpointDefinition]:
    """Find a catalog endpoint by its ID."""
    return next((e for e in ENDPOINTS if e.id == endpoint_id), None)

"""
API Models
----------
JSON shapes exchanged with the shop API.

Field names follow the wire format (snake_case). Nullable fields default to
None and are omitted again by `to_json()`, so a decoded document re-encodes
without gaining keys.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """Base for wire models; unknown keys from the server are ignored."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# Customer

class CustomerInfo(ApiModel):
    """Customer profile; fetching it doubles as the token check."""
    id: int
    uuid: str
    cart_id: Optional[str] = None
    current_postal_code: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    last_name: Optional[str] = None
    send_offers: bool = False


# Products (shared by cart, order lines and recommendations)

class ProductCategory(ApiModel):
    id: int
    name: str
    level: Optional[int] = None
    order: Optional[int] = None


class PriceInstructions(ApiModel):
    unit_price: Optional[str] = None
    bulk_price: Optional[str] = None
    reference_price: Optional[str] = None
    reference_format: Optional[str] = None
    unit_size: Optional[float] = None
    size_format: Optional[str] = None
    selling_method: Optional[int] = None
    iva: Optional[int] = None
    is_new: bool = False
    is_pack: bool = False
    price_decreased: bool = False
    unit_selector: bool = True
    bunch_selector: bool = False
    approx_size: bool = False
    min_bunch_amount: Optional[float] = None
    increment_bunch_amount: Optional[float] = None
    pack_size: Optional[int] = None
    total_units: Optional[int] = None
    unit_name: Optional[str] = None
    drained_weight: Optional[float] = None


class ProductBadges(ApiModel):
    is_water: bool = False
    requires_age_check: bool = False


class Product(ApiModel):
    id: str
    display_name: Optional[str] = None
    slug: Optional[str] = None
    thumbnail: Optional[str] = None
    packaging: Optional[str] = None
    published: bool = True
    limit: int = 999
    share_url: Optional[str] = None
    categories: Optional[List[ProductCategory]] = None
    price_instructions: Optional[PriceInstructions] = None
    badges: Optional[ProductBadges] = None
    status: Optional[str] = None
    unavailable_from: Optional[str] = None
    unavailable_weekdays: Optional[List[int]] = None


# Orders

class OrderAddress(ApiModel):
    id: int
    address: str
    address_detail: Optional[str] = None
    town: Optional[str] = None
    comments: Optional[str] = None
    entered_manually: bool = False
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    permanent_address: bool = False
    postal_code: Optional[str] = None


class DeliverySlot(ApiModel):
    id: str
    start: str
    end: str
    price: Optional[str] = None
    available: bool = True
    cutoff_time: Optional[str] = None
    timezone: Optional[str] = None


class PaymentMethod(ApiModel):
    id: int
    credit_card_type: Optional[int] = None
    credit_card_number: Optional[str] = None
    expires_month: Optional[str] = None
    expires_year: Optional[str] = None
    default_card: bool = False
    expiration_status: Optional[str] = None


class VolumeExtraCost(ApiModel):
    threshold: int
    cost_by_extra_liter: str
    total_extra_liters: float
    total: str


class OrderSummaryDetails(ApiModel):
    products: str
    slot: str
    slot_bonus: Optional[str] = None
    total: str
    taxes: Optional[str] = None
    tax_type: Optional[str] = None
    tax_base: Optional[str] = None
    volume_extra_cost: Optional[VolumeExtraCost] = None


class Order(ApiModel):
    """One entry of the paginated order list."""
    id: int
    order_id: int
    address: Optional[OrderAddress] = None
    changes_until: Optional[str] = None
    customer_phone: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    final_price: bool = False
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[int] = None
    phone_country_code: Optional[str] = None
    phone_national_number: Optional[str] = None
    price: Optional[str] = None
    products_count: Optional[int] = None
    slot: Optional[DeliverySlot] = None
    slot_size: Optional[int] = None
    status: Optional[int] = None
    status_ui: Optional[str] = None
    summary: Optional[OrderSummaryDetails] = None
    service_rating_token: Optional[str] = None
    click_and_collect: bool = False
    warehouse_code: Optional[str] = None
    last_edit_message: Optional[str] = None
    timezone: Optional[str] = None


class Page(ApiModel):
    """A page of results; next_page is None on the last page."""
    next_page: Optional[str] = None

    @property
    def has_next(self) -> bool:
        return self.next_page is not None


class OrderPage(Page):
    results: List[Order]


class PreparedOrderLine(ApiModel):
    """A product line of an order as it was prepared."""
    product_id: str
    ordered_quantity: Optional[float] = None
    prepared_quantity: Optional[float] = None
    preparation_result: Optional[str] = None
    total_prepared_price: Optional[str] = None
    product: Optional[Product] = None
    original_price_instructions: Optional[PriceInstructions] = None


class OrderLinesPage(Page):
    results: List[PreparedOrderLine]


# Cart

class CartLine(ApiModel):
    product: Product
    quantity: float
    sources: List[str] = Field(default_factory=list)
    version: Optional[int] = None


class CartSummary(ApiModel):
    total: str


class Cart(ApiModel):
    id: str
    version: int
    lines: List[CartLine] = Field(default_factory=list)
    open_order_id: Optional[int] = None
    products_count: int = 0
    summary: Optional[CartSummary] = None


class CartLineUpdate(ApiModel):
    product_id: str
    quantity: float
    sources: List[str] = Field(default_factory=list)


class CartUpdate(ApiModel):
    """
    Full replacement of the cart contents.

    `version` must equal the server's current cart version; an empty
    `lines` list clears the cart.
    """
    id: str
    version: int
    lines: List[CartLineUpdate] = Field(default_factory=list)


# Recommendations

class RecommendationItem(ApiModel):
    product: Product
    recommended_quantity: int
    selling_method: Optional[int] = None


class RecommendationsPage(Page):
    results: List[RecommendationItem]


# Warehouse

class SetWarehouseRequest(ApiModel):
    new_postal_code: str


class SetWarehouseResult(ApiModel):
    warehouse_changed: bool = False

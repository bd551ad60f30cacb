"""
Pydantic Schemas

Domain read models built from data store rows, plus request/response
schemas for the HTTP API.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dinein.models import OrderStatus


# =============================================================================
# MENU
# =============================================================================

class Category(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class ItemImage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    menu_item_id: str
    image_url: str
    is_primary: bool = False
    sort_order: int = 0


class MenuItem(BaseModel):
    """A dish as the storefront sees it, images ordered by sort_order."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    category_id: str
    name: str
    description: Optional[str] = None
    ingredients: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    offer_price: Optional[Decimal] = Field(None, ge=0)
    has_offer: bool = False
    is_active: bool = True
    is_featured: bool = False
    sort_order: int = 0
    images: List[ItemImage] = Field(default_factory=list)

    @property
    def primary_image_url(self) -> Optional[str]:
        """The image flagged primary, else the first image, else None."""
        if not self.images:
            return None
        for image in self.images:
            if image.is_primary:
                return image.image_url
        return self.images[0].image_url


class RestaurantSettings(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    restaurant_name: str
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    working_hours: Optional[str] = None
    facebook_url: Optional[str] = None
    instagram_url: Optional[str] = None
    tiktok_url: Optional[str] = None
    logo_url: Optional[str] = None
    cover_image_url: Optional[str] = None


# =============================================================================
# ORDERS
# =============================================================================

class OrderLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: str
    menu_item_id: str
    quantity: int = Field(..., ge=1)
    unit_price: Decimal
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    menu_item_name: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    table_number: Optional[int] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    status: OrderStatus
    total_amount: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderLine] = Field(default_factory=list)

    @property
    def lines_total(self) -> Decimal:
        return sum((line.subtotal for line in self.items), Decimal("0"))


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderLineIn(BaseModel):
    """Single cart line sent by the storefront."""
    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    notes: Optional[str] = Field(None, max_length=200)


class OrderCreate(BaseModel):
    """
    Request schema for submitting a cart.

    An empty `items` list passes schema validation and is rejected by the
    submission transaction as an empty cart.
    """
    items: List[OrderLineIn] = Field(default_factory=list)
    table_number: Optional[int] = Field(None, ge=1, examples=[4])
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("customer_name", "customer_phone", "notes")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None


class StatusUpdate(BaseModel):
    status: OrderStatus


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class MenuItemView(MenuItem):
    """Menu item with the storefront's computed pricing fields."""
    effective_price: Decimal
    discount_percent: Optional[int] = None
    primary_image: Optional[str] = None


class MenuResponse(BaseModel):
    settings: Optional[RestaurantSettings] = None
    categories: List[Category]
    items: List[MenuItemView]


class OrderCreateResponse(BaseModel):
    """Response after successfully creating an order."""
    success: bool
    message: str
    order_id: str
    total_amount: Decimal
    status: OrderStatus
    table_number: Optional[int] = None


class OrderListResponse(BaseModel):
    total: int
    orders: List[Order]


class QuickActionsResponse(BaseModel):
    order_id: str
    status: OrderStatus
    actions: List[OrderStatus]


class DashboardStats(BaseModel):
    categories: int
    items: int
    pending_orders: int
    today_orders: int
    recent_orders: List[Order]


class DailySales(BaseModel):
    date: str
    revenue: Decimal
    orders: int


class QuantityBucket(BaseModel):
    name: str
    count: int


class SalesReport(BaseModel):
    total_revenue: Decimal
    total_orders: int
    completed_orders: int
    completion_rate: int
    daily: List[DailySales]
    top_dishes: List[QuantityBucket]
    status_breakdown: Dict[str, int]
    categories: List[QuantityBucket]


class ExportResponse(BaseModel):
    queued: bool
    task_id: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    data_store: str
    change_feed: str
    timestamp: datetime

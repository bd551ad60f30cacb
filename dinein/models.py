"""
SQLAlchemy Database Models

Tables backing the SQL data store. Each table is one named collection:
categories, menu_items, item_images, orders, order_items, settings.

Identities are UUID strings generated by the application so that an
inserted row can be read back without RETURNING support.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Text,
    Enum,
    Boolean,
    ForeignKey,
)
from dinein.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<Category {self.name}>"


class MenuItem(Base):
    """
    A dish on the menu.

    `offer_price` only applies while `has_offer` is set; see
    dinein.services.pricing for how the charged price is resolved.
    """
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)

    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    ingredients = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    price = Column(Numeric(12, 2), nullable=False)
    offer_price = Column(Numeric(12, 2), nullable=True)
    has_offer = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_featured = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price}>"


class ItemImage(Base):
    __tablename__ = "item_images"

    id = Column(String(36), primary_key=True, default=_new_id)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)


class Order(Base):
    """
    Order header placed from a table.

    Created once as PENDING together with its order_items rows; afterwards
    only `status` and `updated_at` change.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_new_id)

    # =========================================================================
    # CUSTOMER INFORMATION (all optional)
    # =========================================================================
    table_number = Column(Integer, nullable=True)
    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # ORDER STATUS & PRICING
    # =========================================================================
    status = Column(
        Enum(OrderStatus, values_callable=lambda e: [m.value for m in e]),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    total_amount = Column(Numeric(12, 2), nullable=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<Order #{self.id} - table {self.table_number} - {self.status}>"


class OrderItem(Base):
    """One order line; `unit_price` is frozen at submission time."""
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)


class RestaurantSettings(Base):
    __tablename__ = "settings"

    id = Column(String(36), primary_key=True, default=_new_id)
    restaurant_name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    whatsapp = Column(String(30), nullable=True)
    working_hours = Column(String(255), nullable=True)
    facebook_url = Column(String(500), nullable=True)
    instagram_url = Column(String(500), nullable=True)
    tiktok_url = Column(String(500), nullable=True)
    logo_url = Column(String(500), nullable=True)
    cover_image_url = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

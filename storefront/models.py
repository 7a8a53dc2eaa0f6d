"""
SQLAlchemy Database Models

Tables behind the storefront and the admin console:
- Menu categories and items
- Weekly opening hours
- Daily deals and curated reviews
- Orders with their immutable line snapshots
- Single-row business settings
"""

import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class MenuCategory(Base):
    __tablename__ = "menu_categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    name_en = Column(String(100), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<MenuCategory {self.name}>"


class MenuItem(Base):
    """
    Dish or drink on the menu.

    Order lines copy name and price at checkout, so editing or deleting
    an item never rewrites order history.
    """
    __tablename__ = "menu_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id = Column(
        Uuid,
        ForeignKey("menu_categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    name = Column(String(100), nullable=False)
    name_en = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(500), nullable=True)

    is_available = Column(Boolean, nullable=False, default=True, index=True)
    is_popular = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price}>"


class OpeningHours(Base):
    """One row per weekday, Sunday = 0. A missing day means closed."""
    __tablename__ = "opening_hours"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    day_of_week = Column(SmallInteger, nullable=False, unique=True)
    open_time = Column(Time, nullable=True)
    close_time = Column(Time, nullable=True)
    is_closed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<OpeningHours day={self.day_of_week} {self.open_time}-{self.close_time}>"


class DailyDeal(Base):
    __tablename__ = "daily_deals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(150), nullable=False)
    title_en = Column(String(150), nullable=True)
    description = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)
    discount_percentage = Column(Integer, nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=True)
    menu_item_id = Column(
        Uuid,
        ForeignKey("menu_items.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    valid_from = Column(DateTime(timezone=True), server_default=func.now())
    valid_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class GoogleReview(Base):
    __tablename__ = "google_reviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    author_name = Column(String(100), nullable=False)
    rating = Column(SmallInteger, nullable=False, default=5)
    text = Column(Text, nullable=True)
    time_description = Column(String(100), nullable=True)
    is_visible = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class BusinessSettings(Base):
    __tablename__ = "business_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(150), nullable=False)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    tagline = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    google_reviews_url = Column(String(500), nullable=True)
    google_rating = Column(Numeric(2, 1), nullable=True)
    google_review_count = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Order(Base):
    """
    Customer order placed from the storefront cart.

    The total is fixed at submission time and never recomputed.
    """
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=False, index=True)
    customer_email = Column(String(255), nullable=True)
    pickup_time = Column(DateTime(timezone=True), nullable=True)
    special_instructions = Column(Text, nullable=True)

    # =========================================================================
    # PRICING & STATUS
    # =========================================================================
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="OrderItem.position",
    )

    @property
    def reference(self) -> str:
        """Short code shown to the customer on the confirmation screen."""
        return self.id.hex[:8].upper()

    def __repr__(self):
        return f"<Order #{self.reference} - {self.customer_name} - {self.status.value}>"


class OrderItem(Base):
    """Immutable snapshot of one purchased menu item."""
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Nullable so history survives deleting the menu item
    menu_item_id = Column(
        Uuid,
        ForeignKey("menu_items.id", ondelete="SET NULL"),
        nullable=True,
    )
    item_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    special_requests = Column(Text, nullable=True)
    # Cart line order, starting at 0
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    def __repr__(self):
        return f"<OrderItem {self.quantity} x {self.item_name}>"

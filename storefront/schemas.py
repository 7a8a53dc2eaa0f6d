"""
Pydantic Schemas for Request/Response Validation

Covers:
- Checkout contact form
- Cart lines
- Orders and status changes
- Admin forms for menu, deals, reviews, hours and settings
"""

import re
import uuid
from datetime import datetime, time
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from storefront.models import OrderStatus

EMAIL_PATTERN = re.compile(r'^[\w\.\+-]+@[\w\.-]+\.\w+$')


# =============================================================================
# CHECKOUT
# =============================================================================

class OrderContact(BaseModel):
    """Customer details collected on the cart page."""
    customer_name: str = Field(..., max_length=100, examples=["Matti Meikäläinen"])
    customer_phone: str = Field(..., max_length=20, examples=["040 123 4567"])
    customer_email: Optional[str] = Field(None, max_length=255, examples=["matti@example.com"])
    special_instructions: Optional[str] = Field(None, max_length=500)
    pickup_time: Optional[datetime] = None

    @field_validator('customer_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name is required')
        return v

    @field_validator('customer_phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 8:
            raise ValueError('Phone number is required')
        return v

    @field_validator('customer_email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError('Invalid email address')
        return v

    @field_validator('special_instructions')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        return v


# =============================================================================
# CART
# =============================================================================

class CartItemAdd(BaseModel):
    menu_item_id: uuid.UUID
    quantity: int = Field(default=1, le=99)
    special_requests: Optional[str] = Field(None, max_length=200)


class CartQuantityUpdate(BaseModel):
    quantity: int = Field(..., le=99)


class CartLineResponse(BaseModel):
    menu_item_id: uuid.UUID
    name: str
    unit_price: Decimal
    quantity: int
    special_requests: Optional[str]
    subtotal: Decimal


class CartResponse(BaseModel):
    lines: List[CartLineResponse]
    total_items: int
    total_amount: Decimal


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemResponse(BaseModel):
    id: uuid.UUID
    menu_item_id: Optional[uuid.UUID]
    item_name: str
    quantity: int
    unit_price: Decimal
    special_requests: Optional[str]
    position: int = 0

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: uuid.UUID
    reference: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str]
    pickup_time: Optional[datetime]
    special_instructions: Optional[str]
    total_amount: Decimal
    status: OrderStatus
    items: List[OrderItemResponse]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class AdminOrderResponse(OrderResponse):
    """Order as seen in the admin console, with the actions it offers."""
    available_actions: List[str] = []


class OrderCreateResponse(BaseModel):
    """Response after successfully placing an order."""
    success: bool
    message: str
    order_id: uuid.UUID
    reference: str
    total_amount: Decimal
    status: OrderStatus


class OrderListResponse(BaseModel):
    total: int
    orders: List[AdminOrderResponse]


class StatusUpdateRequest(BaseModel):
    status: OrderStatus


# =============================================================================
# MENU
# =============================================================================

class MenuCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    name_en: Optional[str] = Field(None, max_length=100)
    display_order: int = 0


class MenuCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    name_en: Optional[str] = Field(None, max_length=100)
    display_order: Optional[int] = None


class MenuCategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    name_en: Optional[str]
    display_order: int

    class Config:
        from_attributes = True


class MenuItemCreate(BaseModel):
    category_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=100)
    name_en: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    description_en: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: bool = True
    is_popular: bool = False
    display_order: int = 0


class MenuItemUpdate(BaseModel):
    category_id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    name_en: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    description_en: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None
    is_popular: Optional[bool] = None
    display_order: Optional[int] = None


class MenuItemResponse(BaseModel):
    id: uuid.UUID
    category_id: Optional[uuid.UUID]
    name: str
    name_en: Optional[str]
    description: Optional[str]
    description_en: Optional[str]
    price: Decimal
    image_url: Optional[str]
    is_available: bool
    is_popular: bool
    display_order: int

    class Config:
        from_attributes = True


# =============================================================================
# DEALS
# =============================================================================

class DealCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=150)
    title_en: Optional[str] = Field(None, max_length=150)
    description: Optional[str] = None
    description_en: Optional[str] = None
    discount_percentage: Optional[int] = Field(None, ge=0, le=100)
    discount_amount: Optional[Decimal] = Field(None, ge=0)
    menu_item_id: Optional[uuid.UUID] = None
    is_active: bool = True
    valid_until: Optional[datetime] = None


class DealUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    title_en: Optional[str] = Field(None, max_length=150)
    description: Optional[str] = None
    description_en: Optional[str] = None
    discount_percentage: Optional[int] = Field(None, ge=0, le=100)
    discount_amount: Optional[Decimal] = Field(None, ge=0)
    menu_item_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None
    valid_until: Optional[datetime] = None


class DealResponse(BaseModel):
    id: uuid.UUID
    title: str
    title_en: Optional[str]
    description: Optional[str]
    description_en: Optional[str]
    discount_percentage: Optional[int]
    discount_amount: Optional[Decimal]
    menu_item_id: Optional[uuid.UUID]
    is_active: bool
    valid_from: Optional[datetime]
    valid_until: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# REVIEWS
# =============================================================================

class ReviewCreate(BaseModel):
    author_name: str = Field(..., min_length=1, max_length=100)
    rating: int = Field(default=5, ge=1, le=5)
    text: Optional[str] = None
    time_description: Optional[str] = Field(None, max_length=100)
    is_visible: bool = True


class ReviewUpdate(BaseModel):
    author_name: Optional[str] = Field(None, min_length=1, max_length=100)
    rating: Optional[int] = Field(None, ge=1, le=5)
    text: Optional[str] = None
    time_description: Optional[str] = Field(None, max_length=100)
    is_visible: Optional[bool] = None


class ReviewResponse(BaseModel):
    id: uuid.UUID
    author_name: str
    rating: int
    text: Optional[str]
    time_description: Optional[str]
    is_visible: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# OPENING HOURS
# =============================================================================

class OpeningHoursInput(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    open_time: time
    close_time: time
    is_closed: bool = False


class WeeklyHoursUpdate(BaseModel):
    days: List[OpeningHoursInput] = Field(..., max_length=7)

    @model_validator(mode="after")
    def unique_days(self) -> "WeeklyHoursUpdate":
        seen = [d.day_of_week for d in self.days]
        if len(seen) != len(set(seen)):
            raise ValueError("Each day_of_week may appear only once")
        return self


class OpeningHoursResponse(BaseModel):
    id: uuid.UUID
    day_of_week: int
    open_time: Optional[time]
    close_time: Optional[time]
    is_closed: bool

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    is_open: bool
    day_of_week: int
    today_hours: Optional[OpeningHoursResponse]


# =============================================================================
# BUSINESS SETTINGS
# =============================================================================

class BusinessSettingsInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    tagline: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    google_reviews_url: Optional[str] = Field(None, max_length=500)
    google_rating: Optional[Decimal] = Field(None, ge=0, le=5)
    google_review_count: Optional[int] = Field(None, ge=0)


class BusinessSettingsResponse(BusinessSettingsInput):
    id: uuid.UUID

    class Config:
        from_attributes = True


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    notifier: str
    timestamp: datetime

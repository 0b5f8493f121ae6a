# freshcart/schemas/order.py
import re
import uuid
from datetime import date, datetime, time
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator, model_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal[
    "pending",
    "confirmed",
    "packed",
    "out_for_delivery",
    "delivered",
    "cancelled",
]
PaymentStatus = Literal["pending", "paid", "failed"]
PaymentMethod = Literal["cod", "online"]
GeolocationError = Literal["PERMISSION_DENIED", "POSITION_UNAVAILABLE", "TIMEOUT"]

PIN_CODE_RE = re.compile(r"^\d{6}$")


def normalize_phone(v: str) -> str:
    """Keep digits only; a valid phone has exactly 10 of them."""
    digits = re.sub(r"\D", "", v)
    if len(digits) != 10:
        raise ValueError("Valid 10-digit phone number required")
    return digits


def normalize_pin_code(v: str) -> str:
    v = v.strip()
    if not PIN_CODE_RE.match(v):
        raise ValueError("Valid 6-digit pin code required")
    return v


class OrderItemCreate(SQLModel):
    """
    Cart line as priced by the storefront at checkout time.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID | None = None
    product_name: str = Field(min_length=1, max_length=200)
    weight_grams: int = Field(gt=0)
    unit_price: float = Field(gt=0)
    quantity: int = Field(gt=0)


class OrderCreate(SQLModel):
    """
    Checkout payload.

    User provides:
      - items (cart snapshot)
      - delivery_slot_id
      - delivery_address, pin_code, phone, email
      - latitude/longitude from the browser, or the geolocation error code
      - full_name (required for guests)

    Backend derives:
      - customer reference from token (or a new guest_customers row)
      - order_number, status='pending', payment_status='pending'
      - total_amount from item subtotals
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderItemCreate] = Field(min_length=1)
    delivery_slot_id: uuid.UUID

    full_name: str | None = None
    delivery_address: str
    pin_code: str
    phone: str
    email: EmailStr | None = None

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    location_error: GeolocationError | None = None

    payment_method: PaymentMethod = "cod"
    notes: str | None = None

    idempotency_key: str | None = Field(default=None, max_length=64)

    @field_validator("delivery_address")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("pin_code")
    @classmethod
    def valid_pin_code(cls, v: str) -> str:
        return normalize_pin_code(v)

    @field_validator("full_name", "notes", mode="before")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def coordinates_pair(self) -> "OrderCreate":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be sent together")
        return self


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID | None
    guest_customer_id: uuid.UUID | None
    delivery_slot_id: uuid.UUID | None
    delivery_address: str
    pin_code: str
    phone: str
    email: str | None
    total_amount: float
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    rider_id: uuid.UUID | None
    rider_assigned_at: datetime | None
    rider_picked_at: datetime | None
    rider_delivered_at: datetime | None
    customer_rating: int | None
    customer_feedback: str | None
    notes: str | None
    created_at: datetime


class OrderItemRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID | None
    product_name: str
    weight_grams: int
    unit_price: float
    quantity: int
    subtotal: float


class SlotSummary(SQLModel):
    slot_date: date
    start_time: time
    end_time: time


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items and the booked window.
    """

    items: list[OrderItemRead]
    delivery_slot: SlotSummary | None = None


class OrderPlaced(SQLModel):
    order_id: uuid.UUID
    order_number: str


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    notes: str | None = Field(default=None, max_length=500)
    # Required when moving to out_for_delivery
    rider_id: uuid.UUID | None = None


class RiderAssign(SQLModel):
    model_config = ConfigDict(extra="forbid")

    rider_id: uuid.UUID
    notes: str | None = Field(default=None, max_length=500)


class TimelineEntry(SQLModel):
    status: OrderStatus
    timestamp: datetime
    notes: str | None


class OrderTracking(OrderWithItemsRead):
    """
    Public tracking view: the order plus its timeline, oldest first.
    """

    timeline: list[TimelineEntry]


class OrderStatusCounts(SQLModel):
    all: int
    pending: int = 0
    confirmed: int = 0
    packed: int = 0
    out_for_delivery: int = 0
    delivered: int = 0
    cancelled: int = 0

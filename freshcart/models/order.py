# freshcart/models/order.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import SQLModel, Field


class GuestCustomer(SQLModel, table=True):
    """
    Non-authenticated purchaser, identified only by contact details
    captured at checkout.
    """

    __tablename__ = "guest_customers"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    full_name: str
    email: str = Field(index=True)
    phone: str

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Order(SQLModel, table=True):
    """
    Customer order.

    Created once at checkout together with its items and the first
    history row. After that only status, payment and rider fields change.

    Exactly one of user_id / guest_customer_id is set.
    """

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (guest_customer_id IS NULL)",
            name="ck_orders_single_customer",
        ),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    # ORD-YYYYMMDD-NNNNNN, used by tracking lookups
    order_number: str = Field(unique=True, index=True)

    # Client-supplied key so a retried checkout returns the same order
    idempotency_key: str | None = Field(default=None, unique=True, index=True)

    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="profiles.id",
        index=True,
    )
    guest_customer_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="guest_customers.id",
        index=True,
    )

    delivery_slot_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="delivery_slots.id",
        index=True,
    )

    delivery_address: str
    pin_code: str
    phone: str
    email: str | None = None

    latitude: float | None = None
    longitude: float | None = None

    total_amount: float = Field(description="Sum of item subtotals at creation")

    # pending | confirmed | packed | out_for_delivery | delivered | cancelled
    status: str = Field(default="pending", index=True)

    # pending | paid | failed
    payment_status: str = Field(default="pending")

    # cod | online
    payment_method: str = Field(default="cod")

    rider_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="profiles.id",
        index=True,
    )
    rider_assigned_at: datetime | None = None
    rider_picked_at: datetime | None = None
    rider_delivered_at: datetime | None = None

    customer_rating: int | None = Field(default=None, ge=1, le=5)
    customer_feedback: str | None = None

    notes: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    Product name and unit price are snapshots taken at checkout; later
    price changes never touch placed orders.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    # Catalog lives outside this service; no FK
    product_id: uuid.UUID | None = Field(default=None, index=True)
    product_name: str

    weight_grams: int = Field(gt=0)
    unit_price: float = Field(gt=0)
    quantity: int = Field(gt=0)
    subtotal: float

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderStatusHistory(SQLModel, table=True):
    """
    Append-only audit row, one per status reached.

    (order_id, status) is unique: statuses never repeat for one order,
    so a retried append is a no-op instead of a duplicate.
    """

    __tablename__ = "order_status_history"
    __table_args__ = (
        UniqueConstraint("order_id", "status", name="uq_history_order_status"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    status: str
    notes: str | None = None
    created_by: uuid.UUID | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderNumberCounter(SQLModel, table=True):
    """
    Per-day sequence backing order numbers.
    """

    __tablename__ = "order_number_counters"

    day: str = Field(primary_key=True, description="YYYYMMDD")
    last_seq: int = Field(default=0)

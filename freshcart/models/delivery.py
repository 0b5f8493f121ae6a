# freshcart/models/delivery.py
import uuid
from datetime import datetime, date, time, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class ServiceArea(SQLModel, table=True):
    """
    Circular delivery zone (center + radius).

    At most one row is active; creating a new area deactivates the
    previous one instead of deleting it.
    """

    __tablename__ = "service_area"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    center_lat: float = Field(ge=-90, le=90)
    center_lng: float = Field(ge=-180, le=180)
    radius_km: float = Field(gt=0)

    city_name: str
    country: str

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class ServiceZone(SQLModel, table=True):
    """
    Pin-code based eligibility list.
    """

    __tablename__ = "service_zones"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    pin_code: str = Field(
        unique=True,
        index=True,
        max_length=6,
        min_length=6,
    )
    area_name: str | None = None
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class DeliverySlot(SQLModel, table=True):
    """
    Dated delivery window with a capacity ceiling.

    - max_orders = None means unlimited
    - current_orders is only changed through atomic UPDATE statements
      (see SlotRepository.reserve / release)
    """

    __tablename__ = "delivery_slots"
    __table_args__ = (
        UniqueConstraint("slot_date", "start_time", name="uq_delivery_slot_start"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    slot_date: date = Field(index=True)
    start_time: time
    end_time: time

    max_orders: int | None = Field(default=None, ge=1)
    current_orders: int = Field(default=0, ge=0)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

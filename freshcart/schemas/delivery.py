# freshcart/schemas/delivery.py
import uuid
from datetime import date, time

from pydantic import ConfigDict, model_validator
from sqlmodel import SQLModel, Field


class DeliverySlotCreate(SQLModel):
    """
    Admin payload for a single slot.

    max_orders omitted -> configured default; unlimited=True -> no ceiling.
    """

    model_config = ConfigDict(extra="forbid")

    slot_date: date
    start_time: time
    end_time: time
    max_orders: int | None = Field(default=None, ge=1)
    unlimited: bool = False
    is_active: bool = True

    @model_validator(mode="after")
    def window_order(self) -> "DeliverySlotCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.unlimited and self.max_orders is not None:
            raise ValueError("max_orders cannot be set on an unlimited slot")
        return self


class DeliverySlotUpdate(SQLModel):
    """
    Partial update. Send max_orders=null to make a slot unlimited.
    """

    model_config = ConfigDict(extra="forbid")

    start_time: time | None = None
    end_time: time | None = None
    max_orders: int | None = Field(default=None, ge=1)
    is_active: bool | None = None

    @model_validator(mode="after")
    def no_null_fields(self):
        # Only max_orders may be cleared
        for name in ("start_time", "end_time", "is_active"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class DeliverySlotBulkCreate(SQLModel):
    """
    Generate a morning and an evening slot per day for the next `days`
    days, starting tomorrow unless start_date is given.
    """

    model_config = ConfigDict(extra="forbid")

    days: int = Field(ge=1, le=60)
    start_date: date | None = None
    max_orders: int | None = Field(default=None, ge=1)


class DeliverySlotRead(SQLModel):
    id: uuid.UUID
    slot_date: date
    start_time: time
    end_time: time
    max_orders: int | None
    current_orders: int
    is_active: bool
    remaining: int | None
    is_full: bool


class AvailableSlot(SQLModel):
    """
    Customer-facing slot row offered at checkout.
    """

    id: uuid.UUID
    date: date
    start_time: time
    end_time: time
    remaining: int | None
    is_full: bool


class BulkCreateResult(SQLModel):
    created: list[DeliverySlotRead]
    skipped: int

# freshcart/schemas/rider.py
from datetime import date

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class DeliveryCompletion(SQLModel):
    """
    Rider payload when handing over an order.

    For cash-on-delivery orders with payment_collected=True the rider must
    also send confirm_cash_collected=True.
    """

    model_config = ConfigDict(extra="forbid")

    rating: int = Field(ge=1, le=5)
    feedback: str | None = Field(default=None, max_length=1000)
    payment_collected: bool = False
    confirm_cash_collected: bool = False

    @field_validator("feedback", mode="before")
    @classmethod
    def normalize_feedback(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class RiderDailyStats(SQLModel):
    day: date
    deliveries: int
    cash_collected: float
    earnings: float
    in_progress: int

# freshcart/models/rider.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class RiderEarnings(SQLModel, table=True):
    """
    Earnings row written when a rider completes a delivery.
    Exactly one per order.
    """

    __tablename__ = "rider_earnings"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    rider_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        unique=True,
        index=True,
    )

    amount: float
    payment_collected: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

# freshcart/repositories/rider_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from freshcart.models.order import Order
from freshcart.models.rider import RiderEarnings


class RiderRepository:
    """
    Rider-scoped order queries, earnings rows and read-only aggregates.
    """

    def list_orders(
        self,
        session: Session,
        rider_id: uuid.UUID,
        status: str,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.rider_id == rider_id, Order.status == status)
            .order_by(Order.rider_assigned_at.desc())
            .limit(limit)
        )
        return session.exec(stmt).all()

    def create_earnings(self, session: Session, earnings: RiderEarnings) -> RiderEarnings:
        session.add(earnings)
        session.flush()
        session.refresh(earnings)
        return earnings

    # ---- Daily aggregates ----

    def delivered_between(
        self,
        session: Session,
        rider_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> list[Order]:
        stmt = select(Order).where(
            Order.rider_id == rider_id,
            Order.status == "delivered",
            Order.rider_delivered_at >= start,
            Order.rider_delivered_at < end,
        )
        return session.exec(stmt).all()

    def earnings_between(
        self,
        session: Session,
        rider_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> float:
        stmt = (
            select(func.coalesce(func.sum(RiderEarnings.amount), 0.0))
            .join(Order, Order.id == RiderEarnings.order_id)
            .where(
                RiderEarnings.rider_id == rider_id,
                Order.rider_delivered_at >= start,
                Order.rider_delivered_at < end,
            )
        )
        return float(session.exec(stmt).one() or 0.0)

    def count_in_progress(self, session: Session, rider_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(Order.rider_id == rider_id, Order.status == "out_for_delivery")
        )
        return int(session.exec(stmt).one() or 0)

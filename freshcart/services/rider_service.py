# freshcart/services/rider_service.py
import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Literal

from sqlmodel import Session

from freshcart.core.auth import Actor
from freshcart.core.errors import Forbidden, IllegalTransition, NotFound, ValidationError
from freshcart.database import atomic
from freshcart.models.order import Order
from freshcart.models.rider import RiderEarnings
from freshcart.repositories.rider_repo import RiderRepository
from freshcart.schemas.rider import DeliveryCompletion, RiderDailyStats
from freshcart.services.order_service import OrderService, utcnow

logger = logging.getLogger(__name__)

RiderTab = Literal["active", "completed"]

TAB_STATUS: dict[str, str] = {
    "active": "out_for_delivery",
    "completed": "delivered",
}


class RiderService:
    """
    Rider fulfillment workflow: a narrow controller over the status
    machine, scoped to orders assigned to the calling rider.
    """

    def __init__(self, repo: RiderRepository, order_service: OrderService):
        self.repo = repo
        self.order_service = order_service

    def list_orders(
        self,
        session: Session,
        actor: Actor,
        tab: RiderTab = "active",
        limit: int = 50,
    ) -> list[Order]:
        return self.repo.list_orders(session, actor.id, TAB_STATUS[tab], limit)

    def record_pickup(self, session: Session, order_id: uuid.UUID, actor: Actor) -> Order:
        """
        Stamp rider_picked_at once. Repeating the call keeps the first
        timestamp and returns the order unchanged.
        """
        order = self._get_assigned(session, order_id, actor)
        if order.status != "out_for_delivery":
            raise IllegalTransition(
                f"Cannot pick up an order in status {order.status}"
            )

        if order.rider_picked_at is not None:
            return order

        with atomic(session):
            order.rider_picked_at = utcnow()
            order.updated_at = order.rider_picked_at
            self.order_service.order_repo.update_order(session, order)

        session.refresh(order)
        logger.info("Order %s picked up by rider %s", order.order_number, actor.id)
        return order

    def complete_delivery(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: Actor,
        payload: DeliveryCompletion,
    ) -> Order:
        """
        Hand over the order. All of these land together or not at all:

          - status = delivered (+ history row noting the payment outcome)
          - payment_status = paid if collected, else pending
          - rider_delivered_at
          - customer_rating / customer_feedback
          - one rider_earnings row for the order total
        """
        order = self._get_assigned(session, order_id, actor)

        if (
            payload.payment_collected
            and order.payment_method == "cod"
            and not payload.confirm_cash_collected
        ):
            raise ValidationError(
                f"Confirm that {order.total_amount:.2f} cash was collected"
            )

        now = utcnow()
        outcome = "collected" if payload.payment_collected else "pending"

        with atomic(session):
            self.order_service.apply_transition(
                session,
                order,
                "delivered",
                actor,
                notes=f"Order delivered successfully. Payment {outcome}",
                now=now,
            )

            order.payment_status = "paid" if payload.payment_collected else "pending"
            order.rider_delivered_at = now
            order.customer_rating = payload.rating
            order.customer_feedback = payload.feedback
            self.order_service.order_repo.update_order(session, order)

            self.repo.create_earnings(
                session,
                RiderEarnings(
                    rider_id=actor.id,
                    order_id=order.id,
                    amount=order.total_amount,
                    payment_collected=payload.payment_collected,
                ),
            )

        session.refresh(order)
        logger.info(
            "Order %s delivered by rider %s (payment %s)",
            order.order_number,
            actor.id,
            outcome,
        )
        self.order_service.notifications.status_changed(order)
        return order

    def daily_stats(
        self,
        session: Session,
        actor: Actor,
        day: date | None = None,
    ) -> RiderDailyStats:
        """
        Read-only aggregates for one UTC day.
        """
        day = day or utcnow().date()
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1)

        delivered = self.repo.delivered_between(session, actor.id, start, end)
        cash = sum(
            o.total_amount
            for o in delivered
            if o.payment_method == "cod" and o.payment_status == "paid"
        )

        return RiderDailyStats(
            day=day,
            deliveries=len(delivered),
            cash_collected=round(cash, 2),
            earnings=round(self.repo.earnings_between(session, actor.id, start, end), 2),
            in_progress=self.repo.count_in_progress(session, actor.id),
        )

    def _get_assigned(self, session: Session, order_id: uuid.UUID, actor: Actor) -> Order:
        if not actor.is_rider:
            raise Forbidden("Rider access required")
        order = self.order_service.order_repo.get_by_id(session, order_id)
        if order is None:
            raise NotFound("Order not found")
        if order.rider_id != actor.id:
            raise Forbidden("Order is not assigned to you")
        return order

# freshcart/repositories/slot_repo.py
import uuid
from datetime import date, time

from sqlalchemy import func, or_, update
from sqlmodel import Session, select

from freshcart.models.delivery import DeliverySlot
from freshcart.models.order import Order


class SlotRepository:
    """
    Data access layer for delivery_slots.

    NOTE:
      - current_orders is never written from Python values. reserve() and
        release() issue a single conditional UPDATE so concurrent checkouts
        cannot lose increments or oversell a slot.
      - No commits here; callers own the transaction.
    """

    def get_by_id(self, session: Session, slot_id: uuid.UUID) -> DeliverySlot | None:
        return session.get(DeliverySlot, slot_id)

    def get_by_start(
        self,
        session: Session,
        slot_date: date,
        start_time: time,
    ) -> DeliverySlot | None:
        stmt = select(DeliverySlot).where(
            DeliverySlot.slot_date == slot_date,
            DeliverySlot.start_time == start_time,
        )
        return session.exec(stmt).first()

    def list_active_from(self, session: Session, from_date: date) -> list[DeliverySlot]:
        stmt = (
            select(DeliverySlot)
            .where(
                DeliverySlot.is_active == True,  # noqa: E712
                DeliverySlot.slot_date >= from_date,
            )
            .order_by(DeliverySlot.slot_date, DeliverySlot.start_time)
        )
        return session.exec(stmt).all()

    def list_all(
        self,
        session: Session,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[DeliverySlot]:
        stmt = select(DeliverySlot)
        if date_from is not None:
            stmt = stmt.where(DeliverySlot.slot_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(DeliverySlot.slot_date <= date_to)
        stmt = stmt.order_by(DeliverySlot.slot_date, DeliverySlot.start_time)
        return session.exec(stmt).all()

    def create(self, session: Session, slot: DeliverySlot) -> DeliverySlot:
        session.add(slot)
        session.flush()
        session.refresh(slot)
        return slot

    def update(self, session: Session, slot: DeliverySlot) -> DeliverySlot:
        session.add(slot)
        session.flush()
        session.refresh(slot)
        return slot

    def delete(self, session: Session, slot: DeliverySlot) -> None:
        session.delete(slot)
        session.flush()

    def count_orders(self, session: Session, slot_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(Order.delivery_slot_id == slot_id)
        )
        return int(session.exec(stmt).one() or 0)

    # ---- Capacity counter ----

    def reserve(self, session: Session, slot_id: uuid.UUID) -> bool:
        """
        Atomically take one unit of capacity.

        Returns False when the slot is missing, inactive or full.
        """
        stmt = (
            update(DeliverySlot)
            .where(
                DeliverySlot.id == slot_id,
                DeliverySlot.is_active == True,  # noqa: E712
                or_(
                    DeliverySlot.max_orders.is_(None),
                    DeliverySlot.current_orders < DeliverySlot.max_orders,
                ),
            )
            .values(current_orders=DeliverySlot.current_orders + 1)
        )
        result = session.connection().execute(stmt)
        return result.rowcount == 1

    def release(self, session: Session, slot_id: uuid.UUID) -> bool:
        """Atomically give back one unit of capacity (never below zero)."""
        stmt = (
            update(DeliverySlot)
            .where(
                DeliverySlot.id == slot_id,
                DeliverySlot.current_orders > 0,
            )
            .values(current_orders=DeliverySlot.current_orders - 1)
        )
        result = session.connection().execute(stmt)
        return result.rowcount == 1

# freshcart/repositories/order_repo.py
import uuid

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, select

from freshcart.models.order import (
    GuestCustomer,
    Order,
    OrderItem,
    OrderNumberCounter,
    OrderStatusHistory,
)


class OrderRepository:
    """
    Data access layer for orders, order_items, order_status_history
    and guest_customers.

    NOTE:
      - No commits here; order creation and status changes are
        multi-step transactions. The service wraps them in atomic().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def list_all(
        self,
        session: Session,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def count_by_status(self, session: Session) -> dict[str, int]:
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        return {row[0]: int(row[1]) for row in session.exec(stmt).all()}

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_by_number(self, session: Session, order_number: str) -> Order | None:
        stmt = select(Order).where(Order.order_number == order_number)
        return session.exec(stmt).first()

    def get_by_idempotency_key(self, session: Session, key: str) -> Order | None:
        stmt = select(Order).where(Order.idempotency_key == key)
        return session.exec(stmt).first()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    # ---- Order numbers ----

    def next_sequence(self, session: Session, day: str) -> int:
        """
        Atomically bump the per-day counter and return the new value.

        A single INSERT ... ON CONFLICT DO UPDATE creates or bumps the
        row, so two first-of-the-day checkouts never both try to insert.
        The row lock is held until the surrounding transaction ends.
        """
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            insert = pg_insert
        elif dialect == "sqlite":
            insert = sqlite_insert
        else:
            raise NotImplementedError(f"Order numbers need an upsert on {dialect}")

        stmt = (
            insert(OrderNumberCounter)
            .values(day=day, last_seq=1)
            .on_conflict_do_update(
                index_elements=[OrderNumberCounter.day],
                set_={"last_seq": OrderNumberCounter.last_seq + 1},
            )
        )
        session.connection().execute(stmt)

        stmt = select(OrderNumberCounter.last_seq).where(OrderNumberCounter.day == day)
        return int(session.exec(stmt).one())

    # ---- Guests ----

    def create_guest(self, session: Session, guest: GuestCustomer) -> GuestCustomer:
        session.add(guest)
        session.flush()
        session.refresh(guest)
        return guest

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return session.exec(stmt).all()

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    # ---- Status history ----

    def list_history(
        self,
        session: Session,
        order_id: uuid.UUID,
        newest_first: bool = False,
    ) -> list[OrderStatusHistory]:
        created = OrderStatusHistory.created_at
        stmt = (
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(created.desc() if newest_first else created.asc())
        )
        return session.exec(stmt).all()

    def get_history_entry(
        self,
        session: Session,
        order_id: uuid.UUID,
        status: str,
    ) -> OrderStatusHistory | None:
        stmt = select(OrderStatusHistory).where(
            OrderStatusHistory.order_id == order_id,
            OrderStatusHistory.status == status,
        )
        return session.exec(stmt).first()

    def append_history(
        self,
        session: Session,
        entry: OrderStatusHistory,
    ) -> OrderStatusHistory:
        """
        Append one history row. Re-appending the same (order, status)
        returns the existing row instead of inserting a duplicate.
        """
        existing = self.get_history_entry(session, entry.order_id, entry.status)
        if existing is not None:
            return existing
        session.add(entry)
        session.flush()
        session.refresh(entry)
        return entry

# freshcart/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from freshcart.core.auth import Actor
from freshcart.core.config import Settings, get_settings
from freshcart.core.errors import (
    Conflict,
    Forbidden,
    NotFound,
    ValidationError,
)
from freshcart.database import atomic
from freshcart.models.order import GuestCustomer, Order, OrderItem, OrderStatusHistory
from freshcart.repositories.order_repo import OrderRepository
from freshcart.repositories.user_repo import UserRepository
from freshcart.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderPlaced,
    OrderStatusCounts,
    OrderStatusUpdate,
    OrderTracking,
    OrderWithItemsRead,
    RiderAssign,
    SlotSummary,
    TimelineEntry,
)
from freshcart.schemas.service_area import EligibilityCheck
from freshcart.services.eligibility_service import EligibilityService
from freshcart.services.notification_service import NotificationService
from freshcart.services.order_status import STATUSES, chronological, ensure_transition
from freshcart.services.slot_service import SlotService

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_order_number(prefix: str, day: datetime, seq: int) -> str:
    """ORD-YYYYMMDD-NNNNNN"""
    return f"{prefix}-{day:%Y%m%d}-{seq:06d}"


class OrderService:
    """
    Business logic for the order lifecycle.

    Responsibilities:
      - checkout: eligibility gate, slot reservation, order + items +
        first history row in one transaction
      - status transitions guarded by the legal table, one history row each
      - rider assignment (packed -> out_for_delivery)
      - timeline, tracking and listings
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        user_repo: UserRepository,
        slot_service: SlotService,
        eligibility: EligibilityService,
        notifications: NotificationService | None = None,
        settings: Settings | None = None,
    ):
        self.order_repo = order_repo
        self.user_repo = user_repo
        self.slot_service = slot_service
        self.eligibility = eligibility
        self.settings = settings or get_settings()
        self.notifications = notifications or NotificationService(self.settings)

    # -------- Checkout --------

    def place_order(
        self,
        session: Session,
        actor: Actor | None,
        payload: OrderCreate,
        now: datetime | None = None,
    ) -> OrderPlaced:
        """
        Create an order for a customer (actor) or a guest (actor=None).

        Steps:
          1. Validate who is ordering and guest contact details.
          2. Return the existing order for a repeated idempotency_key.
          3. Eligibility gate (fails closed).
          4. Compute item subtotals and total.
          5. In one transaction: reserve slot capacity, create guest row,
             allocate order number, create order, items, first history row.
          6. Best-effort confirmation email.
        """
        # 1) Who is ordering
        if actor is not None and actor.role != "customer":
            raise Forbidden("Staff accounts cannot place orders")
        if actor is None and (not payload.full_name or not payload.email):
            raise ValidationError("Name and email are required for guest checkout")

        # 2) Retried checkout
        if payload.idempotency_key:
            existing = self.order_repo.get_by_idempotency_key(
                session, payload.idempotency_key
            )
            if existing is not None:
                owner = actor.id if actor is not None else None
                if existing.user_id != owner or existing.phone != payload.phone:
                    raise Conflict("Idempotency key already used for another order")
                logger.info("Checkout retry matched order %s", existing.order_number)
                return OrderPlaced(order_id=existing.id, order_number=existing.order_number)

        # 3) Service-area gate
        self.eligibility.ensure_eligible(
            session,
            EligibilityCheck(
                latitude=payload.latitude,
                longitude=payload.longitude,
                error=payload.location_error,
                pin_code=payload.pin_code,
            ),
        )

        # 4) Totals from price snapshots
        item_rows: list[tuple[dict, float]] = []
        total_amount = 0.0
        for it in payload.items:
            subtotal = round(it.unit_price * it.quantity, 2)
            total_amount += subtotal
            item_rows.append((it.model_dump(), subtotal))
        total_amount = round(total_amount, 2)

        now = now or utcnow()

        # 5) One transaction
        with atomic(session):
            self.slot_service.reserve(session, payload.delivery_slot_id)

            guest_id: uuid.UUID | None = None
            if actor is None:
                guest = self.order_repo.create_guest(
                    session,
                    GuestCustomer(
                        full_name=payload.full_name,
                        email=payload.email,
                        phone=payload.phone,
                    ),
                )
                guest_id = guest.id

            seq = self.order_repo.next_sequence(session, f"{now:%Y%m%d}")
            order = self.order_repo.create_order(
                session,
                Order(
                    order_number=format_order_number(
                        self.settings.ORDER_NUMBER_PREFIX, now, seq
                    ),
                    idempotency_key=payload.idempotency_key,
                    user_id=actor.id if actor is not None else None,
                    guest_customer_id=guest_id,
                    delivery_slot_id=payload.delivery_slot_id,
                    delivery_address=payload.delivery_address,
                    pin_code=payload.pin_code,
                    phone=payload.phone,
                    email=payload.email,
                    latitude=payload.latitude,
                    longitude=payload.longitude,
                    total_amount=total_amount,
                    status="pending",
                    payment_status="pending",
                    payment_method=payload.payment_method,
                    notes=payload.notes,
                    created_at=now,
                    updated_at=now,
                ),
            )

            self.order_repo.create_items(
                session,
                [
                    OrderItem(order_id=order.id, subtotal=subtotal, **data)
                    for data, subtotal in item_rows
                ],
            )

            self.order_repo.append_history(
                session,
                OrderStatusHistory(
                    order_id=order.id,
                    status="pending",
                    notes="Order placed",
                    created_by=actor.id if actor is not None else None,
                    created_at=now,
                ),
            )

        session.refresh(order)
        logger.info(
            "Order %s placed (total=%.2f, slot=%s)",
            order.order_number,
            order.total_amount,
            order.delivery_slot_id,
        )

        # 6) Optional
        self.notifications.order_placed(order)

        return OrderPlaced(order_id=order.id, order_number=order.order_number)

    # -------- Status machine --------

    def apply_transition(
        self,
        session: Session,
        order: Order,
        new_status: str,
        actor: Actor,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> OrderStatusHistory:
        """
        Guard + apply one transition inside the caller's transaction:
        update Order.status and append exactly one history row.
        """
        ensure_transition(order.status, new_status, actor.role)
        now = now or utcnow()

        order.status = new_status
        order.updated_at = now
        self.order_repo.update_order(session, order)

        return self.order_repo.append_history(
            session,
            OrderStatusHistory(
                order_id=order.id,
                status=new_status,
                notes=notes or f"Status updated to {new_status}",
                created_by=actor.id,
                created_at=now,
            ),
        )

    def transition_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
        actor: Actor,
    ) -> Order:
        """
        Admin-driven status change.

          pending          -> confirmed, cancelled
          confirmed        -> packed
          packed           -> out_for_delivery (rider_id required)
          out_for_delivery -> delivered

        Riders finish orders through the rider workflow instead, which also
        records payment and earnings.
        """
        if not actor.is_admin:
            raise Forbidden("Admin access required")

        order = self._get_or_404(session, order_id)
        new = payload.status

        # Validate the table before anything else touches the order
        ensure_transition(order.status, new, actor.role)

        with atomic(session):
            if new == "out_for_delivery":
                self._assign(session, order, payload.rider_id)

            self.apply_transition(session, order, new, actor, payload.notes)

            if (
                new == "cancelled"
                and self.settings.SLOT_RELEASE_ON_CANCEL
                and order.delivery_slot_id is not None
            ):
                self.slot_service.release(session, order.delivery_slot_id)

        session.refresh(order)
        logger.info("Order %s moved to %s by %s", order.order_number, new, actor.id)
        self.notifications.status_changed(order)
        return order

    def assign_rider(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: RiderAssign,
        actor: Actor,
    ) -> Order:
        """Hand a packed order to a rider (packed -> out_for_delivery)."""
        return self.transition_status(
            session,
            order_id,
            OrderStatusUpdate(
                status="out_for_delivery",
                rider_id=payload.rider_id,
                notes=payload.notes or "Order assigned to rider",
            ),
            actor,
        )

    def _assign(self, session: Session, order: Order, rider_id: uuid.UUID | None) -> None:
        if rider_id is None:
            raise ValidationError("rider_id is required to send an order out for delivery")
        rider = self.user_repo.get_by_id(session, rider_id)
        if rider is None or rider.role != "rider":
            raise ValidationError("Assigned user is not a rider")
        order.rider_id = rider.id
        order.rider_assigned_at = utcnow()

    # -------- Timeline / tracking --------

    def get_timeline(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: Actor,
        newest_first: bool = False,
    ) -> list[TimelineEntry]:
        order = self._get_or_404(session, order_id)
        if not self._can_view(order, actor):
            raise NotFound("Order not found")
        return self._timeline(session, order.id, newest_first)

    def track(self, session: Session, order_number: str, phone: str) -> OrderTracking:
        """
        Public lookup for guests: order number + the phone used at checkout.
        """
        order = self.order_repo.get_by_number(session, order_number)
        digits = "".join(ch for ch in phone if ch.isdigit())
        if order is None or order.phone != digits:
            raise NotFound("Order not found")

        dto = self._build_order_with_items_dto(session, order)
        return OrderTracking(
            **dto.model_dump(),
            timeline=self._timeline(session, order.id, newest_first=False),
        )

    def _timeline(
        self,
        session: Session,
        order_id: uuid.UUID,
        newest_first: bool,
    ) -> list[TimelineEntry]:
        entries = chronological(self.order_repo.list_history(session, order_id))
        if newest_first:
            entries.reverse()
        return [
            TimelineEntry(status=e.status, timestamp=e.created_at, notes=e.notes)
            for e in entries
        ]

    # -------- Listings --------

    def list_user_orders(
        self,
        session: Session,
        actor: Actor,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_for_user(session, actor.id, skip, limit)

    def get_user_order(
        self,
        session: Session,
        actor: Actor,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """404 if the order does not exist or belongs to someone else."""
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != actor.id:
            raise NotFound("Order not found")
        return self._build_order_with_items_dto(session, order)

    def list_all_orders(
        self,
        session: Session,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_all(session, status, skip, limit)

    def status_counts(self, session: Session) -> OrderStatusCounts:
        counts = self.order_repo.count_by_status(session)
        return OrderStatusCounts(
            all=sum(counts.values()),
            **{s: counts.get(s, 0) for s in STATUSES},
        )

    def get_order_admin(self, session: Session, order_id: uuid.UUID) -> OrderWithItemsRead:
        order = self._get_or_404(session, order_id)
        return self._build_order_with_items_dto(session, order)

    # -------- Helpers --------

    def _get_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    @staticmethod
    def _can_view(order: Order, actor: Actor) -> bool:
        if actor.is_admin:
            return True
        if actor.is_rider:
            return order.rider_id == actor.id
        return order.user_id == actor.id

    def _build_order_with_items_dto(
        self,
        session: Session,
        order: Order,
    ) -> OrderWithItemsRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        slot = (
            self.slot_service.repo.get_by_id(session, order.delivery_slot_id)
            if order.delivery_slot_id
            else None
        )

        return OrderWithItemsRead(
            **order.model_dump(exclude={"idempotency_key", "latitude", "longitude", "updated_at"}),
            items=[
                OrderItemRead(
                    id=it.id,
                    order_id=it.order_id,
                    product_id=it.product_id,
                    product_name=it.product_name,
                    weight_grams=it.weight_grams,
                    unit_price=it.unit_price,
                    quantity=it.quantity,
                    subtotal=it.subtotal,
                )
                for it in items
            ],
            delivery_slot=SlotSummary(
                slot_date=slot.slot_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
            )
            if slot
            else None,
        )

# freshcart/services/slot_service.py
import logging
import uuid
from datetime import date, datetime, time, timedelta

from sqlmodel import Session

from freshcart.core.config import Settings, get_settings
from freshcart.core.errors import Conflict, NotFound, SlotUnavailable, ValidationError
from freshcart.database import atomic
from freshcart.models.delivery import DeliverySlot
from freshcart.repositories.slot_repo import SlotRepository
from freshcart.schemas.delivery import (
    AvailableSlot,
    BulkCreateResult,
    DeliverySlotBulkCreate,
    DeliverySlotCreate,
    DeliverySlotRead,
    DeliverySlotUpdate,
)

logger = logging.getLogger(__name__)


def is_full(slot: DeliverySlot) -> bool:
    """Null max_orders means unlimited."""
    return slot.max_orders is not None and slot.current_orders >= slot.max_orders


def remaining(slot: DeliverySlot) -> int | None:
    if slot.max_orders is None:
        return None
    return max(slot.max_orders - slot.current_orders, 0)


def has_started(slot: DeliverySlot, now: datetime) -> bool:
    return datetime.combine(slot.slot_date, slot.start_time) <= now


class SlotService:
    """
    Delivery-slot capacity manager.

    Responsibilities:
      - list bookable windows for checkout
      - reserve / release capacity through atomic counter updates
      - admin CRUD and bulk generation
    """

    def __init__(self, repo: SlotRepository, settings: Settings | None = None):
        self.repo = repo
        self.settings = settings or get_settings()

    # -------- Customer-facing --------

    def list_available(
        self,
        session: Session,
        from_date: date | None = None,
        now: datetime | None = None,
    ) -> list[AvailableSlot]:
        """
        Active slots from `from_date` (default today), ordered by date and
        start time. Slots that already started are dropped; full ones stay
        in the list flagged is_full so the UI can grey them out.
        """
        now = now or datetime.now()
        from_date = max(from_date or now.date(), now.date())

        slots = self.repo.list_active_from(session, from_date)
        return [
            AvailableSlot(
                id=s.id,
                date=s.slot_date,
                start_time=s.start_time,
                end_time=s.end_time,
                remaining=remaining(s),
                is_full=is_full(s),
            )
            for s in slots
            if not has_started(s, now)
        ]

    def reserve(
        self,
        session: Session,
        slot_id: uuid.UUID,
        now: datetime | None = None,
    ) -> DeliverySlot:
        """
        Take one unit of capacity inside the caller's transaction.

        Raises:
            SlotUnavailable: missing, inactive, started or full.
        """
        now = now or datetime.now()
        slot = self.repo.get_by_id(session, slot_id)
        if slot is None or not slot.is_active:
            raise SlotUnavailable("Selected delivery slot is not available")
        if has_started(slot, now):
            raise SlotUnavailable("Selected delivery slot has already started")

        if not self.repo.reserve(session, slot_id):
            raise SlotUnavailable("Selected delivery slot is full")

        session.refresh(slot)
        logger.info(
            "Reserved slot %s (%s/%s)", slot.id, slot.current_orders, slot.max_orders
        )
        return slot

    def release(self, session: Session, slot_id: uuid.UUID) -> None:
        """Give capacity back; only called when SLOT_RELEASE_ON_CANCEL is on."""
        if self.repo.release(session, slot_id):
            logger.info("Released one order of capacity on slot %s", slot_id)

    # -------- Admin --------

    def list_all(
        self,
        session: Session,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[DeliverySlotRead]:
        return [
            self._to_read(s) for s in self.repo.list_all(session, date_from, date_to)
        ]

    def create_slot(self, session: Session, payload: DeliverySlotCreate) -> DeliverySlotRead:
        if payload.unlimited:
            max_orders = None
        else:
            max_orders = payload.max_orders or self.settings.SLOT_DEFAULT_MAX_ORDERS

        slot = DeliverySlot(
            slot_date=payload.slot_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            max_orders=max_orders,
            is_active=payload.is_active,
        )
        self._ensure_free_start(session, payload.slot_date, payload.start_time)
        with atomic(session):
            self.repo.create(session, slot)
        session.refresh(slot)
        return self._to_read(slot)

    def bulk_create(
        self,
        session: Session,
        payload: DeliverySlotBulkCreate,
        today: date | None = None,
    ) -> BulkCreateResult:
        """
        Two slots per day (morning and evening windows) for `days` days,
        starting tomorrow. Existing (date, start_time) pairs are skipped,
        so running it twice is harmless.
        """
        if payload.days > self.settings.BULK_SLOT_MAX_DAYS:
            raise ValidationError(
                f"days must be at most {self.settings.BULK_SLOT_MAX_DAYS}"
            )

        start = payload.start_date or (today or date.today()) + timedelta(days=1)
        max_orders = payload.max_orders or self.settings.SLOT_DEFAULT_MAX_ORDERS
        windows = (self.settings.MORNING_WINDOW, self.settings.EVENING_WINDOW)

        created: list[DeliverySlot] = []
        skipped = 0
        with atomic(session):
            for offset in range(payload.days):
                day = start + timedelta(days=offset)
                for start_time, end_time in windows:
                    if self.repo.get_by_start(session, day, start_time) is not None:
                        skipped += 1
                        continue
                    created.append(
                        self.repo.create(
                            session,
                            DeliverySlot(
                                slot_date=day,
                                start_time=start_time,
                                end_time=end_time,
                                max_orders=max_orders,
                            ),
                        )
                    )

        logger.info("Bulk created %d slots (%d skipped)", len(created), skipped)
        for slot in created:
            session.refresh(slot)
        return BulkCreateResult(
            created=[self._to_read(s) for s in created],
            skipped=skipped,
        )

    def update_slot(
        self,
        session: Session,
        slot_id: uuid.UUID,
        payload: DeliverySlotUpdate,
    ) -> DeliverySlotRead:
        slot = self._get_or_404(session, slot_id)
        changes = payload.model_dump(exclude_unset=True)

        if "start_time" in changes and changes["start_time"] != slot.start_time:
            self._ensure_free_start(session, slot.slot_date, changes["start_time"])

        for field, value in changes.items():
            setattr(slot, field, value)

        if slot.end_time <= slot.start_time:
            session.rollback()
            raise ValidationError("end_time must be after start_time")

        # Lowering the ceiling below what is already booked is allowed;
        # the slot simply reads as full.
        with atomic(session):
            self.repo.update(session, slot)
        session.refresh(slot)
        return self._to_read(slot)

    def delete_slot(self, session: Session, slot_id: uuid.UUID) -> None:
        slot = self._get_or_404(session, slot_id)
        if self.repo.count_orders(session, slot_id) > 0:
            raise Conflict(
                "Slot has orders booked; deactivate it instead of deleting"
            )
        with atomic(session):
            self.repo.delete(session, slot)

    # -------- Helpers --------

    def _get_or_404(self, session: Session, slot_id: uuid.UUID) -> DeliverySlot:
        slot = self.repo.get_by_id(session, slot_id)
        if slot is None:
            raise NotFound("Delivery slot not found")
        return slot

    def _ensure_free_start(
        self,
        session: Session,
        slot_date: date,
        start_time: time,
    ) -> None:
        if self.repo.get_by_start(session, slot_date, start_time) is not None:
            raise Conflict("A slot already starts at this date and time")

    def _to_read(self, slot: DeliverySlot) -> DeliverySlotRead:
        return DeliverySlotRead(
            id=slot.id,
            slot_date=slot.slot_date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            max_orders=slot.max_orders,
            current_orders=slot.current_orders,
            is_active=slot.is_active,
            remaining=remaining(slot),
            is_full=is_full(slot),
        )

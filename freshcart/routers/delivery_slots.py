# freshcart/routers/delivery_slots.py
import uuid
from datetime import date

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from freshcart.core.auth import require_admin
from freshcart.database import get_session
from freshcart.repositories.slot_repo import SlotRepository
from freshcart.schemas.delivery import (
    AvailableSlot,
    BulkCreateResult,
    DeliverySlotBulkCreate,
    DeliverySlotCreate,
    DeliverySlotRead,
    DeliverySlotUpdate,
)
from freshcart.services.slot_service import SlotService

router = APIRouter(prefix="/delivery-slots", tags=["Delivery Slots"])

service = SlotService(SlotRepository())


# -------- Public endpoints --------


@router.get("/available", response_model=list[AvailableSlot])
def list_available_slots(
    from_date: date | None = None,
    session: Session = Depends(get_session),
):
    """
    Bookable windows from `from_date` (default today), ordered by date and
    start time. Full slots are included with is_full=true.
    """
    return service.list_available(session, from_date)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[DeliverySlotRead],
    dependencies=[Depends(require_admin)],
)
def list_slots(
    date_from: date | None = None,
    date_to: date | None = None,
    session: Session = Depends(get_session),
):
    return service.list_all(session, date_from, date_to)


@router.post(
    "",
    response_model=DeliverySlotRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_slot(
    payload: DeliverySlotCreate,
    session: Session = Depends(get_session),
):
    return service.create_slot(session, payload)


@router.post(
    "/bulk",
    response_model=BulkCreateResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def bulk_create_slots(
    payload: DeliverySlotBulkCreate,
    session: Session = Depends(get_session),
):
    """
    Morning (07:00-10:00) and evening (17:00-20:00) slots for the next
    `days` days, starting tomorrow.
    """
    return service.bulk_create(session, payload)


@router.patch(
    "/{slot_id}",
    response_model=DeliverySlotRead,
    dependencies=[Depends(require_admin)],
)
def update_slot(
    slot_id: uuid.UUID,
    payload: DeliverySlotUpdate,
    session: Session = Depends(get_session),
):
    return service.update_slot(session, slot_id, payload)


@router.delete(
    "/{slot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_slot(
    slot_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a slot with no orders booked. Slots with orders return 409;
    deactivate them instead.
    """
    service.delete_slot(session, slot_id)

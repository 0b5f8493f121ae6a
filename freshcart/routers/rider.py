# freshcart/routers/rider.py
import uuid
from datetime import date

from fastapi import APIRouter, Depends
from sqlmodel import Session

from freshcart.core.auth import Actor, get_rider_actor
from freshcart.database import get_session
from freshcart.repositories.rider_repo import RiderRepository
from freshcart.routers.orders import service as order_service
from freshcart.schemas.order import OrderRead
from freshcart.schemas.rider import DeliveryCompletion, RiderDailyStats
from freshcart.services.rider_service import RiderService, RiderTab

router = APIRouter(prefix="/rider", tags=["Rider"])

service = RiderService(RiderRepository(), order_service)


@router.get("/orders", response_model=list[OrderRead])
def list_my_deliveries(
    tab: RiderTab = "active",
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_rider_actor),
):
    """
    Orders assigned to the calling rider.

      - tab=active    : out_for_delivery
      - tab=completed : delivered
    """
    return service.list_orders(session, actor, tab)


@router.get("/stats", response_model=RiderDailyStats)
def my_daily_stats(
    day: date | None = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_rider_actor),
):
    """
    Deliveries, cash collected, earnings and in-progress count for a day
    (default today, UTC).
    """
    return service.daily_stats(session, actor, day)


@router.post("/orders/{order_id}/pickup", response_model=OrderRead)
def record_pickup(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_rider_actor),
):
    return service.record_pickup(session, order_id, actor)


@router.post("/orders/{order_id}/complete", response_model=OrderRead)
def complete_delivery(
    order_id: uuid.UUID,
    payload: DeliveryCompletion,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_rider_actor),
):
    """
    Mark delivered, record payment outcome, rating and feedback, and
    book the rider's earnings, all in one transaction.

    Cash-on-delivery orders with payment_collected=true also need
    confirm_cash_collected=true.
    """
    return service.complete_delivery(session, order_id, actor, payload)

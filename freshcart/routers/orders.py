# freshcart/routers/orders.py
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from freshcart.core.auth import (
    Actor,
    get_actor,
    get_admin_actor,
    get_optional_actor,
    require_admin,
    require_customer,
)
from freshcart.database import get_session
from freshcart.models.user import User
from freshcart.repositories.order_repo import OrderRepository
from freshcart.repositories.service_area_repo import ServiceAreaRepository
from freshcart.repositories.slot_repo import SlotRepository
from freshcart.repositories.user_repo import UserRepository
from freshcart.schemas.order import (
    OrderCreate,
    OrderPlaced,
    OrderRead,
    OrderStatus,
    OrderStatusCounts,
    OrderStatusUpdate,
    OrderTracking,
    OrderWithItemsRead,
    RiderAssign,
    TimelineEntry,
)
from freshcart.services.eligibility_service import EligibilityService, build_policy
from freshcart.services.order_service import OrderService
from freshcart.services.slot_service import SlotService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
service = OrderService(
    order_repo,
    UserRepository(),
    SlotService(SlotRepository()),
    EligibilityService(build_policy(ServiceAreaRepository())),
)


# -------- Customer / guest endpoints --------


@router.post(
    "/checkout",
    response_model=OrderPlaced,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    actor: Actor | None = Depends(get_optional_actor),
):
    """
    Place an order into a delivery slot.

    Auth:
      - Guests (no token) and role='customer'. Staff are rejected.

    Fails with:
      - 403 outside the service area / location unavailable
      - 409 when the slot is full, inactive or already started
    """
    return service.place_order(session, actor, payload)


@router.get("/me", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated customer's orders (without items).
    """
    return service.list_user_orders(session, Actor.from_user(current_user), skip, limit)


@router.get("/me/{order_id}", response_model=OrderWithItemsRead)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    return service.get_user_order(session, Actor.from_user(current_user), order_id)


@router.get("/track/{order_number}", response_model=OrderTracking)
def track_order(
    order_number: str,
    phone: str,
    session: Session = Depends(get_session),
):
    """
    Public tracking by order number and the phone used at checkout.
    """
    return service.track(session, order_number, phone)


@router.get("/{order_id}/timeline", response_model=list[TimelineEntry])
def get_order_timeline(
    order_id: uuid.UUID,
    order: Literal["asc", "desc"] = "asc",
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    """
    Status history for one order.

    Visible to admins, the owning customer and the assigned rider.
    """
    return service.get_timeline(session, order_id, actor, newest_first=order == "desc")


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders, optionally filtered by status (admin only).
    """
    return service.list_all_orders(session, status, skip, limit)


@router.get(
    "/counts",
    response_model=OrderStatusCounts,
    dependencies=[Depends(require_admin)],
)
def order_counts(session: Session = Depends(get_session)):
    return service.status_counts(session)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_order_admin(session, order_id)


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_admin_actor),
):
    """
    Move an order along the pipeline (admin only).

      pending          -> confirmed, cancelled

      confirmed        -> packed

      packed           -> out_for_delivery (rider_id required)

      out_for_delivery -> delivered

    Anything else is rejected with 409 and leaves the order untouched.
    """
    return service.transition_status(session, order_id, payload, actor)


@router.post("/{order_id}/assign-rider", response_model=OrderRead)
def assign_rider(
    order_id: uuid.UUID,
    payload: RiderAssign,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_admin_actor),
):
    """
    Hand a packed order to a rider (moves it to out_for_delivery).
    """
    return service.assign_rider(session, order_id, payload, actor)

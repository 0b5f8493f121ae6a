# tests/test_orders.py
import re
from datetime import datetime, time

import pytest
from sqlmodel import select

from freshcart.core.auth import Actor
from freshcart.core.config import Settings
from freshcart.core.errors import (
    Conflict,
    EligibilityDenied,
    Forbidden,
    IllegalTransition,
    NotFound,
    SlotUnavailable,
    ValidationError,
)
from freshcart.models.delivery import DeliverySlot
from freshcart.models.order import (
    GuestCustomer,
    Order,
    OrderItem,
    OrderNumberCounter,
    OrderStatusHistory,
)
from freshcart.repositories.order_repo import OrderRepository
from freshcart.repositories.service_area_repo import ServiceAreaRepository
from freshcart.repositories.slot_repo import SlotRepository
from freshcart.repositories.user_repo import UserRepository
from freshcart.schemas.order import OrderStatusUpdate, RiderAssign
from freshcart.services.eligibility_service import EligibilityService, build_policy
from freshcart.services.order_service import OrderService, format_order_number
from freshcart.services.order_status import STATUSES, is_legal_transition, reconstruct_status
from freshcart.services.slot_service import SlotService

from conftest import OUTSIDE, checkout_payload, force_status, make_slot, make_user


def history(session, order):
    return session.exec(
        select(OrderStatusHistory).where(OrderStatusHistory.order_id == order.id)
    ).all()


# ---------- Checkout ----------


def test_checkout_creates_order_items_and_first_history(session, place, customer):
    order = place()

    assert re.fullmatch(r"ORD-\d{8}-\d{6}", order.order_number)
    assert order.status == "pending"
    assert order.payment_status == "pending"
    assert order.user_id == customer.id
    assert order.guest_customer_id is None
    assert order.phone == "3001234567"
    assert order.total_amount == pytest.approx(420.5)

    items = session.exec(select(OrderItem).where(OrderItem.order_id == order.id)).all()
    assert sorted(i.subtotal for i in items) == [60.5, 360.0]
    assert {i.product_name for i in items} == {"Tomatoes", "Spinach"}

    rows = history(session, order)
    assert [(r.status, r.notes) for r in rows] == [("pending", "Order placed")]
    assert rows[0].created_by == customer.id


def test_order_numbers_increase_within_a_day(place):
    first = place()
    second = place()

    assert first.order_number[:-6] == second.order_number[:-6]
    assert int(second.order_number[-6:]) == int(first.order_number[-6:]) + 1


def test_day_counter_upserts(session):
    repo = OrderRepository()

    assert [repo.next_sequence(session, "20260101") for _ in range(3)] == [1, 2, 3]
    assert repo.next_sequence(session, "20260102") == 1
    session.commit()

    counters = session.exec(select(OrderNumberCounter)).all()
    assert {c.day: c.last_seq for c in counters} == {"20260101": 3, "20260102": 1}


def test_format_order_number():
    assert format_order_number("ORD", datetime(2026, 1, 31), 7) == "ORD-20260131-000007"


def test_guest_checkout_records_guest(session, order_service):
    slot = make_slot(session)
    placed = order_service.place_order(session, None, checkout_payload(slot.id))

    order = session.get(Order, placed.order_id)
    guest = session.get(GuestCustomer, order.guest_customer_id)
    assert order.user_id is None
    assert guest.full_name == "Ayesha Khan"
    assert guest.email == "ayesha@freshcart.pk"


def test_guest_checkout_requires_contact(session, order_service):
    slot = make_slot(session)

    with pytest.raises(ValidationError) as exc:
        order_service.place_order(session, None, checkout_payload(slot.id, full_name=None))
    assert exc.value.status_code == 422


def test_staff_cannot_checkout(session, order_service, admin):
    slot = make_slot(session)

    with pytest.raises(Forbidden):
        order_service.place_order(session, Actor.from_user(admin), checkout_payload(slot.id))


def test_idempotent_retry_returns_same_order(session, place, customer, order_service):
    first = place(idempotency_key="checkout-123")
    slot = session.get(DeliverySlot, first.delivery_slot_id)

    again = order_service.place_order(
        session,
        Actor.from_user(customer),
        checkout_payload(slot.id, idempotency_key="checkout-123"),
    )

    assert again.order_id == first.id
    assert len(session.exec(select(Order)).all()) == 1
    session.refresh(slot)
    assert slot.current_orders == 1

    with pytest.raises(Conflict):
        order_service.place_order(
            session,
            Actor.from_user(customer),
            checkout_payload(slot.id, idempotency_key="checkout-123", phone="3119998888"),
        )


def test_idempotency_key_is_scoped_to_its_customer(session, place, order_service):
    first = place(idempotency_key="checkout-456")
    slot = session.get(DeliverySlot, first.delivery_slot_id)
    other = make_user(session, "customer")

    with pytest.raises(Conflict):
        order_service.place_order(
            session,
            Actor.from_user(other),
            checkout_payload(slot.id, idempotency_key="checkout-456"),
        )
    # A guest cannot claim a customer's key either
    with pytest.raises(Conflict):
        order_service.place_order(
            session, None, checkout_payload(slot.id, idempotency_key="checkout-456")
        )

    assert len(session.exec(select(Order)).all()) == 1


def test_guest_retry_matches_guest_order(session, order_service):
    slot = make_slot(session)
    payload = checkout_payload(slot.id, idempotency_key="guest-789")

    first = order_service.place_order(session, None, payload)
    again = order_service.place_order(session, None, payload)

    assert again.order_id == first.order_id
    assert len(session.exec(select(Order)).all()) == 1


def test_full_slot_blocks_checkout_and_writes_nothing(session, place):
    slot = make_slot(session, max_orders=1, current_orders=1)

    with pytest.raises(SlotUnavailable):
        place(slot=slot)

    session.refresh(slot)
    assert slot.current_orders == 1
    assert session.exec(select(Order)).all() == []
    assert session.exec(select(OrderItem)).all() == []


def test_last_unit_of_capacity(session, place):
    slot = make_slot(session, max_orders=2, current_orders=1)

    place(slot=slot)
    session.refresh(slot)
    assert slot.current_orders == 2

    with pytest.raises(SlotUnavailable):
        place(slot=slot)


def test_ineligible_location_blocks_checkout(session, place):
    slot = make_slot(session)

    with pytest.raises(EligibilityDenied):
        place(slot=slot, latitude=OUTSIDE[0], longitude=OUTSIDE[1])
    with pytest.raises(EligibilityDenied):
        place(slot=slot, latitude=None, longitude=None, location_error="PERMISSION_DENIED")

    session.refresh(slot)
    assert slot.current_orders == 0
    assert session.exec(select(Order)).all() == []


# ---------- Status transitions ----------


@pytest.mark.parametrize("current", STATUSES)
@pytest.mark.parametrize("new", STATUSES)
def test_transition_matrix(session, place, order_service, admin, rider, current, new):
    order = place()
    if current != "pending":
        force_status(session, order, current)
    before = len(history(session, order))
    payload = OrderStatusUpdate(status=new, rider_id=rider.id)

    if is_legal_transition(current, new):
        order_service.transition_status(session, order.id, payload, Actor.from_user(admin))
        session.refresh(order)
        assert order.status == new
        assert len(history(session, order)) == before + 1
    else:
        with pytest.raises(IllegalTransition):
            order_service.transition_status(session, order.id, payload, Actor.from_user(admin))
        session.refresh(order)
        assert order.status == current
        assert len(history(session, order)) == before


def test_admin_walks_full_pipeline(session, place, order_service, admin, rider):
    order = place()
    actor = Actor.from_user(admin)

    order_service.transition_status(session, order.id, OrderStatusUpdate(status="confirmed"), actor)
    order_service.transition_status(session, order.id, OrderStatusUpdate(status="packed"), actor)
    order_service.assign_rider(session, order.id, RiderAssign(rider_id=rider.id), actor)
    order_service.transition_status(session, order.id, OrderStatusUpdate(status="delivered"), actor)

    session.refresh(order)
    assert order.status == "delivered"
    assert order.rider_id == rider.id
    assert order.rider_assigned_at is not None

    timeline = order_service.get_timeline(session, order.id, actor)
    assert [e.status for e in timeline] == [
        "pending",
        "confirmed",
        "packed",
        "out_for_delivery",
        "delivered",
    ]
    assert timeline[3].notes == "Order assigned to rider"
    assert reconstruct_status(history(session, order)) == order.status


def test_out_for_delivery_needs_a_rider(session, place, order_service, admin, customer):
    order = force_status(session, place(), "packed")
    actor = Actor.from_user(admin)

    with pytest.raises(ValidationError):
        order_service.transition_status(
            session, order.id, OrderStatusUpdate(status="out_for_delivery"), actor
        )
    with pytest.raises(ValidationError):
        order_service.transition_status(
            session,
            order.id,
            OrderStatusUpdate(status="out_for_delivery", rider_id=customer.id),
            actor,
        )

    session.refresh(order)
    assert order.status == "packed"
    assert order.rider_id is None


def test_cancelled_order_rejects_further_changes(session, place, order_service, admin):
    order = place()
    actor = Actor.from_user(admin)
    order_service.transition_status(
        session, order.id, OrderStatusUpdate(status="cancelled", notes="Customer called"), actor
    )

    with pytest.raises(IllegalTransition):
        order_service.transition_status(session, order.id, OrderStatusUpdate(status="confirmed"), actor)

    rows = history(session, order)
    assert [r.status for r in rows] == ["pending", "cancelled"]
    assert any(r.notes == "Customer called" for r in rows)


def test_only_admin_uses_status_endpoint(session, place, order_service, rider, customer):
    order = place()

    for user in (rider, customer):
        with pytest.raises(Forbidden):
            order_service.transition_status(
                session, order.id, OrderStatusUpdate(status="confirmed"), Actor.from_user(user)
            )


def test_cancel_keeps_capacity_by_default(session, place, order_service, admin):
    slot = make_slot(session, max_orders=5)
    order = place(slot=slot)

    order_service.transition_status(
        session, order.id, OrderStatusUpdate(status="cancelled"), Actor.from_user(admin)
    )

    session.refresh(slot)
    assert slot.current_orders == 1


def test_cancel_releases_capacity_when_enabled(session, customer, admin):
    settings = Settings(SLOT_RELEASE_ON_CANCEL=True)
    slot_service = SlotService(SlotRepository(), settings)
    service = OrderService(
        OrderRepository(),
        UserRepository(),
        slot_service,
        EligibilityService(build_policy(ServiceAreaRepository(), settings)),
        settings=settings,
    )
    slot = make_slot(session, max_orders=5)
    placed = service.place_order(session, Actor.from_user(customer), checkout_payload(slot.id))

    service.transition_status(
        session, placed.order_id, OrderStatusUpdate(status="cancelled"), Actor.from_user(admin)
    )

    session.refresh(slot)
    assert slot.current_orders == 0


# ---------- Timeline / tracking / listings ----------


def test_timeline_visibility(session, place, order_service, customer, admin):
    order = place()
    stranger = make_user(session, "customer")
    other_rider = make_user(session, "rider")

    assert len(order_service.get_timeline(session, order.id, Actor.from_user(customer))) == 1
    assert len(order_service.get_timeline(session, order.id, Actor.from_user(admin))) == 1
    for user in (stranger, other_rider):
        with pytest.raises(NotFound):
            order_service.get_timeline(session, order.id, Actor.from_user(user))


def test_timeline_newest_first(session, place, order_service, admin):
    order = place()
    actor = Actor.from_user(admin)
    order_service.transition_status(session, order.id, OrderStatusUpdate(status="confirmed"), actor)

    timeline = order_service.get_timeline(session, order.id, actor, newest_first=True)
    assert [e.status for e in timeline] == ["confirmed", "pending"]


def test_track_by_number_and_phone(session, place, order_service):
    order = place()

    tracking = order_service.track(session, order.order_number, "(300) 123-4567")
    assert tracking.order_number == order.order_number
    assert [e.status for e in tracking.timeline] == ["pending"]
    assert len(tracking.items) == 2
    assert tracking.delivery_slot.start_time == time(17, 0)

    with pytest.raises(NotFound):
        order_service.track(session, order.order_number, "3110000000")


def test_user_orders_are_private(session, place, order_service, customer):
    order = place()
    stranger = make_user(session, "customer")

    assert order_service.get_user_order(session, Actor.from_user(customer), order.id).id == order.id
    assert order_service.list_user_orders(session, Actor.from_user(stranger)) == []
    with pytest.raises(NotFound):
        order_service.get_user_order(session, Actor.from_user(stranger), order.id)


def test_status_counts(session, place, order_service, admin):
    place()
    second = place()
    order_service.transition_status(
        session, second.id, OrderStatusUpdate(status="confirmed"), Actor.from_user(admin)
    )

    counts = order_service.status_counts(session)
    assert counts.all == 2
    assert counts.pending == 1
    assert counts.confirmed == 1
    assert counts.delivered == 0
    assert [o.id for o in order_service.list_all_orders(session, status="confirmed")] == [second.id]

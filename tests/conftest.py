# tests/conftest.py
import os
import uuid
from datetime import date, datetime, time, timedelta, timezone

# Settings are read at import time; point them at throwaway values first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from freshcart.core.auth import Actor, get_current_user
from freshcart.core.config import get_settings
from freshcart.database import get_session
from freshcart.main import app
from freshcart.models.delivery import DeliverySlot
from freshcart.models.order import Order, OrderStatusHistory
from freshcart.models.user import User
from freshcart.repositories.order_repo import OrderRepository
from freshcart.repositories.rider_repo import RiderRepository
from freshcart.repositories.service_area_repo import ServiceAreaRepository
from freshcart.repositories.slot_repo import SlotRepository
from freshcart.repositories.user_repo import UserRepository
from freshcart.schemas.order import OrderCreate, OrderItemCreate, OrderStatusUpdate
from freshcart.services.eligibility_service import EligibilityService, build_policy
from freshcart.services.order_service import OrderService
from freshcart.services.rider_service import RiderService
from freshcart.services.slot_service import SlotService

# Inside the default Faisalabad area (~3.3 km from the center)
INSIDE = (31.45, 73.10)
# Lahore, well outside a 15 km radius
OUTSIDE = (31.5204, 74.3587)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def settings():
    return get_settings()


# ---------- Services ----------


@pytest.fixture
def slot_service(settings):
    return SlotService(SlotRepository(), settings)


@pytest.fixture
def order_service(settings, slot_service):
    return OrderService(
        OrderRepository(),
        UserRepository(),
        slot_service,
        EligibilityService(build_policy(ServiceAreaRepository(), settings)),
        settings=settings,
    )


@pytest.fixture
def rider_service(order_service):
    return RiderService(RiderRepository(), order_service)


# ---------- Data helpers ----------


def make_user(session: Session, role: str = "customer") -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{role}-{uuid.uuid4().hex[:8]}@freshcart.pk",
        full_name=role.title(),
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_slot(
    session: Session,
    slot_date: date | None = None,
    start: time = time(7, 0),
    end: time = time(10, 0),
    max_orders: int | None = 10,
    current_orders: int = 0,
    is_active: bool = True,
) -> DeliverySlot:
    slot = DeliverySlot(
        slot_date=slot_date or date.today() + timedelta(days=1),
        start_time=start,
        end_time=end,
        max_orders=max_orders,
        current_orders=current_orders,
        is_active=is_active,
    )
    session.add(slot)
    session.commit()
    session.refresh(slot)
    return slot


def checkout_payload(slot_id: uuid.UUID, **overrides) -> OrderCreate:
    data = {
        "items": [
            OrderItemCreate(
                product_name="Tomatoes",
                weight_grams=1000,
                unit_price=180.0,
                quantity=2,
            ),
            OrderItemCreate(
                product_name="Spinach",
                weight_grams=500,
                unit_price=60.5,
                quantity=1,
            ),
        ],
        "delivery_slot_id": slot_id,
        "full_name": "Ayesha Khan",
        "delivery_address": "House 12, Peoples Colony",
        "pin_code": "380001",
        "phone": "300-123-4567",
        "email": "ayesha@freshcart.pk",
        "latitude": INSIDE[0],
        "longitude": INSIDE[1],
    }
    data.update(overrides)
    return OrderCreate(**data)


def force_status(session: Session, order: Order, status: str) -> Order:
    """Put an order straight into `status` with a matching history row."""
    order.status = status
    session.add(order)
    session.add(
        OrderStatusHistory(
            order_id=order.id,
            status=status,
            notes="test setup",
            created_at=datetime.now(timezone.utc),
        )
    )
    session.commit()
    session.refresh(order)
    return order


@pytest.fixture
def admin(session):
    return make_user(session, "admin")


@pytest.fixture
def rider(session):
    return make_user(session, "rider")


@pytest.fixture
def customer(session):
    return make_user(session, "customer")


@pytest.fixture
def place(session, order_service, customer):
    """Place an order for `customer` (default: a shared unlimited slot)."""
    shared: dict[str, DeliverySlot] = {}

    def _place(slot: DeliverySlot | None = None, **overrides) -> Order:
        if slot is None:
            if "slot" not in shared:
                shared["slot"] = make_slot(session, start=time(17, 0), end=time(20, 0), max_orders=None)
            slot = shared["slot"]
        placed = order_service.place_order(
            session,
            Actor.from_user(customer),
            checkout_payload(slot.id, **overrides),
        )
        return session.get(Order, placed.order_id)

    return _place


@pytest.fixture
def out_for_delivery(session, order_service, admin, rider, place):
    """An order walked through the admin pipeline and handed to `rider`."""

    def _make(**overrides) -> Order:
        order = place(**overrides)
        actor = Actor.from_user(admin)
        for status in ("confirmed", "packed"):
            order_service.transition_status(
                session, order.id, OrderStatusUpdate(status=status), actor
            )
        order_service.transition_status(
            session,
            order.id,
            OrderStatusUpdate(status="out_for_delivery", rider_id=rider.id),
            actor,
        )
        session.refresh(order)
        return order

    return _make


# ---------- HTTP ----------


@pytest.fixture
def client(session):
    """
    TestClient bound to the test session. Call client.login(user) to act
    as a user, client.login(None) for a guest.
    """

    def _get_session():
        yield session

    current: dict[str, User | None] = {"user": None}
    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_current_user] = lambda: current["user"]

    test_client = TestClient(app)
    test_client.login = lambda user: current.update(user=user)  # type: ignore[attr-defined]
    yield test_client

    app.dependency_overrides.clear()

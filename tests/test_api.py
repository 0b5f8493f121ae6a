# tests/test_api.py
from datetime import date, timedelta

from freshcart.core.auth import Actor
from freshcart.schemas.order import OrderStatusUpdate

from conftest import INSIDE, OUTSIDE, make_slot

API = "/api/v1"


def checkout_body(slot_id, **overrides):
    body = {
        "items": [
            {"product_name": "Tomatoes", "weight_grams": 1000, "unit_price": 180.0, "quantity": 2},
            {"product_name": "Spinach", "weight_grams": 500, "unit_price": 60.5, "quantity": 1},
        ],
        "delivery_slot_id": str(slot_id),
        "full_name": "Ayesha Khan",
        "delivery_address": "House 12, Peoples Colony",
        "pin_code": "380001",
        "phone": "3001234567",
        "email": "ayesha@freshcart.pk",
        "latitude": INSIDE[0],
        "longitude": INSIDE[1],
    }
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/").json()["status"] == "ok"


def test_eligibility_check(client):
    inside = client.post(
        f"{API}/eligibility/check",
        json={"latitude": INSIDE[0], "longitude": INSIDE[1]},
    )
    assert inside.status_code == 200
    assert inside.json()["eligible"] is True

    denied = client.post(f"{API}/eligibility/check", json={"error": "PERMISSION_DENIED"})
    assert denied.json()["eligible"] is False
    assert denied.json()["browse_only"] is True


def test_guest_checkout_and_tracking(client, session):
    slot = make_slot(session)

    resp = client.post(f"{API}/orders/checkout", json=checkout_body(slot.id))
    assert resp.status_code == 201
    number = resp.json()["order_number"]

    tracked = client.get(f"{API}/orders/track/{number}", params={"phone": "300 123 4567"})
    assert tracked.status_code == 200
    assert tracked.json()["status"] == "pending"
    assert tracked.json()["timeline"][0]["notes"] == "Order placed"


def test_checkout_error_codes(client, session):
    full = make_slot(session, max_orders=1, current_orders=1)
    resp = client.post(f"{API}/orders/checkout", json=checkout_body(full.id))
    assert resp.status_code == 409

    open_slot = make_slot(session, slot_date=date.today() + timedelta(days=2))
    resp = client.post(
        f"{API}/orders/checkout",
        json=checkout_body(open_slot.id, latitude=OUTSIDE[0], longitude=OUTSIDE[1]),
    )
    assert resp.status_code == 403

    resp = client.post(f"{API}/orders/checkout", json=checkout_body(open_slot.id, phone="12345"))
    assert resp.status_code == 422


def test_available_slots_are_public(client, session):
    slot = make_slot(session, max_orders=2, current_orders=2)

    resp = client.get(f"{API}/delivery-slots/available")
    assert resp.status_code == 200
    rows = {row["id"]: row for row in resp.json()}
    assert rows[str(slot.id)]["is_full"] is True


def test_slot_admin_routes_need_admin(client, session, customer, admin):
    body = {
        "slot_date": str(date.today() + timedelta(days=3)),
        "start_time": "07:00:00",
        "end_time": "10:00:00",
    }

    assert client.post(f"{API}/delivery-slots", json=body).status_code == 401
    client.login(customer)
    assert client.post(f"{API}/delivery-slots", json=body).status_code == 403
    client.login(admin)
    created = client.post(f"{API}/delivery-slots", json=body)
    assert created.status_code == 201
    assert created.json()["max_orders"] == 10
    assert client.post(f"{API}/delivery-slots", json=body).status_code == 409


def test_slot_patch_rejects_nulls(client, session, admin):
    slot = make_slot(session)
    client.login(admin)

    for body in ({"is_active": None}, {"start_time": None}):
        assert client.patch(f"{API}/delivery-slots/{slot.id}", json=body).status_code == 422

    resp = client.patch(f"{API}/delivery-slots/{slot.id}", json={"max_orders": None})
    assert resp.status_code == 200
    assert resp.json()["max_orders"] is None


def test_status_patch(client, session, place, admin):
    order = place()
    client.login(admin)

    skipped = client.patch(f"{API}/orders/{order.id}/status", json={"status": "delivered"})
    assert skipped.status_code == 409

    ok = client.patch(f"{API}/orders/{order.id}/status", json={"status": "confirmed"})
    assert ok.status_code == 200
    assert ok.json()["status"] == "confirmed"


def test_rider_completes_over_http(client, out_for_delivery, rider):
    order = out_for_delivery()
    client.login(rider)

    active = client.get(f"{API}/rider/orders", params={"tab": "active"})
    assert [o["id"] for o in active.json()] == [str(order.id)]

    unconfirmed = client.post(
        f"{API}/rider/orders/{order.id}/complete",
        json={"rating": 5, "payment_collected": True},
    )
    assert unconfirmed.status_code == 422

    done = client.post(
        f"{API}/rider/orders/{order.id}/complete",
        json={"rating": 5, "payment_collected": True, "confirm_cash_collected": True},
    )
    assert done.status_code == 200
    assert done.json()["status"] == "delivered"
    assert done.json()["payment_status"] == "paid"

    stats = client.get(f"{API}/rider/stats").json()
    assert stats["deliveries"] == 1


def test_customer_cannot_use_rider_routes(client, customer):
    client.login(customer)
    assert client.get(f"{API}/rider/orders").status_code == 403


def test_timeline_endpoint(client, session, place, customer, admin, order_service):
    order = place()
    order_service.transition_status(
        session, order.id, OrderStatusUpdate(status="confirmed"), Actor.from_user(admin)
    )
    client.login(customer)

    resp = client.get(f"{API}/orders/{order.id}/timeline", params={"order": "desc"})
    assert resp.status_code == 200
    assert [e["status"] for e in resp.json()] == ["confirmed", "pending"]


def test_admin_promotes_rider(client, session, customer, admin):
    client.login(admin)

    resp = client.patch(f"{API}/users/{customer.id}/role", json={"role": "rider"})
    assert resp.status_code == 200
    assert resp.json()["role"] == "rider"

    riders = client.get(f"{API}/users", params={"role": "rider"}).json()
    assert [u["id"] for u in riders] == [str(customer.id)]

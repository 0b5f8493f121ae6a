# tests/test_notifications.py
import smtplib

from freshcart.core import email_client
from freshcart.core.auth import Actor
from freshcart.core.config import Settings
from freshcart.repositories.order_repo import OrderRepository
from freshcart.repositories.service_area_repo import ServiceAreaRepository
from freshcart.repositories.user_repo import UserRepository
from freshcart.schemas.order import OrderStatusUpdate
from freshcart.services.eligibility_service import EligibilityService, build_policy
from freshcart.services.notification_service import NotificationService
from freshcart.services.order_service import OrderService

from conftest import checkout_payload, make_slot

SMTP = dict(SMTP_HOST="smtp.test", SMTP_USERNAME="orders@freshcart.pk", SMTP_PASSWORD="secret")


def smtp_order_service(settings, slot_service):
    return OrderService(
        OrderRepository(),
        UserRepository(),
        slot_service,
        EligibilityService(build_policy(ServiceAreaRepository(), settings)),
        notifications=NotificationService(settings),
        settings=settings,
    )


def test_build_message():
    msg = email_client.build_message(
        "ayesha@freshcart.pk",
        "[FreshCart] Order ORD-20260101-000001 received",
        "Thanks",
        html_body="<p>Thanks</p>",
        settings=Settings(**SMTP),
    )

    assert msg["From"] == "FreshCart <orders@freshcart.pk>"
    assert msg["To"] == "ayesha@freshcart.pk"
    assert msg.is_multipart()


def test_unconfigured_smtp_sends_nothing(session, place, monkeypatch):
    sent = []
    monkeypatch.setattr(email_client, "send_email", lambda **kw: sent.append(kw))

    place()

    assert sent == []


def test_emails_on_checkout_and_status_change(session, slot_service, customer, admin, monkeypatch):
    sent = []
    monkeypatch.setattr(email_client, "send_email", lambda **kw: sent.append(kw))
    service = smtp_order_service(Settings(**SMTP), slot_service)
    slot = make_slot(session)

    placed = service.place_order(session, Actor.from_user(customer), checkout_payload(slot.id))
    service.transition_status(
        session, placed.order_id, OrderStatusUpdate(status="confirmed"), Actor.from_user(admin)
    )

    assert [m["to_email"] for m in sent] == ["ayesha@freshcart.pk"] * 2
    assert "received" in sent[0]["subject"]
    assert "confirmed" in sent[1]["text_body"]


def test_smtp_failure_does_not_fail_checkout(session, slot_service, customer, monkeypatch):
    def refuse(**kwargs):
        raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(email_client, "send_email", refuse)
    service = smtp_order_service(Settings(**SMTP), slot_service)
    slot = make_slot(session)

    placed = service.place_order(session, Actor.from_user(customer), checkout_payload(slot.id))

    assert placed.order_number.startswith("ORD-")

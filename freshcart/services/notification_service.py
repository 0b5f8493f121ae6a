# freshcart/services/notification_service.py
import logging
import smtplib

from freshcart.core import email_client
from freshcart.core.config import Settings, get_settings
from freshcart.models.order import Order

logger = logging.getLogger(__name__)

STATUS_MESSAGES: dict[str, str] = {
    "confirmed": "Your order has been confirmed.",
    "out_for_delivery": "Your order is on its way.",
    "delivered": "Your order has been delivered. Thank you for shopping with us!",
    "cancelled": "Your order has been cancelled.",
}


class NotificationService:
    """
    Customer emails. Optional secondary writes: a failure here is logged
    and never fails the order operation that triggered it.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def order_placed(self, order: Order) -> None:
        self._send(
            order,
            subject=f"[FreshCart] Order {order.order_number} received",
            text_body=(
                f"Thank you for your order {order.order_number}.\n"
                f"Total: {order.total_amount:.2f}\n"
                f"Delivery address: {order.delivery_address}\n"
                "We will let you know when it is confirmed."
            ),
        )

    def status_changed(self, order: Order) -> None:
        message = STATUS_MESSAGES.get(order.status)
        if message is None:
            return
        self._send(
            order,
            subject=f"[FreshCart] Order {order.order_number} update",
            text_body=f"{message}\nOrder: {order.order_number}",
        )

    def _send(self, order: Order, subject: str, text_body: str) -> None:
        if not order.email:
            return
        if not email_client.is_configured(self.settings):
            logger.debug("SMTP not configured; skipping email for %s", order.order_number)
            return
        try:
            email_client.send_email(
                to_email=order.email,
                subject=subject,
                text_body=text_body,
                settings=self.settings,
            )
        except (smtplib.SMTPException, OSError, RuntimeError):
            logger.warning(
                "Could not send email for order %s", order.order_number, exc_info=True
            )

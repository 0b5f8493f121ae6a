# freshcart/core/email_client.py
"""
SMTP client for customer order emails.

Connection details come from Settings (SMTP_* in .env). Leaving
SMTP_HOST empty disables email entirely; NotificationService checks
is_configured() before sending.

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USE_SSL=true
    SMTP_USERNAME=orders@freshcart.pk
    SMTP_PASSWORD=<app password>
    SMTP_FROM_NAME=FreshCart
"""
import smtplib
from email.message import EmailMessage

from freshcart.core.config import Settings, get_settings


def is_configured(settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.SMTP_HOST and settings.SMTP_USERNAME and settings.SMTP_PASSWORD)


def build_message(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
    settings: Settings | None = None,
) -> EmailMessage:
    """Plain-text message, with an optional HTML alternative part."""
    settings = settings or get_settings()
    sender = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME

    msg = EmailMessage()
    msg["From"] = f"{settings.SMTP_FROM_NAME} <{sender}>"
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    return msg


def _connect(settings: Settings) -> smtplib.SMTP:
    if settings.SMTP_USE_SSL:
        return smtplib.SMTP_SSL(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT
        )

    server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT)
    if settings.SMTP_USE_TLS:
        server.starttls()
    return server


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Send one message.

    Raises:
        RuntimeError: SMTP settings are missing.
        smtplib.SMTPException / OSError: connection or delivery failed.
    """
    settings = settings or get_settings()
    if not is_configured(settings):
        raise RuntimeError("SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD must be set")

    msg = build_message(to_email, subject, text_body, html_body, settings)
    server = _connect(settings)
    try:
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            pass

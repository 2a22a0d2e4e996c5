"""Outbound channels for reminders: e-mail over SMTP and WhatsApp via Twilio."""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from meuboleto.core.config import get_settings
from meuboleto.services.audit_service import redact_email, redact_phone

logger = logging.getLogger(__name__)

BRAZIL_COUNTRY_CODE = "55"


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    use_tls: bool
    from_email: str


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    whatsapp_from: str


def smtp_config_from_settings() -> Optional[SmtpConfig]:
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_from_email:
        return None
    return SmtpConfig(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user or None,
        password=settings.smtp_password or None,
        use_tls=settings.smtp_use_tls,
        from_email=settings.smtp_from_email,
    )


def twilio_config_from_settings() -> Optional[TwilioConfig]:
    settings = get_settings()
    if not (settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_whatsapp_from):
        return None
    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        whatsapp_from=settings.twilio_whatsapp_from,
    )


def whatsapp_address(phone: str) -> str:
    """``"11987654321"`` -> ``"whatsapp:+5511987654321"``."""
    value = (phone or "").strip()
    if value.startswith("whatsapp:"):
        return value
    digits = "".join(ch for ch in value if ch.isdigit())
    if value.startswith("+"):
        return f"whatsapp:+{digits}"
    if len(digits) in (10, 11):
        digits = BRAZIL_COUNTRY_CODE + digits
    return f"whatsapp:+{digits}"


def send_email_via_smtp(
    *,
    smtp: SmtpConfig,
    to_email: str,
    subject: str,
    body_text: str,
) -> None:
    msg = EmailMessage()
    msg["From"] = smtp.from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body_text)

    context = ssl.create_default_context()

    # Port 465 uses implicit SSL (SMTP_SSL), port 587 uses STARTTLS
    if smtp.port == 465:
        server = smtplib.SMTP_SSL(smtp.host, smtp.port, timeout=20, context=context)
    else:
        server = smtplib.SMTP(smtp.host, smtp.port, timeout=20)
    try:
        if smtp.port != 465 and smtp.use_tls:
            server.starttls(context=context)
        if smtp.user and smtp.password:
            server.login(smtp.user, smtp.password)
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except (smtplib.SMTPException, OSError):
            pass

    log_to = redact_email(to_email) if get_settings().pii_redaction_enabled else to_email
    logger.info("E-mail sent to=%s subject=%s", log_to, subject)


def send_whatsapp_via_twilio(*, twilio: TwilioConfig, phone: str, message: str) -> str:
    """Send one WhatsApp message. Returns the Twilio message SID."""
    if not message.strip():
        raise ValueError("Mensagem vazia")
    to_address = whatsapp_address(phone)
    log_to = redact_phone(to_address) if get_settings().pii_redaction_enabled else to_address

    client = Client(twilio.account_sid, twilio.auth_token)
    try:
        sent = client.messages.create(
            to=to_address,
            from_=whatsapp_address(twilio.whatsapp_from),
            body=message,
        )
    except TwilioRestException:
        logger.exception("Twilio API error sending WhatsApp to=%s", log_to)
        raise
    logger.info("WhatsApp sent to=%s sid=%s", log_to, sent.sid)
    return sent.sid

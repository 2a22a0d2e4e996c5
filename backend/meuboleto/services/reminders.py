"""Due-date reminders and payment confirmations.

Reminders are computed on demand from the bill list and the user's
preferences; sending happens only when the user asks for it. A failed
delivery is recorded in the report and never aborts the remaining ones.
"""

from __future__ import annotations

import logging
import smtplib
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from twilio.base.exceptions import TwilioRestException

from meuboleto.schemas.bill import BillStatus
from meuboleto.schemas.settings import UserPreferences
from meuboleto.services.bill_stats import days_until_due
from meuboleto.services.notification_channels import (
    SmtpConfig,
    TwilioConfig,
    send_email_via_smtp,
    send_whatsapp_via_twilio,
    smtp_config_from_settings,
    twilio_config_from_settings,
)
from meuboleto.services.report_service import format_currency, format_date

logger = logging.getLogger(__name__)

_SEND_ERRORS = (smtplib.SMTPException, OSError, TwilioRestException, ValueError)


@dataclass(frozen=True)
class Reminder:
    bill_id: str
    beneficiary: str
    amount: Any
    due_date: date
    days_until_due: int

    @property
    def message(self) -> str:
        when = "amanhã" if self.days_until_due == 1 else f"em {self.days_until_due} dias"
        return (
            f"Lembrete MeuBoleto: a conta {self.beneficiary} de {format_currency(self.amount)} "
            f"vence {when} ({format_date(self.due_date)})."
        )


@dataclass
class DeliveryReport:
    sent: int = 0
    failed: int = 0
    skipped_channels: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def due_reminders(
    bills: Iterable[Any],
    preferences: UserPreferences,
    today: Optional[date] = None,
) -> list[Reminder]:
    """Pending bills whose remaining days match one of the configured offsets."""
    if not preferences.notifications_enabled:
        return []
    today = today or date.today()
    offsets = set(preferences.reminder_days_before)
    reminders = []
    for bill in bills:
        if bill.status != BillStatus.PENDING:
            continue
        days = days_until_due(bill, today)
        if days in offsets:
            reminders.append(
                Reminder(
                    bill_id=str(bill.id),
                    beneficiary=bill.beneficiary,
                    amount=bill.amount,
                    due_date=bill.due_date,
                    days_until_due=days,
                )
            )
    return sorted(reminders, key=lambda r: r.due_date)


def _deliver(
    subject: str,
    body: str,
    preferences: UserPreferences,
    report: DeliveryReport,
    *,
    smtp: Optional[SmtpConfig],
    twilio: Optional[TwilioConfig],
) -> None:
    if preferences.email_recipients:
        if smtp is None:
            report.skipped_channels.append("email")
        else:
            for recipient in preferences.email_recipients:
                try:
                    send_email_via_smtp(smtp=smtp, to_email=str(recipient.email), subject=subject, body_text=body)
                    report.sent += 1
                except _SEND_ERRORS as exc:
                    logger.warning("Reminder e-mail failed recipient_id=%s: %s", recipient.id, exc)
                    report.failed += 1
                    report.errors.append(f"email:{recipient.id}")

    if preferences.whatsapp_contacts:
        if twilio is None:
            report.skipped_channels.append("whatsapp")
        else:
            for contact in preferences.whatsapp_contacts:
                try:
                    send_whatsapp_via_twilio(twilio=twilio, phone=contact.phone, message=body)
                    report.sent += 1
                except _SEND_ERRORS as exc:
                    logger.warning("Reminder WhatsApp failed contact_id=%s: %s", contact.id, exc)
                    report.failed += 1
                    report.errors.append(f"whatsapp:{contact.id}")


def send_reminders(
    reminders: list[Reminder],
    preferences: UserPreferences,
    *,
    smtp: Optional[SmtpConfig] = None,
    twilio: Optional[TwilioConfig] = None,
) -> DeliveryReport:
    report = DeliveryReport()
    if not reminders or not preferences.notifications_enabled:
        return report
    smtp = smtp or smtp_config_from_settings()
    twilio = twilio or twilio_config_from_settings()

    for reminder in reminders:
        _deliver(
            f"Conta a vencer: {reminder.beneficiary}",
            reminder.message,
            preferences,
            report,
            smtp=smtp,
            twilio=twilio,
        )
    logger.info(
        "Reminders dispatched count=%d sent=%d failed=%d",
        len(reminders),
        report.sent,
        report.failed,
    )
    return report


def notify_payment(
    bill: Any,
    preferences: UserPreferences,
    *,
    smtp: Optional[SmtpConfig] = None,
    twilio: Optional[TwilioConfig] = None,
) -> DeliveryReport:
    """Payment confirmation after ``mark_paid``. Never raises on delivery failure."""
    report = DeliveryReport()
    if not (preferences.notifications_enabled and preferences.payment_notifications_enabled):
        return report
    body = (
        f"Pagamento registrado: {bill.beneficiary} - {format_currency(bill.amount)} "
        f"pago em {format_date(bill.paid_at or date.today())} via {bill.payment_method}."
    )
    _deliver(
        f"Conta paga: {bill.beneficiary}",
        body,
        preferences,
        report,
        smtp=smtp or smtp_config_from_settings(),
        twilio=twilio or twilio_config_from_settings(),
    )
    return report

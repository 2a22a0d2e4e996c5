import smtplib
from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from meuboleto.schemas.settings import UserPreferences
from meuboleto.services.notification_channels import SmtpConfig, TwilioConfig, whatsapp_address
from meuboleto.services.reminders import due_reminders, notify_payment, send_reminders

TODAY = date(2024, 7, 10)
SMTP = SmtpConfig(host="smtp.test", port=587, user=None, password=None, use_tls=False, from_email="no-reply@test.dev")
TWILIO = TwilioConfig(account_sid="AC1", auth_token="tok", whatsapp_from="+14155238886")


def _bill(name, days, status="pending"):
    return SimpleNamespace(
        id=name,
        beneficiary=name,
        amount=Decimal("50.00"),
        due_date=TODAY + timedelta(days=days),
        status=status,
        payment_method="PIX" if status == "paid" else None,
        paid_at=TODAY if status == "paid" else None,
    )


def _prefs(**overrides):
    data = dict(
        reminder_days_before=[1, 3],
        email_recipients=[{"email": "casa@example.com"}],
        whatsapp_contacts=[{"name": "Ana", "phone": "11987654321"}],
    )
    data.update(overrides)
    return UserPreferences(**data)


def test_due_reminders_match_configured_offsets():
    bills = [_bill("Luz", 1), _bill("Agua", 2), _bill("Gas", 3), _bill("Pago", 1, status="paid"), _bill("Velha", -1)]
    reminders = due_reminders(bills, _prefs(), TODAY)
    assert [r.beneficiary for r in reminders] == ["Luz", "Gas"]
    assert "amanhã" in reminders[0].message
    assert "em 3 dias" in reminders[1].message
    assert "R$ 50,00" in reminders[0].message


def test_due_reminders_disabled():
    assert due_reminders([_bill("Luz", 1)], _prefs(notifications_enabled=False), TODAY) == []


def test_send_reminders_uses_both_channels():
    reminders = due_reminders([_bill("Luz", 1)], _prefs(), TODAY)
    with patch("meuboleto.services.reminders.send_email_via_smtp") as send_email, patch(
        "meuboleto.services.reminders.send_whatsapp_via_twilio"
    ) as send_whatsapp:
        report = send_reminders(reminders, _prefs(), smtp=SMTP, twilio=TWILIO)

    assert report.sent == 2
    assert report.failed == 0
    assert send_email.call_args.kwargs["to_email"] == "casa@example.com"
    assert send_whatsapp.call_args.kwargs["phone"] == "11987654321"


def test_one_failed_delivery_does_not_stop_the_rest():
    prefs = _prefs(email_recipients=[{"email": "a@example.com"}, {"email": "b@example.com"}], whatsapp_contacts=[])
    reminders = due_reminders([_bill("Luz", 1)], prefs, TODAY)
    with patch(
        "meuboleto.services.reminders.send_email_via_smtp",
        side_effect=[smtplib.SMTPException("down"), None],
    ) as send_email:
        report = send_reminders(reminders, prefs, smtp=SMTP, twilio=TWILIO)
    assert send_email.call_count == 2
    assert report.sent == 1
    assert report.failed == 1


def test_unconfigured_channels_are_skipped():
    reminders = due_reminders([_bill("Luz", 1)], _prefs(), TODAY)
    report = send_reminders(reminders, _prefs())
    assert report.sent == 0
    assert sorted(set(report.skipped_channels)) == ["email", "whatsapp"]


def test_payment_notice_respects_preference():
    bill = _bill("Luz", 0, status="paid")
    with patch("meuboleto.services.reminders.send_email_via_smtp") as send_email:
        notify_payment(bill, _prefs(payment_notifications_enabled=False, whatsapp_contacts=[]), smtp=SMTP)
        send_email.assert_not_called()

        report = notify_payment(bill, _prefs(whatsapp_contacts=[]), smtp=SMTP)
    assert report.sent == 1
    assert "Pagamento registrado" in send_email.call_args.kwargs["body_text"]


def test_whatsapp_address_adds_country_code():
    assert whatsapp_address("(11) 98765-4321") == "whatsapp:+5511987654321"
    assert whatsapp_address("+14155238886") == "whatsapp:+14155238886"
    assert whatsapp_address("whatsapp:+5511987654321") == "whatsapp:+5511987654321"


def test_twilio_client_called_with_whatsapp_addresses():
    from meuboleto.services.notification_channels import send_whatsapp_via_twilio

    fake_client = MagicMock()
    fake_client.messages.create.return_value = SimpleNamespace(sid="SM123")
    with patch("meuboleto.services.notification_channels.Client", return_value=fake_client):
        sid = send_whatsapp_via_twilio(twilio=TWILIO, phone="11987654321", message="Olá")
    assert sid == "SM123"
    fake_client.messages.create.assert_called_once_with(
        to="whatsapp:+5511987654321",
        from_="whatsapp:+14155238886",
        body="Olá",
    )


def test_smtp_send_uses_starttls_when_enabled():
    from meuboleto.services.notification_channels import send_email_via_smtp

    server = MagicMock()
    config = SmtpConfig(host="smtp.test", port=587, user="u", password="p", use_tls=True, from_email="x@test.dev")
    with patch("meuboleto.services.notification_channels.smtplib.SMTP", return_value=server):
        send_email_via_smtp(smtp=config, to_email="y@test.dev", subject="Oi", body_text="corpo")
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("u", "p")
    message = server.send_message.call_args.args[0]
    assert message["To"] == "y@test.dev"
    server.quit.assert_called_once()


def test_smtp_connection_closed_when_starttls_fails():
    from meuboleto.services.notification_channels import send_email_via_smtp

    server = MagicMock()
    server.starttls.side_effect = smtplib.SMTPNotSupportedError("STARTTLS extension not supported")
    config = SmtpConfig(host="smtp.test", port=587, user="u", password="p", use_tls=True, from_email="x@test.dev")
    with patch("meuboleto.services.notification_channels.smtplib.SMTP", return_value=server):
        with pytest.raises(smtplib.SMTPNotSupportedError):
            send_email_via_smtp(smtp=config, to_email="y@test.dev", subject="Oi", body_text="corpo")
    server.send_message.assert_not_called()
    server.quit.assert_called_once()


def test_smtp_quit_socket_error_is_ignored():
    from meuboleto.services.notification_channels import send_email_via_smtp

    server = MagicMock()
    server.quit.side_effect = ConnectionResetError("reset by peer")
    with patch("meuboleto.services.notification_channels.smtplib.SMTP", return_value=server):
        send_email_via_smtp(smtp=SMTP, to_email="y@test.dev", subject="Oi", body_text="corpo")
    server.send_message.assert_called_once()

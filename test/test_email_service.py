"""
Tests for email rendering and the fire-and-forget notifier
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from app.services.email_service import EmailService, Notifier, format_amount


class TestFormatAmount:
    @pytest.mark.parametrize("amount,text", [(2000, "20.00 EUR"), (5, "0.05 EUR"), (123456, "1234.56 EUR")])
    def test_minor_units(self, amount, text):
        assert format_amount(amount, "EUR") == text


class TestEmailService:
    def test_order_confirmation_renders_items(self):
        service = EmailService()
        html = service.render(
            "order_confirmation.html",
            customer_name="Jane",
            order_number="ORD-ABC-123456",
            total=2000,
            currency="EUR",
            items=[{"name": "Print 13x18", "quantity": 2, "unit_price": 1000}],
            status_url="http://localhost/order/1?token=x",
        )
        assert "ORD-ABC-123456" in html
        assert "Print 13x18" in html
        assert "20.00 EUR" in html

    def test_names_are_escaped(self):
        html = EmailService().render(
            "order_status.html", customer_name="<script>x</script>", order_number="ORD-1", status="shipped"
        )
        assert "<script>x</script>" not in html

    def test_team_invitation_links_to_accept_page(self):
        service = EmailService()
        service.smtp_host = "smtp.example.com"
        with patch("app.services.email_service.smtplib.SMTP") as smtp:
            service.send_team_invitation("new@example.com", "Mystic Light", "Mia", "editor", "tok123", 7)
        message = smtp.return_value.__enter__.return_value.send_message.call_args[0][0]
        assert message["To"] == "new@example.com"
        assert "Mystic Light" in message["Subject"]
        assert "accept-invitation?token=tok123" in message.as_string()

    def test_skips_without_smtp(self):
        service = EmailService()
        service.smtp_host = None
        assert service.send_password_reset_email("a@example.com", "A", "token") is False

    def test_sends_over_smtp(self):
        service = EmailService()
        service.smtp_host = "smtp.example.com"
        with patch("app.services.email_service.smtplib.SMTP") as smtp:
            assert service.send_welcome_email("a@example.com", "A", "Studio", "http://x/login")
        server = smtp.return_value.__enter__.return_value
        server.send_message.assert_called_once()


class TestNotifier:
    @pytest.mark.asyncio
    async def test_failures_never_reach_the_caller(self):
        email_service = MagicMock()
        email_service.send_order_confirmation.side_effect = smtplib.SMTPException("down")
        notifier = Notifier(email_service)

        task = notifier.notify("send_order_confirmation", to_email="a@example.com")
        await notifier.drain()

        assert task.done()
        assert task.exception() is None
        email_service.send_order_confirmation.assert_called_once_with(to_email="a@example.com")

    def test_without_event_loop_is_dropped(self):
        notifier = Notifier(MagicMock())
        assert notifier.notify("send_welcome_email", to_email="a@example.com") is None

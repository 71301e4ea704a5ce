"""
Email Service

Transactional emails for studios and their clients: welcome, order
confirmation, order status changes, password resets and team invitations.

EmailService does blocking SMTP. Request handlers never call it directly;
they go through Notifier, which runs each send in a worker thread and only
logs failures, so a broken mail server can never fail an order or signup.
"""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Callable

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"


def format_amount(amount: int, currency: str) -> str:
    """Render minor units as e.g. ``20.00 EUR``."""
    return f"{amount // 100}.{amount % 100:02d} {currency}"


class EmailService:
    """Service for sending emails with template support"""

    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.env.filters["money"] = format_amount

        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.smtp_from = settings.smtp_from

    def render(self, template_name: str, **context: Any) -> str:
        return self.env.get_template(template_name).render(app_name=settings.app_name, **context)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> bool:
        """
        Send an email using SMTP.

        Returns False, without raising, when SMTP is not configured.
        SMTP errors propagate to the caller (see Notifier).
        """
        if not self.smtp_host:
            logger.info("SMTP not configured; skipping email '%s' to %s", subject, to_email)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.smtp_from
        msg["To"] = to_email

        if text_body:
            msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
            server.starttls()
            if self.smtp_user and self.smtp_password:
                server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

        logger.info("Email sent: subject='%s' to=%s", subject, to_email)
        return True

    def send_welcome_email(self, to_email: str, user_name: str, tenant_name: str, login_url: str) -> bool:
        html_body = self.render("welcome.html", user_name=user_name, tenant_name=tenant_name, login_url=login_url)
        text_body = f"Hello {user_name},\n\nYour studio {tenant_name} is ready.\nSign in: {login_url}\n"
        return self._send_email(to_email, f"Welcome to {settings.app_name}", html_body, text_body)

    def send_order_confirmation(
        self,
        to_email: str,
        customer_name: str,
        order_number: str,
        total: int,
        currency: str,
        items: list[dict],
        status_url: str | None = None,
    ) -> bool:
        html_body = self.render(
            "order_confirmation.html",
            customer_name=customer_name,
            order_number=order_number,
            total=total,
            currency=currency,
            items=items,
            status_url=status_url,
        )
        text_body = (
            f"Hello {customer_name},\n\nThank you for your order {order_number}.\n"
            f"Total: {format_amount(total, currency)}\n"
        )
        return self._send_email(to_email, f"Order confirmation {order_number}", html_body, text_body)

    def send_order_status_update(
        self,
        to_email: str,
        customer_name: str,
        order_number: str,
        status: str,
        status_url: str | None = None,
    ) -> bool:
        html_body = self.render(
            "order_status.html",
            customer_name=customer_name,
            order_number=order_number,
            status=status,
            status_url=status_url,
        )
        text_body = f"Hello {customer_name},\n\nYour order {order_number} is now {status}.\n"
        return self._send_email(to_email, f"Order {order_number}: {status}", html_body, text_body)

    def send_password_reset_email(self, to_email: str, user_name: str, reset_token: str) -> bool:
        reset_link = f"{settings.app_url}/reset-password?token={reset_token}"
        html_body = self.render(
            "password_reset.html",
            user_name=user_name,
            reset_link=reset_link,
            expire_hours=settings.password_reset_expire_hours,
        )
        text_body = (
            f"Hello {user_name},\n\nReset your password for {settings.app_name}:\n{reset_link}\n\n"
            f"This link expires in {settings.password_reset_expire_hours} hour(s). "
            "If you didn't request this, ignore this email.\n"
        )
        return self._send_email(to_email, f"Password Reset - {settings.app_name}", html_body, text_body)

    def send_team_invitation(
        self, to_email: str, tenant_name: str, inviter_name: str, role: str, invitation_token: str, expire_days: int
    ) -> bool:
        accept_url = f"{settings.app_url}/accept-invitation?token={invitation_token}"
        html_body = self.render(
            "team_invitation.html",
            tenant_name=tenant_name,
            inviter_name=inviter_name,
            role=role,
            accept_url=accept_url,
            expire_days=expire_days,
        )
        text_body = (
            f"{inviter_name} invited you to join {tenant_name} as {role}.\nAccept: {accept_url}\n\n"
            f"This invitation expires in {expire_days} days.\n"
        )
        return self._send_email(to_email, f"Join {tenant_name} on {settings.app_name}", html_body, text_body)


class Notifier:
    """
    Fire-and-forget dispatcher for EmailService sends.

    ``notify`` schedules the send in a worker thread and returns at once.
    Failures are logged at ERROR and never reach the caller.
    """

    def __init__(self, email_service: EmailService | None = None):
        self.email_service = email_service or EmailService()
        self._pending: set[asyncio.Task] = set()

    def notify(self, method_name: str, **kwargs: Any) -> asyncio.Task | None:
        send: Callable[..., bool] = getattr(self.email_service, method_name)
        try:
            task = asyncio.get_running_loop().create_task(self._run(method_name, send, kwargs))
        except RuntimeError:
            logger.error("Notification %s dropped: no running event loop", method_name)
            return None
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, method_name: str, send: Callable[..., bool], kwargs: dict) -> None:
        try:
            await asyncio.to_thread(send, **kwargs)
        except Exception as e:
            logger.error("Notification %s failed: %s", method_name, e, exc_info=True)

    async def drain(self) -> None:
        """Wait for scheduled sends (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


notifier = Notifier()


def get_notifier() -> Notifier:
    """FastAPI dependency; tests override it with a mock."""
    return notifier

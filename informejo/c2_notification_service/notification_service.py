"""Outbound email notifications for ticket activity."""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape
from typing import Any, Dict, Iterable, Optional

from informejo.core.config import AppConfig, SMTPConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    """Who a notification goes to."""

    id: str
    email: str
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    @classmethod
    def from_user(cls, user) -> "Recipient":
        return cls(id=user.id, email=user.email, name=user.name, role=user.role)


_DETAILS_STYLE = "background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;"
_BUTTON_STYLE = (
    "background-color: #3b82f6; color: white; padding: 10px 20px; "
    "text-decoration: none; border-radius: 5px; display: inline-block;"
)


def _button(url: str, label: str) -> str:
    return f'<p><a href="{escape(url)}" style="{_BUTTON_STYLE}">{escape(label)}</a></p>'


class NotificationService:
    """Sends ticket notifications by SMTP.

    send() is fire and forget: delivery failures are logged and reported as
    False, never raised. With SMTP disabled, messages are only logged.
    """

    def __init__(self, smtp_config: SMTPConfig, app_config: AppConfig):
        self.smtp_config = smtp_config
        self.app_config = app_config
        self.base_url = app_config.base_url.rstrip("/")

    async def send(self, recipient: Recipient, subject: str, html: str) -> bool:
        """Send one message; returns whether it was handed to the SMTP server."""
        message = self._build_message(recipient, subject, html)
        try:
            await asyncio.to_thread(self._deliver, message)
            return True
        except Exception as e:
            logger.error(f"[MAIL] Error sending '{subject}' to {recipient.email}: {e}")
            return False

    def _build_message(self, recipient: Recipient, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.smtp_config.from_address
        message["To"] = recipient.email
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage):
        config = self.smtp_config
        if not config.enabled or not config.host:
            logger.info(f"[MAIL] SMTP disabled, not sending '{message['Subject']}' to {message['To']}")
            return

        if config.port == 465:
            server = smtplib.SMTP_SSL(config.host, config.port, timeout=config.timeout_seconds)
        else:
            server = smtplib.SMTP(config.host, config.port, timeout=config.timeout_seconds)
        with server:
            if config.port != 465:
                server.starttls()
            if config.user and config.password:
                server.login(config.user, config.password.get_secret_value())
            server.send_message(message)
        logger.info(f"[MAIL] Sent '{message['Subject']}' to {message['To']}")

    # Templates

    async def send_ticket_created(
        self, ticket: Dict[str, Any], recipient: Recipient, magic_link: Optional[str] = None
    ) -> bool:
        """Confirmation to the ticket creator, carrying the magic link for guests."""
        view_link = magic_link or f"{self.base_url}/tickets/{ticket['id']}"
        guest_note = ""
        if recipient.role == "GUEST":
            guest_note = (
                '<div style="background-color: #fef3c7; border-left: 4px solid #f59e0b; padding: 15px; margin: 20px 0;">'
                '<p style="margin: 0;"><strong>Important:</strong> Save this link to check your ticket status anytime. '
                "This secure link is unique to you and expires in 3 days.</p></div>"
            )
        html = (
            "<h2>Your support ticket has been created</h2>"
            f"<p>Hi {escape(recipient.name)},</p>"
            "<p>Your support ticket has been successfully created and our team will review it shortly.</p>"
            f'<div style="{_DETAILS_STYLE}">'
            '<h3 style="margin-top: 0;">Ticket Details</h3>'
            f"<p><strong>Ticket ID:</strong> {escape(ticket['id'][:8])}</p>"
            f"<p><strong>Title:</strong> {escape(ticket['title'])}</p>"
            f"<p><strong>Priority:</strong> {escape(ticket['priority'])}</p>"
            f"<p><strong>Status:</strong> {escape(ticket['status'])}</p>"
            f"<p><strong>Category:</strong> {escape(ticket['category'])}</p>"
            "</div>"
            f"{_button(view_link, 'View Ticket')}"
            f"{guest_note}"
            "<p>You will receive email updates as your ticket progresses.</p>"
        )
        return await self.send(recipient, f"Ticket Created: {ticket['title']}", html)

    async def send_new_ticket_to_admins(
        self, ticket: Dict[str, Any], creator: Recipient, admins: Iterable[Recipient]
    ) -> int:
        """Tell every active admin about a new ticket. Returns messages sent."""
        sent = 0
        admin_link = f"{self.base_url}/admin/tickets/{ticket['id']}"
        for admin in admins:
            if admin.id == creator.id:
                continue
            html = (
                "<h2>New support ticket created</h2>"
                f"<p>Hi {escape(admin.name)},</p>"
                "<p>A new support ticket has been created and requires attention.</p>"
                f'<div style="{_DETAILS_STYLE}">'
                '<h3 style="margin-top: 0;">Ticket Details</h3>'
                f"<p><strong>Ticket ID:</strong> {escape(ticket['id'])}</p>"
                f"<p><strong>Title:</strong> {escape(ticket['title'])}</p>"
                f"<p><strong>Created By:</strong> {escape(creator.name)} ({escape(creator.email)})</p>"
                f"<p><strong>Priority:</strong> {escape(ticket['priority'])}</p>"
                f"<p><strong>Category:</strong> {escape(ticket['category'])}</p>"
                "<p><strong>Description:</strong></p>"
                f"<p>{escape(ticket['description'])}</p>"
                "</div>"
                f"{_button(admin_link, 'View & Assign Ticket')}"
            )
            if await self.send(admin, f"New Support Ticket: {ticket['title']}", html):
                sent += 1
        return sent

    async def send_ticket_assigned(self, ticket: Dict[str, Any], assignee: Recipient) -> bool:
        admin_link = f"{self.base_url}/admin/tickets/{ticket['id']}"
        html = (
            "<h2>Ticket assigned to you</h2>"
            f"<p>Hi {escape(assignee.name)},</p>"
            "<p>A support ticket has been assigned to you.</p>"
            f'<div style="{_DETAILS_STYLE}">'
            f"<p><strong>Ticket ID:</strong> {escape(ticket['id'])}</p>"
            f"<p><strong>Title:</strong> {escape(ticket['title'])}</p>"
            f"<p><strong>Priority:</strong> {escape(ticket['priority'])}</p>"
            f"<p><strong>Category:</strong> {escape(ticket['category'])}</p>"
            "</div>"
            f"{_button(admin_link, 'View Ticket')}"
        )
        return await self.send(assignee, f"Ticket Assigned to You: {ticket['title']}", html)

    async def send_status_update(
        self, ticket: Dict[str, Any], recipient: Recipient, old_status: str, new_status: str
    ) -> bool:
        view_link = f"{self.base_url}/tickets/{ticket['id']}"
        html = (
            "<h2>Your ticket status has been updated</h2>"
            f"<p>Hi {escape(recipient.name)},</p>"
            "<p>The status of your support ticket has been updated.</p>"
            f'<div style="{_DETAILS_STYLE}">'
            f"<p><strong>Ticket ID:</strong> {escape(ticket['id'])}</p>"
            f"<p><strong>Title:</strong> {escape(ticket['title'])}</p>"
            f"<p><strong>Status Changed:</strong> {escape(old_status)} &rarr; {escape(new_status)}</p>"
            "</div>"
            f"{_button(view_link, 'View Ticket')}"
        )
        return await self.send(recipient, f"Ticket Status Updated: {ticket['title']}", html)

    async def send_new_comment(
        self,
        ticket: Dict[str, Any],
        comment: Dict[str, Any],
        recipient: Recipient,
        commenter: Recipient,
    ) -> bool:
        """Comment notification; skips the commenter and internal notes for non-admins."""
        if recipient.id == commenter.id:
            return False
        if comment.get("is_internal") and not recipient.is_admin:
            return False

        view_link = f"{self.base_url}/tickets/{ticket['id']}"
        html = (
            "<h2>New comment on your ticket</h2>"
            f"<p>Hi {escape(recipient.name)},</p>"
            f"<p>{escape(commenter.name)} commented on ticket <strong>{escape(ticket['title'])}</strong>:</p>"
            f'<div style="{_DETAILS_STYLE}"><p>{escape(comment["content"])}</p></div>'
            f"{_button(view_link, 'View Ticket')}"
        )
        return await self.send(recipient, f"New Comment on Ticket: {ticket['title']}", html)

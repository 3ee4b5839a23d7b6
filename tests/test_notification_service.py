"""Tests for outbound ticket notifications."""

from unittest.mock import AsyncMock, patch

import pytest

from informejo.c2_notification_service.notification_service import NotificationService, Recipient
from informejo.core.config import AppConfig, SMTPConfig

TICKET = {
    "id": "0f1e2d3c-4b5a-6978-8796-a5b4c3d2e1f0",
    "title": "Printer <b>jam</b>",
    "description": "Tray two is stuck.",
    "priority": "HIGH",
    "status": "OPEN",
    "category": "HARDWARE",
}
ADMIN = Recipient(id="a1", email="admin@example.com", name="Ada", role="ADMIN")
OTHER_ADMIN = Recipient(id="a2", email="ops@example.com", name="Otto", role="ADMIN")
GUEST = Recipient(id="g1", email="guest@example.com", name="Gina", role="GUEST")


@pytest.fixture
def notifier():
    return NotificationService(SMTPConfig(enabled=False), AppConfig(base_url="https://help.example.com/"))


class TestTemplates:

    @pytest.mark.asyncio
    async def test_guest_confirmation_carries_magic_link(self, notifier):
        notifier.send = AsyncMock(return_value=True)
        link = "https://help.example.com/tickets/view/abc"

        await notifier.send_ticket_created(TICKET, GUEST, link)

        recipient, subject, html = notifier.send.await_args.args
        assert recipient == GUEST
        assert subject == "Ticket Created: Printer <b>jam</b>"
        assert link in html
        assert "expires in 3 days" in html
        assert "Printer &lt;b&gt;jam&lt;/b&gt;" in html

    @pytest.mark.asyncio
    async def test_new_ticket_skips_creator_among_admins(self, notifier):
        notifier.send = AsyncMock(return_value=True)

        sent = await notifier.send_new_ticket_to_admins(TICKET, ADMIN, [ADMIN, OTHER_ADMIN])

        assert sent == 1
        assert notifier.send.await_args.args[0] == OTHER_ADMIN
        assert "https://help.example.com/admin/tickets/" in notifier.send.await_args.args[2]

    @pytest.mark.asyncio
    async def test_comment_not_sent_to_commenter(self, notifier):
        notifier.send = AsyncMock(return_value=True)
        comment = {"content": "Done", "is_internal": False}

        assert await notifier.send_new_comment(TICKET, comment, ADMIN, ADMIN) is False
        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_internal_comment_not_sent_to_guest(self, notifier):
        notifier.send = AsyncMock(return_value=True)
        comment = {"content": "Vendor RMA", "is_internal": True}

        assert await notifier.send_new_comment(TICKET, comment, GUEST, ADMIN) is False
        assert await notifier.send_new_comment(TICKET, comment, OTHER_ADMIN, ADMIN) is True


class TestDelivery:

    @pytest.mark.asyncio
    async def test_disabled_smtp_only_logs(self, notifier):
        with patch("informejo.c2_notification_service.notification_service.smtplib.SMTP") as smtp:
            assert await notifier.send(GUEST, "Hello", "<p>Hi</p>") is True
        smtp.assert_not_called()

    @pytest.mark.asyncio
    async def test_starttls_delivery(self):
        config = SMTPConfig(enabled=True, host="smtp.example.com", port=587, user="bot", password="pw")
        notifier = NotificationService(config, AppConfig())
        with patch("informejo.c2_notification_service.notification_service.smtplib.SMTP") as smtp:
            assert await notifier.send(GUEST, "Hello", "<p>Hi</p>") is True

        smtp.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        message = smtp.return_value.send_message.call_args.args[0]
        assert message["To"] == "guest@example.com"
        smtp.return_value.starttls.assert_called_once()
        smtp.return_value.login.assert_called_once_with("bot", "pw")

    @pytest.mark.asyncio
    async def test_delivery_failure_returns_false(self):
        config = SMTPConfig(enabled=True, host="smtp.example.com")
        notifier = NotificationService(config, AppConfig())

        with patch(
            "informejo.c2_notification_service.notification_service.smtplib.SMTP",
            side_effect=OSError("connection refused"),
        ):
            assert await notifier.send(GUEST, "Hello", "<p>Hi</p>") is False

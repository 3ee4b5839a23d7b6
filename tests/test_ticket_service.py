"""Tests for ticket mutations, their events and notifications."""

import json
from unittest.mock import AsyncMock

import pytest

from informejo.c1_user_models.user import User
from informejo.c2_attachment_storage.attachment_storage import AttachmentStorage
from informejo.c2_auth_service.access_policy import Actor
from informejo.c2_event_bus.event_bus import EventBus
from informejo.c2_notification_service.notification_service import NotificationService
from informejo.c2_ticket_service.ticket_service import TicketService
from informejo.core.config import AppConfig, SMTPConfig
from informejo.core.errors import (
    ForbiddenError,
    InvalidCredentialError,
    NotFoundError,
    TicketValidationError,
)


@pytest.fixture
def bus():
    event_bus = EventBus()
    event_bus.init()
    yield event_bus
    event_bus.shutdown()


@pytest.fixture
def notifier():
    service = NotificationService(SMTPConfig(enabled=False), AppConfig(base_url="https://help.example.com"))
    for name in (
        "send_ticket_created",
        "send_new_ticket_to_admins",
        "send_ticket_assigned",
        "send_status_update",
        "send_new_comment",
    ):
        setattr(service, name, AsyncMock(return_value=True))
    return service


@pytest.fixture
def service(db_manager, bus, notifier, magic_links, tmp_path):
    storage = AttachmentStorage(tmp_path / "uploads", max_file_size=1024)
    return TicketService(db_manager, bus, notifier, magic_links, storage)


@pytest.fixture
def admin(make_user):
    return Actor(id=make_user(role="ADMIN", name="Ada Admin"), role="ADMIN", name="Ada Admin")


@pytest.fixture
def creator(make_user):
    return Actor(id=make_user(role="USER", name="Uma User"), role="USER", name="Uma User")


async def watch(bus, ticket_id):
    connection = bus.open_connection()
    bus.join(connection.id, ticket_id)
    return connection


def received(connection):
    messages = []
    while not connection.outbox.empty():
        messages.append(json.loads(connection.outbox.get_nowait()))
    return messages


async def create(service, actor, **overrides):
    fields = {
        "title": "Laptop will not boot",
        "description": "Black screen after the BIOS logo.",
        "category": "HARDWARE",
    }
    fields.update(overrides)
    return await service.create_ticket(actor, **fields)


class TestCreate:

    @pytest.mark.asyncio
    async def test_staff_create_publishes_globally_and_notifies(self, service, bus, notifier, creator, admin):
        listener = bus.open_connection()

        ticket = await create(service, creator)

        assert ticket["status"] == "OPEN"
        assert ticket["priority"] == "MEDIUM"
        assert received(listener) == [{"event": "ticket:created", "data": ticket}]
        notifier.send_ticket_created.assert_awaited_once()
        admins = notifier.send_new_ticket_to_admins.await_args.args[2]
        assert [a.id for a in admins] == [admin.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides,message", [
        ({"title": "Hi"}, "Title"),
        ({"description": "short"}, "Description"),
        ({"category": "PLUMBING"}, "category"),
        ({"priority": "URGENT"}, "priority"),
    ])
    async def test_create_validation(self, service, creator, overrides, message):
        with pytest.raises(TicketValidationError, match=message):
            await create(service, creator, **overrides)

    @pytest.mark.asyncio
    async def test_anonymous_creates_guest_and_magic_link(self, service, magic_links, db_manager, notifier):
        result = await service.create_anonymous_ticket(
            name="Gina Guest",
            email="Gina@Example.com",
            title="Cannot reach intranet",
            description="Intranet times out from home.",
            category="NETWORK",
        )

        token = result["magic_link"].rsplit("/", 1)[-1]
        user_id = await magic_links.validate(token)
        with db_manager.session_scope() as db:
            user = db.query(User).filter_by(id=user_id).first()
            assert user.email == "gina@example.com"
            assert user.role == "GUEST"
        assert result["ticket"]["created_by_id"] == user_id
        assert notifier.send_ticket_created.await_args.args[2] == result["magic_link"]

    @pytest.mark.asyncio
    async def test_anonymous_reuses_user_and_refreshes_staff_name(self, service, make_user, db_manager):
        user_id = make_user(email="sam@example.com", name="Old Name", role="USER")

        result = await service.create_anonymous_ticket(
            "Sam Staff", "sam@example.com", "Keyboard is sticky", "Several keys stick after coffee.", "HARDWARE"
        )

        assert result["ticket"]["created_by_id"] == user_id
        with db_manager.session_scope() as db:
            assert db.query(User).filter_by(id=user_id).first().name == "Sam Staff"

    @pytest.mark.asyncio
    async def test_anonymous_keeps_existing_guest_name(self, service, make_user, db_manager):
        user_id = make_user(email="g@example.com", name="First Name", role="GUEST")

        await service.create_anonymous_ticket(
            "Second Name", "g@example.com", "Mouse is broken", "The left button no longer clicks.", "HARDWARE"
        )

        with db_manager.session_scope() as db:
            assert db.query(User).filter_by(id=user_id).first().name == "First Name"

    @pytest.mark.asyncio
    async def test_second_submission_invalidates_first_link(self, service, magic_links):
        first = await service.create_anonymous_ticket(
            "Gina", "gina@example.com", "First problem", "Something is broken here.", "OTHER"
        )
        second = await service.create_anonymous_ticket(
            "Gina", "gina@example.com", "Second problem", "Something else is broken.", "OTHER"
        )

        assert await magic_links.validate(first["magic_link"].rsplit("/", 1)[-1]) is None
        assert await magic_links.validate(second["magic_link"].rsplit("/", 1)[-1]) is not None


class TestComments:

    @pytest.mark.asyncio
    async def test_comment_event_reaches_room(self, service, bus, creator):
        ticket = await create(service, creator)
        connection = await watch(bus, ticket["id"])

        comment = await service.add_comment(creator, ticket["id"], "Still broken")

        assert received(connection) == [{"event": "comment:added", "data": comment}]

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_undo_comment(self, service, bus, notifier, creator, admin):
        ticket = await create(service, creator)
        connection = await watch(bus, ticket["id"])
        notifier.send_new_comment.side_effect = RuntimeError("SMTP down")

        comment = await service.add_comment(admin, ticket["id"], "Looking into it")

        assert received(connection)[0]["data"]["id"] == comment["id"]
        view = await service.get_ticket(admin, ticket["id"])
        assert [c["id"] for c in view["comments"]] == [comment["id"]]

    @pytest.mark.asyncio
    async def test_only_admins_write_internal_comments(self, service, creator, admin):
        ticket = await create(service, creator)

        by_user = await service.add_comment(creator, ticket["id"], "Is this internal?", is_internal=True)
        by_admin = await service.add_comment(admin, ticket["id"], "Vendor RMA pending", is_internal=True)

        assert by_user["is_internal"] is False
        assert by_admin["is_internal"] is True

    @pytest.mark.asyncio
    async def test_internal_comments_hidden_from_creator(self, service, creator, admin):
        ticket = await create(service, creator)
        await service.add_comment(admin, ticket["id"], "Vendor RMA pending", is_internal=True)
        await service.add_comment(admin, ticket["id"], "We ordered a part")

        own_view = await service.get_ticket(creator, ticket["id"])
        admin_view = await service.get_ticket(admin, ticket["id"])

        assert [c["content"] for c in own_view["comments"]] == ["We ordered a part"]
        assert len(admin_view["comments"]) == 2
        assert "history" in admin_view and "history" not in own_view

    @pytest.mark.asyncio
    async def test_stranger_cannot_comment(self, service, creator, make_user):
        ticket = await create(service, creator)
        stranger = Actor(id=make_user(), role="USER")

        with pytest.raises(ForbiddenError):
            await service.add_comment(stranger, ticket["id"], "Hello")

    @pytest.mark.asyncio
    async def test_empty_comment_rejected(self, service, creator):
        ticket = await create(service, creator)
        with pytest.raises(TicketValidationError):
            await service.add_comment(creator, ticket["id"], "   ")

    @pytest.mark.asyncio
    async def test_comment_via_magic_link_requires_live_token(self, service, clock):
        result = await service.create_anonymous_ticket(
            "Gina", "gina@example.com", "Printer jam", "Paper stuck in tray two.", "HARDWARE"
        )
        token = result["magic_link"].rsplit("/", 1)[-1]

        comment = await service.add_comment_via_magic_link(token, "Any update?")
        assert comment["ticket_id"] == result["ticket"]["id"]

        clock.advance(hours=72)
        with pytest.raises(InvalidCredentialError):
            await service.add_comment_via_magic_link(token, "Hello?")


class TestUpdate:

    @pytest.mark.asyncio
    async def test_status_change_event_and_notification(self, service, bus, notifier, creator, admin):
        ticket = await create(service, creator)
        connection = await watch(bus, ticket["id"])

        result = await service.update_ticket(admin, ticket["id"], {"status": "RESOLVED"})

        assert result["changed_fields"] == ["status"]
        assert result["ticket"]["resolved_at"] is not None
        assert [m["event"] for m in received(connection)] == ["ticket:status-changed"]
        notifier.send_status_update.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_assignment_event(self, service, bus, notifier, creator, admin, make_user):
        other_admin = make_user(role="ADMIN")
        ticket = await create(service, creator)
        connection = await watch(bus, ticket["id"])

        await service.update_ticket(admin, ticket["id"], {"assigned_to_id": other_admin})

        assert [m["event"] for m in received(connection)] == ["ticket:assigned"]
        assert notifier.send_ticket_assigned.await_args.args[1].id == other_admin

    @pytest.mark.asyncio
    async def test_status_and_assignment_publish_one_event(self, service, bus, creator, admin):
        ticket = await create(service, creator)
        connection = await watch(bus, ticket["id"])

        await service.update_ticket(admin, ticket["id"], {"status": "IN_PROGRESS", "assigned_to_id": admin.id})

        assert [m["event"] for m in received(connection)] == ["ticket:status-changed"]

    @pytest.mark.asyncio
    async def test_plain_field_update_event(self, service, bus, creator):
        ticket = await create(service, creator)
        connection = await watch(bus, ticket["id"])

        await service.update_ticket(creator, ticket["id"], {"priority": "HIGH"})

        assert [m["event"] for m in received(connection)] == ["ticket:updated"]

    @pytest.mark.asyncio
    async def test_no_change_publishes_nothing(self, service, bus, creator):
        ticket = await create(service, creator, priority="LOW")
        connection = await watch(bus, ticket["id"])

        result = await service.update_ticket(creator, ticket["id"], {"priority": "LOW"})

        assert result["changed_fields"] == []
        assert received(connection) == []

    @pytest.mark.asyncio
    async def test_creator_cannot_change_status(self, service, creator):
        ticket = await create(service, creator)
        with pytest.raises(ForbiddenError):
            await service.update_ticket(creator, ticket["id"], {"status": "CLOSED"})

    @pytest.mark.asyncio
    async def test_assign_to_non_admin_rejected(self, service, creator, admin):
        ticket = await create(service, creator)
        with pytest.raises(TicketValidationError):
            await service.update_ticket(admin, ticket["id"], {"assigned_to_id": creator.id})

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, service, creator):
        ticket = await create(service, creator)
        with pytest.raises(TicketValidationError):
            await service.update_ticket(creator, ticket["id"], {"created_by_id": "someone"})

    @pytest.mark.asyncio
    async def test_history_is_recorded(self, service, creator, admin):
        ticket = await create(service, creator)
        await service.update_ticket(admin, ticket["id"], {"status": "IN_PROGRESS", "priority": "HIGH"})

        view = await service.get_ticket(admin, ticket["id"])
        change_types = [entry["change_type"] for entry in view["history"]]

        assert "created" in change_types
        assert "status_changed" in change_types
        assert "priority_changed" in change_types


class TestDeleteAndReads:

    @pytest.mark.asyncio
    async def test_delete_publishes_id_to_everyone(self, service, bus, creator, admin):
        ticket = await create(service, creator)
        listener = bus.open_connection()

        await service.delete_ticket(admin, ticket["id"])

        assert received(listener) == [{"event": "ticket:deleted", "data": {"id": ticket["id"]}}]
        with pytest.raises(NotFoundError):
            await service.get_ticket(admin, ticket["id"])

    @pytest.mark.asyncio
    async def test_delete_reaches_ticket_viewer_once(self, service, bus, creator, admin):
        ticket = await create(service, creator)
        viewer = await watch(bus, ticket["id"])

        await service.delete_ticket(admin, ticket["id"])

        assert received(viewer) == [{"event": "ticket:deleted", "data": {"id": ticket["id"]}}]

    @pytest.mark.asyncio
    async def test_creator_cannot_delete(self, service, creator):
        ticket = await create(service, creator)
        with pytest.raises(ForbiddenError):
            await service.delete_ticket(creator, ticket["id"])

    @pytest.mark.asyncio
    async def test_list_scoped_to_creator(self, service, creator, admin, make_user):
        other = Actor(id=make_user(), role="USER")
        await create(service, creator)
        await create(service, other)

        assert (await service.list_tickets(creator))["total_count"] == 1
        assert (await service.list_tickets(admin))["total_count"] == 2

    @pytest.mark.asyncio
    async def test_stats(self, service, creator, admin):
        first = await create(service, creator, priority="HIGH")
        await create(service, creator)
        await service.update_ticket(admin, first["id"], {"status": "CLOSED"})

        stats = await service.get_stats(admin)

        assert stats["total"] == 2
        assert stats["by_status"]["CLOSED"] == 1
        assert stats["by_status"]["OPEN"] == 1
        assert stats["by_priority"]["HIGH"] == 1

    @pytest.mark.asyncio
    async def test_stats_breakdowns(self, service, creator, admin):
        critical = await create(service, creator, priority="CRITICAL")
        resolved = await create(service, creator, priority="HIGH")
        await create(service, creator, priority="LOW")
        await service.update_ticket(admin, critical["id"], {"status": "IN_PROGRESS", "assigned_to_id": admin.id})
        await service.update_ticket(admin, resolved["id"], {"status": "RESOLVED"})

        stats = await service.get_stats(admin)

        assert stats["critical"] == 1
        assert stats["high_priority"] == 1
        assert stats["closed_total"] == 1
        assert stats["priority_breakdown"]["open"]["LOW"] == 1
        assert stats["priority_breakdown"]["in_progress"]["CRITICAL"] == 1
        assert stats["priority_breakdown"]["closed"]["HIGH"] == 1
        assert stats["unassigned"] == 1
        assert stats["assigned_to_me"] == 1
        assert "unassigned" not in await service.get_stats(creator)

    @pytest.mark.asyncio
    async def test_view_via_magic_link_hides_internal(self, service, admin):
        result = await service.create_anonymous_ticket(
            "Gina", "gina@example.com", "Printer jam", "Paper stuck in tray two.", "HARDWARE"
        )
        await service.add_comment(admin, result["ticket"]["id"], "Vendor RMA pending", is_internal=True)

        view = await service.view_via_magic_link(result["magic_link"].rsplit("/", 1)[-1])

        assert view["id"] == result["ticket"]["id"]
        assert view["comments"] == []

    @pytest.mark.asyncio
    async def test_view_with_bad_token(self, service):
        with pytest.raises(InvalidCredentialError):
            await service.view_via_magic_link("0" * 64)

    @pytest.mark.asyncio
    async def test_attachment_event(self, service, bus, creator):
        ticket = await create(service, creator)
        connection = await watch(bus, ticket["id"])

        attachment = await service.add_attachment(creator, ticket["id"], "log file.txt", b"boot log", "text/plain")

        assert attachment["file_path"].startswith(f"/uploads/{ticket['id']}/")
        assert received(connection) == [{"event": "attachment:added", "data": attachment}]

"""Service layer for ticket mutations, reads and their side effects."""

import asyncio
import uuid
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func

from informejo.c1_database_session.database_manager import DatabaseManager
from informejo.c1_event_enums.event_enums import TicketEvent
from informejo.c1_ticket_enums.ticket_enums import (
    HistoryChangeType,
    TicketCategory,
    TicketPriority,
    TicketStatus,
    UserRole,
)
from informejo.c1_ticket_models.ticket import Ticket, TicketAttachment, TicketComment
from informejo.c1_user_models.user import User
from informejo.c2_attachment_storage.attachment_storage import AttachmentStorage
from informejo.c2_auth_service.access_policy import AccessPolicy, Actor
from informejo.c2_event_bus.event_bus import EventBus
from informejo.c2_magic_link_service.magic_link_service import MagicLinkService, TicketAccess
from informejo.c2_notification_service.notification_service import NotificationService, Recipient
from informejo.c2_ticket_service.history_service import TicketHistoryService
from informejo.c2_ticket_service.post_commit import PostCommitActions
from informejo.c2_ticket_service.serializers import (
    serialize_attachment,
    serialize_comment,
    serialize_ticket,
)
from informejo.core.errors import (
    ForbiddenError,
    InvalidCredentialError,
    NotFoundError,
    TicketValidationError,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "category", "priority", "status", "assigned_to_id")
CLOSED_STATUSES = (TicketStatus.RESOLVED.value, TicketStatus.CLOSED.value)


def _enum_value(enum_cls, value: Any, field_name: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise TicketValidationError(f"Invalid {field_name} '{value}'. Allowed: {allowed}")


def _require_text(value: Optional[str], field_name: str, min_length: int = 1, max_length: Optional[int] = None) -> str:
    text_value = (value or "").strip()
    if len(text_value) < min_length:
        raise TicketValidationError(f"{field_name} must be at least {min_length} characters")
    if max_length is not None and len(text_value) > max_length:
        raise TicketValidationError(f"{field_name} must be at most {max_length} characters")
    return text_value


class TicketService:
    """Ticket mutations and reads.

    Every mutation follows the same shape: authorize, persist in one
    transaction (with a history entry), then run post-commit actions that
    publish one event (to the ticket room, or to every connection for
    creation and deletion, which already covers the room) and send
    notifications. Post-commit failures are logged and never undo the
    mutation.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        event_bus: EventBus,
        notifier: NotificationService,
        magic_links: MagicLinkService,
        storage: AttachmentStorage,
    ):
        """Initialize ticket service.

        Args:
            db_manager: Database manager instance
            event_bus: Room router for real-time updates
            notifier: Outbound mail sender
            magic_links: Magic-link token manager
            storage: Attachment file storage
        """
        self.db_manager = db_manager
        self.event_bus = event_bus
        self.notifier = notifier
        self.magic_links = magic_links
        self.storage = storage

    # Helpers

    @staticmethod
    def _load_ticket(db, ticket_id: str) -> Ticket:
        ticket = db.query(Ticket).filter_by(id=ticket_id).first()
        if not ticket:
            raise NotFoundError("Ticket not found")
        return ticket

    @staticmethod
    def _active_admins(db) -> List[Recipient]:
        admins = (
            db.query(User)
            .filter(User.role == UserRole.ADMIN.value, User.is_active.is_(True))
            .all()
        )
        return [Recipient.from_user(admin) for admin in admins]

    @staticmethod
    def _new_ticket(creator_id: str, title: str, description: str, category: str, priority: str) -> Ticket:
        now = datetime.utcnow()
        return Ticket(
            id=str(uuid.uuid4()),
            created_by_id=creator_id,
            title=title,
            description=description,
            category=category,
            priority=priority,
            status=TicketStatus.OPEN.value,
            created_at=now,
            updated_at=now,
        )

    def _creation_actions(
        self,
        ticket_data: Dict[str, Any],
        creator: Recipient,
        admins: List[Recipient],
        magic_link: Optional[str] = None,
    ) -> PostCommitActions:
        actions = PostCommitActions("TICKET_CREATE")
        actions.add("publish_all", self.event_bus.publish_to_all, TicketEvent.TICKET_CREATED, ticket_data)
        actions.add("notify_creator", self.notifier.send_ticket_created, ticket_data, creator, magic_link)
        actions.add("notify_admins", self.notifier.send_new_ticket_to_admins, ticket_data, creator, admins)
        return actions

    async def magic_link_actor(self, token: Optional[str]) -> Actor:
        """Actor for a full magic token.

        Raises:
            InvalidCredentialError: Token empty, unknown or expired
        """
        user_id = await self.magic_links.validate(token)
        if user_id is None:
            raise InvalidCredentialError()
        return self._actor_for_user(user_id)

    def _actor_for_user(self, user_id: str) -> Actor:
        with self.db_manager.session_scope() as db:
            user = db.query(User).filter_by(id=user_id).first()
            if not user or not user.is_active:
                raise InvalidCredentialError()
            return Actor(id=user.id, role=user.role, name=user.name, email=user.email, via_magic_link=True)

    def _latest_ticket_id(self, db, user_id: str) -> str:
        ticket = (
            db.query(Ticket)
            .filter_by(created_by_id=user_id)
            .order_by(Ticket.created_at.desc())
            .first()
        )
        if not ticket:
            raise NotFoundError("No tickets found")
        return ticket.id

    # Creation

    async def create_ticket(
        self,
        actor: Actor,
        title: str,
        description: str,
        category: str,
        priority: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a ticket for a signed-in staff member."""
        title = _require_text(title, "Title", 5, 200)
        description = _require_text(description, "Description", 10)
        category = _enum_value(TicketCategory, category, "category")
        priority = _enum_value(TicketPriority, priority or TicketPriority.MEDIUM.value, "priority")

        logger.info(f"[TICKET_CREATE] User {actor.id} creating ticket '{title[:60]}'")
        with self.db_manager.session_scope() as db:
            creator = db.query(User).filter_by(id=actor.id).first()
            if not creator:
                raise NotFoundError("User not found")

            ticket = self._new_ticket(creator.id, title, description, category, priority)
            db.add(ticket)
            db.flush()
            TicketHistoryService.record_change(
                db, ticket.id, creator.id, HistoryChangeType.CREATED,
                new_value=ticket.status,
                metadata={"title": title, "category": category, "priority": priority},
            )
            db.flush()
            db.refresh(ticket)

            ticket_data = serialize_ticket(ticket)
            creator_recipient = Recipient.from_user(creator)
            admins = self._active_admins(db)

        logger.info(f"[TICKET_CREATE] ✅ Ticket {ticket_data['id']} committed")
        await self._creation_actions(ticket_data, creator_recipient, admins).run()
        return ticket_data

    async def create_anonymous_ticket(
        self,
        name: str,
        email: str,
        title: str,
        description: str,
        category: str,
        priority: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a ticket for a visitor without a session.

        Finds or creates a GUEST user by email, creates the ticket, then
        issues a magic link that becomes the visitor's only credential.

        Returns:
            {"ticket": ..., "magic_link": url}
        """
        name = _require_text(name, "Name", 2)
        email = _require_text(email, "Email", 3).lower()
        title = _require_text(title, "Title", 5, 200)
        description = _require_text(description, "Description", 10)
        category = _enum_value(TicketCategory, category, "category")
        priority = _enum_value(TicketPriority, priority or TicketPriority.MEDIUM.value, "priority")

        with self.db_manager.session_scope() as db:
            user = db.query(User).filter(func.lower(User.email) == email).first()
            if not user:
                user = User(
                    id=str(uuid.uuid4()),
                    email=email,
                    name=name,
                    role=UserRole.GUEST.value,
                    is_active=True,
                )
                db.add(user)
                db.flush()
                logger.info(f"[ANON_TICKET] Created new GUEST user {email}")
            elif user.role != UserRole.GUEST.value and user.name != name:
                user.name = name

            ticket = self._new_ticket(user.id, title, description, category, priority)
            db.add(ticket)
            db.flush()
            TicketHistoryService.record_change(
                db, ticket.id, user.id, HistoryChangeType.CREATED,
                new_value=ticket.status,
                metadata={"title": title, "category": category, "priority": priority, "anonymous": True},
            )
            db.flush()
            db.refresh(ticket)

            ticket_data = serialize_ticket(ticket)
            creator_recipient = Recipient.from_user(user)
            admins = self._active_admins(db)
            user_id = user.id

        link = await self.magic_links.issue_link(user_id)
        logger.info(f"[ANON_TICKET] Ticket {ticket_data['id']} created by {email}")

        await self._creation_actions(ticket_data, creator_recipient, admins, magic_link=link.url).run()
        return {"ticket": ticket_data, "magic_link": link.url}

    # Reads

    async def get_ticket(self, actor: Actor, ticket_id: str) -> Dict[str, Any]:
        """Full ticket view for a staff actor."""
        with self.db_manager.session_scope() as db:
            ticket = self._load_ticket(db, ticket_id)
            if not AccessPolicy.can_access(actor, ticket):
                raise ForbiddenError()
            internal = AccessPolicy.can_see_internal(actor)
            return serialize_ticket(
                ticket,
                include_relations=True,
                include_internal=internal,
                include_history=internal,
            )

    async def list_tickets(
        self,
        actor: Actor,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """Tickets visible to the actor, newest first."""
        with self.db_manager.session_scope() as db:
            query = db.query(Ticket)
            if not actor.is_admin:
                query = query.filter(Ticket.created_by_id == actor.id)
            if status:
                query = query.filter(Ticket.status == _enum_value(TicketStatus, status, "status"))
            if priority:
                query = query.filter(Ticket.priority == _enum_value(TicketPriority, priority, "priority"))
            if assigned_to_id:
                query = query.filter(Ticket.assigned_to_id == assigned_to_id)

            total = query.count()
            tickets = query.order_by(Ticket.created_at.desc()).offset(offset).limit(limit).all()
            return {
                "tickets": [serialize_ticket(t) for t in tickets],
                "total_count": total,
                "limit": limit,
                "offset": offset,
            }

    async def get_ticket_for_access(self, access: TicketAccess) -> Dict[str, Any]:
        """Ticket a magic-link identity may see: the pinned one, else the creator's latest."""
        with self.db_manager.session_scope() as db:
            query = db.query(Ticket).filter(Ticket.created_by_id == access.user_id)
            if access.ticket_id:
                query = query.filter(Ticket.id == access.ticket_id)
            ticket = query.order_by(Ticket.created_at.desc()).first()
            if not ticket:
                raise NotFoundError("No tickets found")
            return serialize_ticket(ticket, include_relations=True, include_internal=False)

    async def view_via_magic_link(self, value: Optional[str]) -> Dict[str, Any]:
        """Resolve a token or admin short-id and return the ticket it grants.

        Raises:
            InvalidCredentialError: Nothing valid behind the value
            NotFoundError: Identity valid but it owns no matching ticket
        """
        access = await self.magic_links.resolve_access(value)
        if access is None:
            raise InvalidCredentialError()
        return await self.get_ticket_for_access(access)

    async def get_stats(self, actor: Actor) -> Dict[str, Any]:
        """Dashboard counts, scoped to the actor's own tickets unless admin.

        RESOLVED and CLOSED both count as closed for ``closed_total`` and the
        ``closed`` priority breakdown. Admins also get ``unassigned`` (open work
        with no assignee) and ``assigned_to_me``.
        """
        closed_statuses = [TicketStatus.RESOLVED.value, TicketStatus.CLOSED.value]

        with self.db_manager.session_scope() as db:
            base = db.query(Ticket)
            if not actor.is_admin:
                base = base.filter(Ticket.created_by_id == actor.id)

            def priority_counts(query) -> Dict[str, int]:
                counts = {p.value: 0 for p in TicketPriority}
                for priority, count in query.with_entities(Ticket.priority, func.count(Ticket.id)).group_by(Ticket.priority):
                    counts[priority] = count
                return counts

            by_status = {s.value: 0 for s in TicketStatus}
            for status, count in base.with_entities(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status):
                by_status[status] = count

            by_priority = priority_counts(base)

            stats = {
                "total": sum(by_status.values()),
                "by_status": by_status,
                "by_priority": by_priority,
                "closed_total": sum(by_status[s] for s in closed_statuses),
                "critical": by_priority[TicketPriority.CRITICAL.value],
                "high_priority": by_priority[TicketPriority.HIGH.value],
                "priority_breakdown": {
                    "mine": by_priority,
                    "open": priority_counts(base.filter(Ticket.status == TicketStatus.OPEN.value)),
                    "in_progress": priority_counts(base.filter(Ticket.status == TicketStatus.IN_PROGRESS.value)),
                    "closed": priority_counts(base.filter(Ticket.status.in_(closed_statuses))),
                },
            }

            if actor.is_admin:
                stats["unassigned"] = (
                    db.query(Ticket)
                    .filter(Ticket.assigned_to_id.is_(None), Ticket.status.notin_(closed_statuses))
                    .count()
                )
                stats["assigned_to_me"] = db.query(Ticket).filter(Ticket.assigned_to_id == actor.id).count()

            return stats

    # Comments

    async def add_comment(
        self,
        actor: Actor,
        ticket_id: str,
        content: str,
        is_internal: bool = False,
    ) -> Dict[str, Any]:
        """Add a comment; only admins on a staff session can make it internal."""
        content = _require_text(content, "Content")

        with self.db_manager.session_scope() as db:
            ticket = self._load_ticket(db, ticket_id)
            if not AccessPolicy.can_access(actor, ticket):
                raise ForbiddenError()

            internal = bool(is_internal) and AccessPolicy.can_comment_internal(actor)
            comment = TicketComment(
                id=str(uuid.uuid4()),
                ticket_id=ticket.id,
                user_id=actor.id,
                content=content,
                is_internal=internal,
                created_at=datetime.utcnow(),
            )
            db.add(comment)
            ticket.updated_at = datetime.utcnow()
            TicketHistoryService.record_change(
                db, ticket.id, actor.id, HistoryChangeType.COMMENTED,
                new_value=comment.id,
                metadata={"is_internal": internal},
            )
            db.flush()
            db.refresh(comment)

            comment_data = serialize_comment(comment)
            ticket_data = serialize_ticket(ticket)
            commenter = Recipient.from_user(comment.user)
            interested = [Recipient.from_user(ticket.created_by)]
            if ticket.assigned_to and ticket.assigned_to_id != ticket.created_by_id:
                interested.append(Recipient.from_user(ticket.assigned_to))

        logger.info(f"[COMMENT] {actor.id} commented on ticket {ticket_id} (internal={internal})")

        actions = PostCommitActions("COMMENT")
        actions.add("publish_room", self.event_bus.publish_to_room, ticket_id, TicketEvent.COMMENT_ADDED, comment_data)
        for recipient in interested:
            actions.add(
                f"notify_{recipient.id}",
                self.notifier.send_new_comment,
                ticket_data, comment_data, recipient, commenter,
            )
        await actions.run()
        return comment_data

    async def add_comment_via_magic_link(self, token: Optional[str], content: str) -> Dict[str, Any]:
        """Comment as the token's owner on their most recent ticket."""
        actor = await self.magic_link_actor(token)
        with self.db_manager.session_scope() as db:
            ticket_id = self._latest_ticket_id(db, actor.id)
        return await self.add_comment(actor, ticket_id, content, is_internal=False)

    # Attachments

    async def add_attachment(
        self,
        actor: Actor,
        ticket_id: str,
        file_name: str,
        content: bytes,
        mime_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store a file and record it against the ticket."""
        with self.db_manager.session_scope() as db:
            ticket = self._load_ticket(db, ticket_id)
            if not AccessPolicy.can_access(actor, ticket):
                raise ForbiddenError()

        stored = await asyncio.to_thread(self.storage.save, ticket_id, file_name, content)

        with self.db_manager.session_scope() as db:
            ticket = self._load_ticket(db, ticket_id)
            attachment = TicketAttachment(
                id=str(uuid.uuid4()),
                ticket_id=ticket.id,
                uploaded_by_id=actor.id,
                file_name=file_name,
                file_path=stored.public_path,
                file_size=stored.size,
                mime_type=mime_type,
                created_at=datetime.utcnow(),
            )
            db.add(attachment)
            ticket.updated_at = datetime.utcnow()
            TicketHistoryService.record_change(
                db, ticket.id, actor.id, HistoryChangeType.ATTACHMENT_ADDED,
                new_value=file_name,
                metadata={"file_path": stored.public_path, "file_size": stored.size},
            )
            db.flush()
            db.refresh(attachment)
            attachment_data = serialize_attachment(attachment)

        logger.info(f"[ATTACHMENT] {actor.id} attached {file_name} to ticket {ticket_id}")

        actions = PostCommitActions("ATTACHMENT")
        actions.add("publish_room", self.event_bus.publish_to_room, ticket_id, TicketEvent.ATTACHMENT_ADDED, attachment_data)
        await actions.run()
        return attachment_data

    async def get_attachment_file(self, actor: Actor, ticket_id: str, stored_name: str) -> Dict[str, Any]:
        """Locate a stored attachment the actor may download.

        Only files recorded against the ticket are served.

        Returns:
            {"path": Path, "file_name": str, "mime_type": str or None}

        Raises:
            NotFoundError: No such ticket, attachment record or file
            ForbiddenError: Actor may not read the ticket
        """
        public_path = f"/uploads/{ticket_id}/{stored_name}"
        with self.db_manager.session_scope() as db:
            ticket = self._load_ticket(db, ticket_id)
            if not AccessPolicy.can_access(actor, ticket):
                raise ForbiddenError()
            attachment = (
                db.query(TicketAttachment)
                .filter_by(ticket_id=ticket_id, file_path=public_path)
                .first()
            )
            if not attachment:
                raise NotFoundError("File not found")
            file_name = attachment.file_name
            mime_type = attachment.mime_type

        path = self.storage.open_path(ticket_id, stored_name)
        return {"path": path, "file_name": file_name, "mime_type": mime_type}

    async def add_attachment_via_magic_link(
        self,
        token: Optional[str],
        file_name: str,
        content: bytes,
        mime_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        actor = await self.magic_link_actor(token)
        with self.db_manager.session_scope() as db:
            ticket_id = self._latest_ticket_id(db, actor.id)
        return await self.add_attachment(actor, ticket_id, file_name, content, mime_type)

    # Updates

    async def update_ticket(self, actor: Actor, ticket_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update status, priority, category, assignment or text.

        Returns:
            {"ticket": ..., "changed_fields": [...]}; no event is published
            when nothing actually changed

        Raises:
            TicketValidationError: Unknown field or invalid value
            ForbiddenError: Actor may not change these fields
        """
        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise TicketValidationError(f"Cannot update fields: {sorted(unknown)}")
        if not updates:
            raise TicketValidationError("No fields to update")

        normalized: Dict[str, Any] = {}
        for field_name, value in updates.items():
            if field_name == "title":
                normalized[field_name] = _require_text(value, "Title", 5, 200)
            elif field_name == "description":
                normalized[field_name] = _require_text(value, "Description", 10)
            elif field_name == "category":
                normalized[field_name] = _enum_value(TicketCategory, value, "category")
            elif field_name == "priority":
                normalized[field_name] = _enum_value(TicketPriority, value, "priority")
            elif field_name == "status":
                normalized[field_name] = _enum_value(TicketStatus, value, "status")
            else:
                normalized[field_name] = value or None

        with self.db_manager.session_scope() as db:
            ticket = self._load_ticket(db, ticket_id)
            if not AccessPolicy.can_access(actor, ticket):
                raise ForbiddenError()
            if not AccessPolicy.can_update(actor, ticket, normalized.keys()):
                raise ForbiddenError("Only administrators can change status or assignment")

            old_status = ticket.status
            old_assignee = ticket.assigned_to_id
            changed: List[str] = []

            for field_name, value in normalized.items():
                current = getattr(ticket, field_name)
                if current == value:
                    continue

                if field_name == "assigned_to_id" and value is not None:
                    assignee = db.query(User).filter_by(id=value).first()
                    if not assignee or not assignee.is_active or assignee.role != UserRole.ADMIN.value:
                        raise TicketValidationError("Tickets can only be assigned to active administrators")

                setattr(ticket, field_name, value)
                changed.append(field_name)

                if field_name == "status":
                    TicketHistoryService.record_change(
                        db, ticket.id, actor.id, HistoryChangeType.STATUS_CHANGED, current, value
                    )
                    if value in CLOSED_STATUSES:
                        ticket.resolved_at = ticket.resolved_at or datetime.utcnow()
                    else:
                        ticket.resolved_at = None
                elif field_name == "priority":
                    TicketHistoryService.record_change(
                        db, ticket.id, actor.id, HistoryChangeType.PRIORITY_CHANGED, current, value
                    )
                elif field_name == "assigned_to_id":
                    TicketHistoryService.record_change(
                        db, ticket.id, actor.id, HistoryChangeType.ASSIGNED, current, value
                    )
                else:
                    TicketHistoryService.record_change(
                        db, ticket.id, actor.id, HistoryChangeType.FIELD_UPDATED,
                        metadata={"field_name": field_name},
                    )

            if changed:
                ticket.updated_at = datetime.utcnow()
            db.flush()
            db.refresh(ticket)

            ticket_data = serialize_ticket(ticket)
            creator = Recipient.from_user(ticket.created_by)
            assignee_recipient = Recipient.from_user(ticket.assigned_to) if ticket.assigned_to else None

        if not changed:
            return {"ticket": ticket_data, "changed_fields": []}

        logger.info(f"[TICKET_UPDATE] {actor.id} updated ticket {ticket_id}: {changed}")

        status_changed = "status" in changed
        assignment_changed = "assigned_to_id" in changed
        if status_changed:
            event = TicketEvent.TICKET_STATUS_CHANGED
        elif assignment_changed:
            event = TicketEvent.TICKET_ASSIGNED
        else:
            event = TicketEvent.TICKET_UPDATED

        actions = PostCommitActions("TICKET_UPDATE")
        actions.add("publish_room", self.event_bus.publish_to_room, ticket_id, event, ticket_data)
        if status_changed and creator.id != actor.id:
            actions.add(
                "notify_status",
                self.notifier.send_status_update,
                ticket_data, creator, old_status, ticket_data["status"],
            )
        if assignment_changed and assignee_recipient and assignee_recipient.id != actor.id:
            actions.add("notify_assignee", self.notifier.send_ticket_assigned, ticket_data, assignee_recipient)
        await actions.run()

        logger.debug(f"[TICKET_UPDATE] Assignee {old_assignee} -> {ticket_data['assigned_to_id']}")
        return {"ticket": ticket_data, "changed_fields": changed}

    async def delete_ticket(self, actor: Actor, ticket_id: str) -> Dict[str, Any]:
        """Delete a ticket with its comments, attachments and history (admins only)."""
        with self.db_manager.session_scope() as db:
            ticket = self._load_ticket(db, ticket_id)
            if not AccessPolicy.can_delete(actor, ticket):
                raise ForbiddenError()
            db.delete(ticket)

        logger.info(f"[TICKET_DELETE] {actor.id} deleted ticket {ticket_id}")

        payload = {"id": ticket_id}
        actions = PostCommitActions("TICKET_DELETE")
        actions.add("publish_all", self.event_bus.publish_to_all, TicketEvent.TICKET_DELETED, payload)
        await actions.run()
        return payload

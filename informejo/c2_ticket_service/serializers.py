"""Dictionary views of ticket entities, as sent over HTTP and the event bus."""

from typing import Any, Dict, Optional

from informejo.c2_ticket_service.history_service import TicketHistoryService


def _iso(value) -> Optional[str]:
    return value.isoformat() + "Z" if value else None


def serialize_user(user) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


def serialize_comment(comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "ticket_id": comment.ticket_id,
        "content": comment.content,
        "is_internal": bool(comment.is_internal),
        "created_at": _iso(comment.created_at),
        "user": serialize_user(comment.user),
    }


def serialize_attachment(attachment) -> Dict[str, Any]:
    uploader = attachment.uploaded_by
    return {
        "id": attachment.id,
        "ticket_id": attachment.ticket_id,
        "file_name": attachment.file_name,
        "file_path": attachment.file_path,
        "file_size": attachment.file_size,
        "mime_type": attachment.mime_type,
        "created_at": _iso(attachment.created_at),
        "uploaded_by": (
            {"id": uploader.id, "name": uploader.name, "email": uploader.email}
            if uploader
            else None
        ),
    }


def serialize_ticket(
    ticket,
    include_relations: bool = False,
    include_internal: bool = False,
    include_history: bool = False,
) -> Dict[str, Any]:
    """Ticket with creator and assignee; comments/attachments on request.

    Internal comments are dropped unless include_internal is set.
    """
    data = {
        "id": ticket.id,
        "title": ticket.title,
        "description": ticket.description,
        "category": ticket.category,
        "priority": ticket.priority,
        "status": ticket.status,
        "created_by_id": ticket.created_by_id,
        "assigned_to_id": ticket.assigned_to_id,
        "created_at": _iso(ticket.created_at),
        "updated_at": _iso(ticket.updated_at),
        "resolved_at": _iso(ticket.resolved_at),
        "created_by": serialize_user(ticket.created_by),
        "assigned_to": serialize_user(ticket.assigned_to),
    }
    if include_relations:
        data["comments"] = [
            serialize_comment(c)
            for c in ticket.comments
            if include_internal or not c.is_internal
        ]
        data["attachments"] = [serialize_attachment(a) for a in ticket.attachments]
    if include_history:
        data["history"] = TicketHistoryService.serialize(ticket.history)
    return data

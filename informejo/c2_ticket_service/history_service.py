"""Service layer for ticket history and audit trail."""

from datetime import datetime
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session

from informejo.c1_ticket_enums.ticket_enums import HistoryChangeType
from informejo.c1_ticket_models.ticket import TicketHistory


class TicketHistoryService:
    """Records every state change made to a ticket."""

    @staticmethod
    def record_change(
        db: Session,
        ticket_id: str,
        user_id: str,
        change_type: HistoryChangeType,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TicketHistory:
        """
        Record a change inside the caller's transaction.

        Args:
            db: Open session; the entry commits with the mutation it describes
            ticket_id: ID of the ticket
            user_id: ID of the user making the change
            change_type: Kind of change
            old_value: Previous value
            new_value: New value
            metadata: Additional context

        Returns:
            The pending history entry
        """
        change_type = HistoryChangeType(change_type)
        field_name = None
        if change_type == HistoryChangeType.FIELD_UPDATED and metadata:
            field_name = metadata.get("field_name")

        entry = TicketHistory(
            ticket_id=ticket_id,
            user_id=user_id,
            change_type=change_type.value,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            change_description=TicketHistoryService._generate_description(
                change_type, old_value, new_value, metadata
            ),
            change_metadata=metadata,
            changed_at=datetime.utcnow(),
        )
        db.add(entry)
        return entry

    @staticmethod
    def serialize(entries: List[TicketHistory]) -> List[Dict[str, Any]]:
        """History entries as API dictionaries, oldest first."""
        return [
            {
                "id": h.id,
                "change_type": h.change_type,
                "field_name": h.field_name,
                "old_value": h.old_value,
                "new_value": h.new_value,
                "change_description": h.change_description,
                "metadata": h.change_metadata,
                "changed_at": h.changed_at.isoformat() + "Z",
                "user_id": h.user_id,
            }
            for h in sorted(entries, key=lambda h: h.changed_at)
        ]

    @staticmethod
    def _generate_description(
        change_type: HistoryChangeType,
        old_value: Optional[str],
        new_value: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> str:
        """Human-readable description for a change."""
        if change_type == HistoryChangeType.CREATED:
            return "Ticket created"

        elif change_type == HistoryChangeType.STATUS_CHANGED:
            return f"Status changed from {old_value} to {new_value}"

        elif change_type == HistoryChangeType.PRIORITY_CHANGED:
            return f"Priority changed from {old_value} to {new_value}"

        elif change_type == HistoryChangeType.ASSIGNED:
            if not new_value:
                return f"Unassigned from {old_value}"
            if old_value:
                return f"Reassigned from {old_value} to {new_value}"
            return f"Assigned to {new_value}"

        elif change_type == HistoryChangeType.COMMENTED:
            if metadata and metadata.get("is_internal"):
                return "Added internal note"
            return "Added comment"

        elif change_type == HistoryChangeType.ATTACHMENT_ADDED:
            return f"Attached {new_value}"

        elif change_type == HistoryChangeType.FIELD_UPDATED:
            field_name = metadata.get("field_name") if metadata else "field"
            return f"Updated {field_name}"

        return f"Changed {change_type.value}"

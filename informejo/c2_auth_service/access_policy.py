"""Authorization rules for ticket access."""

from dataclasses import dataclass
from typing import Iterable

from informejo.c1_ticket_enums.ticket_enums import UserRole

# Fields only administrators may change
ADMIN_ONLY_FIELDS = frozenset({"status", "assigned_to_id"})


@dataclass(frozen=True)
class Actor:
    """The identity performing a request.

    via_magic_link is True when the identity came from a magic token or
    short-id rather than a staff session.
    """

    id: str
    role: str
    name: str = ""
    email: str = ""
    via_magic_link: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class AccessPolicy:
    """Who may read and change which tickets."""

    @staticmethod
    def can_access(actor: Actor, ticket) -> bool:
        """Admins see everything; everyone else only tickets they created."""
        if actor.is_admin and not actor.via_magic_link:
            return True
        return ticket.created_by_id == actor.id

    @staticmethod
    def can_see_internal(actor: Actor) -> bool:
        return actor.is_admin and not actor.via_magic_link

    @staticmethod
    def can_comment_internal(actor: Actor) -> bool:
        return AccessPolicy.can_see_internal(actor)

    @staticmethod
    def can_update(actor: Actor, ticket, fields: Iterable[str]) -> bool:
        """Creators may edit their own ticket's text and priority; status and assignment are admin-only."""
        if not AccessPolicy.can_access(actor, ticket):
            return False
        if actor.is_admin and not actor.via_magic_link:
            return True
        return not (set(fields) & ADMIN_ONLY_FIELDS)

    @staticmethod
    def can_delete(actor: Actor, ticket) -> bool:
        return actor.is_admin and not actor.via_magic_link

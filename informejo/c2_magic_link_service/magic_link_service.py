"""Magic-link token lifecycle for passwordless ticket access."""

import re
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from informejo.c1_database_session.database_manager import DatabaseManager
from informejo.c1_ticket_models.ticket import Ticket
from informejo.c1_user_models.user import User
from informejo.core.config import MagicLinkConfig
from informejo.core.errors import NotFoundError

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s_-]+")


def normalize_ticket_id(value: str) -> str:
    """Strip separator characters and lower-case a ticket id or prefix."""
    return _SEPARATORS.sub("", value).lower()


@dataclass(frozen=True)
class MagicLink:
    """A freshly issued token and the URL that carries it."""

    user_id: str
    token: str
    url: str
    expires_at: datetime


@dataclass(frozen=True)
class TicketAccess:
    """Identity resolved from a magic token or an admin short-id.

    ticket_id is set only when a short-id pinned a specific ticket.
    """

    user_id: str
    ticket_id: Optional[str] = None


class MagicLinkService:
    """Issues, validates and invalidates magic-link tokens.

    Tokens are stored on the user row, one per user. Every failure path of
    validate/resolve returns None so callers cannot tell "unknown" from
    "expired".
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        config: MagicLinkConfig,
        base_url: str,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize magic-link service.

        Args:
            db_manager: Database manager owning the users table
            config: Expiry and short-id settings
            base_url: Public base URL used to build links
            clock: Returns the current naive UTC time (overridable in tests)
        """
        self.db_manager = db_manager
        self.config = config
        self.base_url = base_url.rstrip("/")
        self.clock = clock or datetime.utcnow

    def generate_token(self) -> str:
        """Generate an opaque hex token."""
        return secrets.token_hex(self.config.token_bytes)

    def build_url(self, token: str) -> str:
        """Build the public magic-link URL for a token."""
        return f"{self.base_url}/tickets/view/{token}"

    async def issue_link(self, user_id: str) -> MagicLink:
        """Create or replace the token for a user.

        Raises:
            NotFoundError: If the user does not exist
        """
        token = self.generate_token()
        expires_at = self.clock() + timedelta(hours=self.config.expiry_hours)

        with self.db_manager.session_scope() as db:
            user = db.query(User).filter_by(id=user_id).first()
            if not user:
                raise NotFoundError(f"User not found: {user_id}")
            user.magic_token = token
            user.magic_token_expires_at = expires_at

        logger.info(f"[MAGIC_LINK] Issued token for user {user_id}, expires {expires_at.isoformat()}")
        return MagicLink(user_id=user_id, token=token, url=self.build_url(token), expires_at=expires_at)

    async def issue(self, user_id: str) -> str:
        """Issue a token for a user and return the magic-link URL."""
        link = await self.issue_link(user_id)
        return link.url

    async def validate(self, token: Optional[str]) -> Optional[str]:
        """Return the user id owning a live token, or None.

        Validation never consumes the token.
        """
        if not token or not isinstance(token, str) or not token.strip():
            logger.debug("[MAGIC_LINK] Rejected empty token")
            return None

        try:
            with self.db_manager.session_scope() as db:
                user = db.query(User).filter_by(magic_token=token.strip()).first()
                if not user:
                    logger.info("[MAGIC_LINK] No user found for token")
                    return None
                if not self._is_live(user.magic_token_expires_at):
                    logger.info(f"[MAGIC_LINK] Token expired for user {user.id}")
                    return None
                return user.id
        except SQLAlchemyError as e:
            logger.error(f"[MAGIC_LINK] Error validating token: {e}")
            return None

    async def invalidate(self, user_id: str) -> None:
        """Clear the token and expiry for a user."""
        with self.db_manager.session_scope() as db:
            user = db.query(User).filter_by(id=user_id).first()
            if not user:
                raise NotFoundError(f"User not found: {user_id}")
            user.magic_token = None
            user.magic_token_expires_at = None
        logger.info(f"[MAGIC_LINK] Invalidated token for user {user_id}")

    def is_short_id(self, value: Optional[str]) -> bool:
        """Whether an input is long enough to be a ticket-id prefix but shorter than a token."""
        if not value or not isinstance(value, str):
            return False
        length = len(value.strip())
        return self.config.short_id_min_length <= length <= self.config.short_id_max_length

    async def resolve_short_id(self, value: Optional[str]) -> Optional[TicketAccess]:
        """Resolve a ticket-id prefix to its creator's identity.

        Only tickets whose creator currently holds a live token qualify. An
        exact normalized match wins over prefix matches; otherwise the most
        recently created candidate is used.
        """
        if not self.is_short_id(value):
            return None

        prefix = normalize_ticket_id(value.strip())
        if len(prefix) < self.config.short_id_min_length:
            logger.info("[MAGIC_LINK] Short id too short once separators are removed")
            return None

        try:
            with self.db_manager.session_scope() as db:
                normalized_column = func.lower(func.replace(Ticket.id, "-", ""))
                candidates = (
                    db.query(Ticket)
                    .filter(normalized_column.startswith(prefix, autoescape=True))
                    .order_by(Ticket.created_at.desc())
                    .all()
                )

                found = None
                for ticket in candidates:
                    normalized = normalize_ticket_id(ticket.id)
                    if not normalized.startswith(prefix):
                        continue
                    creator = ticket.created_by
                    if not creator or not creator.magic_token:
                        continue
                    if not self._is_live(creator.magic_token_expires_at):
                        continue
                    if normalized == prefix:
                        found = ticket
                        break
                    if found is None:
                        found = ticket

                if found is None:
                    logger.info(f"[MAGIC_LINK] No live ticket for short id ({len(candidates)} candidates)")
                    return None

                return TicketAccess(user_id=found.created_by_id, ticket_id=found.id)
        except SQLAlchemyError as e:
            logger.error(f"[MAGIC_LINK] Error resolving short id: {e}")
            return None

    async def resolve_access(self, value: Optional[str]) -> Optional[TicketAccess]:
        """Resolve whatever a magic-link route received: short-id or full token."""
        if self.is_short_id(value):
            return await self.resolve_short_id(value)
        user_id = await self.validate(value)
        if user_id is None:
            return None
        return TicketAccess(user_id=user_id)

    def _is_live(self, expires_at: Optional[datetime]) -> bool:
        if expires_at is None:
            return False
        return self.clock() < expires_at

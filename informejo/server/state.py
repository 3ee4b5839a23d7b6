"""Server-wide state shared by every router."""

import logging
from typing import Optional

from informejo.c1_database_session.database_manager import DatabaseManager, resolve_database_path
from informejo.c2_attachment_storage.attachment_storage import AttachmentStorage
from informejo.c2_auth_service.auth_service import StaffAuthenticator
from informejo.c2_event_bus.event_bus import EventBus
from informejo.c2_magic_link_service.magic_link_service import MagicLinkService
from informejo.c2_notification_service.notification_service import NotificationService
from informejo.c2_ticket_service.ticket_service import TicketService
from informejo.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ServerState:
    """Global server state."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.db_manager: Optional[DatabaseManager] = None
        self.event_bus: EventBus = EventBus(outbox_size=self.settings.realtime.outbox_size)
        self.magic_links: Optional[MagicLinkService] = None
        self.notifier: Optional[NotificationService] = None
        self.storage: Optional[AttachmentStorage] = None
        self.authenticator: Optional[StaffAuthenticator] = None
        self.ticket_service: Optional[TicketService] = None

    async def initialize(self, database_path: Optional[str] = None):
        """Initialize server components."""
        settings = self.settings

        # Initialize database
        self.db_manager = DatabaseManager(resolve_database_path(database_path))
        self.db_manager.create_tables()

        self.event_bus.init()

        self.magic_links = MagicLinkService(
            db_manager=self.db_manager,
            config=settings.magic_link,
            base_url=settings.app.base_url,
        )
        self.notifier = NotificationService(settings.smtp, settings.app)
        self.storage = AttachmentStorage(settings.upload.upload_dir, settings.upload.max_file_size)
        self.authenticator = StaffAuthenticator(self.db_manager, settings.auth)

        self.ticket_service = TicketService(
            db_manager=self.db_manager,
            event_bus=self.event_bus,
            notifier=self.notifier,
            magic_links=self.magic_links,
            storage=self.storage,
        )

        if not settings.smtp.enabled:
            logger.warning("SMTP disabled - notifications will only be logged")
        logger.info("Server state initialized successfully")

    async def shutdown(self):
        """Close realtime connections and release the database."""
        self.event_bus.shutdown()
        if self.db_manager is not None:
            self.db_manager.dispose()
        logger.info("Server state shut down")

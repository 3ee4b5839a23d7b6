"""Database manager and session utilities for Informejo."""

import os
import logging
import threading
from pathlib import Path
from typing import Dict, Optional
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import text

from informejo.c1_database_session.base import Base

logger = logging.getLogger(__name__)

TEST_DB_ENV = "INFORMEJO_TEST_DB"


class DatabaseManager:
    """Manager for database operations."""

    def __init__(self, database_path: str = "informejo.db"):
        """Initialize database connection."""
        self.database_path = database_path
        if database_path != ":memory:":
            Path(database_path).parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(
            f"sqlite:///{database_path}",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    def create_tables(self):
        """Create all database tables."""
        # Register every model on Base.metadata before create_all
        import informejo.c1_user_models  # noqa: F401
        import informejo.c1_ticket_models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

        # Create indexes for performance optimization
        self._create_indexes()

    def _create_indexes(self):
        """Create database indexes for the hot lookup paths."""
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    text(
                        """
                    CREATE INDEX IF NOT EXISTS idx_tickets_status_priority
                    ON tickets(status, priority)
                """
                    )
                )

                conn.execute(
                    text(
                        """
                    CREATE INDEX IF NOT EXISTS idx_tickets_created_by
                    ON tickets(created_by_id, created_at)
                """
                    )
                )

                conn.execute(
                    text(
                        """
                    CREATE INDEX IF NOT EXISTS idx_tickets_assigned_to
                    ON tickets(assigned_to_id)
                """
                    )
                )

                conn.execute(
                    text(
                        """
                    CREATE INDEX IF NOT EXISTS idx_ticket_comments_ticket_id
                    ON ticket_comments(ticket_id)
                """
                    )
                )

                conn.execute(
                    text(
                        """
                    CREATE INDEX IF NOT EXISTS idx_ticket_attachments_ticket_id
                    ON ticket_attachments(ticket_id)
                """
                    )
                )

                conn.commit()
                logger.info("Created performance indexes for ticket tables")
        except Exception as e:
            logger.debug(f"Index creation (may already exist): {e}")

    def get_session(self):
        """Get a database session."""
        return self.SessionLocal()

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope bound to this manager."""
        db = self.get_session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self):
        """Close pooled connections."""
        self.engine.dispose()


_managers: Dict[str, DatabaseManager] = {}
_managers_lock = threading.Lock()


def resolve_database_path(database_path: Optional[str] = None) -> str:
    """Pick the database path: explicit argument, test override, then settings."""
    if database_path is not None:
        return database_path
    override = os.environ.get(TEST_DB_ENV)
    if override:
        return override
    from informejo.core.config import get_settings
    return str(get_settings().database.database_path)


def get_database_manager(database_path: Optional[str] = None) -> DatabaseManager:
    """Return the shared DatabaseManager for a path, creating it on first use."""
    path = resolve_database_path(database_path)
    with _managers_lock:
        manager = _managers.get(path)
        if manager is None:
            manager = DatabaseManager(path)
            _managers[path] = manager
        return manager

"""Database session management for Informejo."""

from informejo.c1_database_session.base import Base
from informejo.c1_database_session.database_manager import DatabaseManager, get_database_manager

__all__ = ["Base", "DatabaseManager", "get_database_manager"]

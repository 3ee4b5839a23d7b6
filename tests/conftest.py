"""Pytest configuration and shared fixtures for Informejo tests."""

import uuid
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from informejo.c1_database_session.database_manager import DatabaseManager
from informejo.c1_ticket_models.ticket import Ticket
from informejo.c1_user_models.user import User
from informejo.c2_auth_service.auth_service import create_staff_token
from informejo.c2_magic_link_service.magic_link_service import MagicLinkService
from informejo.core.config import (
    AppConfig,
    AuthConfig,
    MagicLinkConfig,
    RealtimeConfig,
    Settings,
    SMTPConfig,
    UploadConfig,
)
from informejo.server.app import create_app

BASE_URL = "https://help.example.com"


class FakeClock:
    """Controllable replacement for datetime.utcnow."""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db_manager(tmp_path):
    """Fresh SQLite database with all tables."""
    manager = DatabaseManager(str(tmp_path / "informejo_test.db"))
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def magic_links(db_manager, clock):
    return MagicLinkService(db_manager, MagicLinkConfig(), BASE_URL, clock=clock)


def _create_user(db_manager, email=None, name="Test User", role="USER", is_active=True):
    user_id = str(uuid.uuid4())
    with db_manager.session_scope() as db:
        db.add(User(
            id=user_id,
            email=email or f"{user_id[:8]}@example.com",
            name=name,
            role=role,
            is_active=is_active,
        ))
    return user_id


def _create_ticket(db_manager, created_by_id, ticket_id=None, created_at=None, title="Printer on fire"):
    ticket_id = ticket_id or str(uuid.uuid4())
    created_at = created_at or datetime.utcnow()
    with db_manager.session_scope() as db:
        db.add(Ticket(
            id=ticket_id,
            created_by_id=created_by_id,
            title=title,
            description="The printer on floor 3 is smoking.",
            category="HARDWARE",
            priority="HIGH",
            status="OPEN",
            created_at=created_at,
            updated_at=created_at,
        ))
    return ticket_id


@pytest.fixture
def make_user(db_manager):
    """Factory creating users in the fixture database; returns the user id."""
    def factory(**kwargs):
        return _create_user(db_manager, **kwargs)
    return factory


@pytest.fixture
def make_ticket(db_manager):
    """Factory creating tickets in the fixture database; returns the ticket id."""
    def factory(created_by_id, **kwargs):
        return _create_ticket(db_manager, created_by_id, **kwargs)
    return factory


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the developer environment."""
    return Settings(
        app=AppConfig(base_url=BASE_URL),
        magic_link=MagicLinkConfig(),
        realtime=RealtimeConfig(outbox_size=50, sse_keepalive_seconds=1.0),
        smtp=SMTPConfig(enabled=False),
        auth=AuthConfig(jwt_secret_key="test-secret"),
        upload=UploadConfig(upload_dir=tmp_path / "uploads"),
    )


@pytest.fixture
def app(settings, tmp_path):
    return create_app(settings, database_path=str(tmp_path / "app.db"))


@pytest.fixture
def client(app):
    """TestClient with the lifespan running (components initialized)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def server_state(app, client):
    return app.state.server_state


@pytest.fixture
def staff(server_state, settings):
    """Factory creating a staff user in the app database.

    Returns:
        (user_id, headers) where headers carry a bearer token
    """
    def factory(role="USER", name="Staff Member", email=None):
        user_id = _create_user(server_state.db_manager, email=email, name=name, role=role)
        with server_state.db_manager.session_scope() as db:
            user = db.query(User).filter_by(id=user_id).first()
            token = create_staff_token(user, settings.auth)
        return user_id, {"Authorization": f"Bearer {token}"}
    return factory


@pytest.fixture
def anonymous_ticket(client):
    """Submit an anonymous ticket; returns the response body."""
    def submit(email="guest@example.com", name="Gina Guest", title="VPN keeps dropping"):
        response = client.post("/api/tickets/anonymous", json={
            "name": name,
            "email": email,
            "title": title,
            "description": "The VPN disconnects every five minutes.",
            "category": "NETWORK",
        })
        assert response.status_code == 201, response.text
        return response.json()
    return submit

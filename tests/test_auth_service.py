"""Tests for staff bearer tokens."""

from datetime import timedelta

import pytest

from informejo.c2_auth_service.auth_service import (
    StaffAuthenticator,
    create_access_token,
    verify_access_token,
)
from informejo.core.config import AuthConfig
from informejo.core.errors import InvalidCredentialError

CONFIG = AuthConfig(jwt_secret_key="unit-test-secret")


class TestJWTTokens:

    def test_create_and_verify(self):
        token = create_access_token({"sub": "user-1"}, config=CONFIG)
        payload = verify_access_token(token, CONFIG)
        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"

    def test_expired_token(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1), config=CONFIG)
        assert verify_access_token(token, CONFIG) is None

    def test_wrong_secret(self):
        token = create_access_token({"sub": "user-1"}, config=CONFIG)
        assert verify_access_token(token, AuthConfig(jwt_secret_key="other")) is None

    def test_garbage(self):
        assert verify_access_token("not-a-jwt", CONFIG) is None


class TestStaffAuthenticator:

    @pytest.fixture
    def authenticator(self, db_manager):
        return StaffAuthenticator(db_manager, CONFIG)

    def _header(self, user_id):
        return f"Bearer {create_access_token({'sub': user_id}, config=CONFIG)}"

    def test_active_staff_user(self, authenticator, make_user):
        user_id = make_user(role="ADMIN", name="Ada")
        actor = authenticator.authenticate(self._header(user_id))
        assert actor.id == user_id
        assert actor.is_admin
        assert actor.via_magic_link is False

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Bearer nonsense"])
    def test_bad_headers(self, authenticator, header):
        with pytest.raises(InvalidCredentialError):
            authenticator.authenticate(header)

    def test_guest_rejected(self, authenticator, make_user):
        user_id = make_user(role="GUEST")
        with pytest.raises(InvalidCredentialError):
            authenticator.authenticate(self._header(user_id))

    def test_inactive_rejected(self, authenticator, make_user):
        user_id = make_user(is_active=False)
        with pytest.raises(InvalidCredentialError):
            authenticator.authenticate(self._header(user_id))

    def test_unknown_user_rejected(self, authenticator):
        with pytest.raises(InvalidCredentialError):
            authenticator.authenticate(self._header("ghost"))

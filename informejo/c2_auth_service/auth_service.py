"""Staff bearer tokens (JWT) and actor resolution."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from informejo.c1_database_session.database_manager import DatabaseManager
from informejo.c1_user_models.user import User
from informejo.c2_auth_service.access_policy import Actor
from informejo.core.config import AuthConfig, get_settings
from informejo.core.errors import InvalidCredentialError

logger = logging.getLogger(__name__)


def get_auth_config() -> AuthConfig:
    """Auth settings from the global configuration."""
    return get_settings().auth


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    config: Optional[AuthConfig] = None,
) -> str:
    """Create a signed staff access token.

    Args:
        data: Claims to embed; "sub" must be the user id
        expires_delta: Lifetime override
        config: Auth settings (defaults to global settings)

    Returns:
        Encoded JWT
    """
    config = config or get_auth_config()
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=config.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(
        to_encode,
        config.jwt_secret_key.get_secret_value(),
        algorithm=config.jwt_algorithm,
    )


def verify_access_token(token: str, config: Optional[AuthConfig] = None) -> Optional[Dict[str, Any]]:
    """Decode a staff access token; None if invalid, expired or of the wrong type."""
    config = config or get_auth_config()
    try:
        payload = jwt.decode(
            token,
            config.jwt_secret_key.get_secret_value(),
            algorithms=[config.jwt_algorithm],
        )
    except JWTError as e:
        logger.debug(f"Access token rejected: {e}")
        return None

    if payload.get("type") != "access" or not payload.get("sub"):
        return None
    return payload


def create_staff_token(user: User, config: Optional[AuthConfig] = None) -> str:
    """Access token for a staff user."""
    return create_access_token({"sub": user.id, "email": user.email, "role": user.role}, config=config)


class StaffAuthenticator:
    """Resolves an Authorization header to an active staff Actor."""

    def __init__(self, db_manager: DatabaseManager, config: AuthConfig):
        self.db_manager = db_manager
        self.config = config

    def authenticate(self, authorization: Optional[str]) -> Actor:
        """Return the staff actor for a bearer header.

        Raises:
            InvalidCredentialError: Missing, malformed or rejected credential
        """
        if not authorization:
            raise InvalidCredentialError("Unauthorized")

        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise InvalidCredentialError("Unauthorized")

        payload = verify_access_token(token.strip(), self.config)
        if payload is None:
            raise InvalidCredentialError("Unauthorized")

        with self.db_manager.session_scope() as db:
            user = db.query(User).filter_by(id=payload["sub"]).first()
            if not user or not user.is_active or user.role == "GUEST":
                raise InvalidCredentialError("Unauthorized")
            return Actor(id=user.id, role=user.role, name=user.name, email=user.email)

"""C2 Auth Service - staff bearer tokens and ticket access rules."""
from informejo.c2_auth_service.access_policy import AccessPolicy, Actor, ADMIN_ONLY_FIELDS
from informejo.c2_auth_service.auth_service import (
    StaffAuthenticator,
    create_access_token,
    create_staff_token,
    verify_access_token,
)
__all__ = [
    "AccessPolicy",
    "Actor",
    "ADMIN_ONLY_FIELDS",
    "StaffAuthenticator",
    "create_access_token",
    "create_staff_token",
    "verify_access_token",
]

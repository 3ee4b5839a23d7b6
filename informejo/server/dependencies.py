"""FastAPI dependencies for staff authentication."""

from typing import Optional

from fastapi import Header

from informejo.c2_auth_service.access_policy import Actor
from informejo.core.errors import ForbiddenError


def staff_actor(server_state):
    """Build a dependency resolving the bearer header to a staff Actor."""

    async def dependency(authorization: Optional[str] = Header(None)) -> Actor:
        return server_state.authenticator.authenticate(authorization)

    return dependency


def admin_actor(server_state):
    """Like staff_actor but the actor must be an ADMIN."""
    resolve_staff = staff_actor(server_state)

    async def dependency(authorization: Optional[str] = Header(None)) -> Actor:
        actor = await resolve_staff(authorization)
        if not actor.is_admin:
            raise ForbiddenError("Administrator access required")
        return actor

    return dependency

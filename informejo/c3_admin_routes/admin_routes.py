"""Admin routes for re-issuing and revoking magic links."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from informejo.c2_auth_service.access_policy import Actor
from informejo.core.errors import InformejoError
from informejo.server.dependencies import admin_actor

logger = logging.getLogger(__name__)


def create_admin_router(server_state):
    """Create admin router with server_state dependency."""
    router = APIRouter(tags=["admin"])
    current_admin = admin_actor(server_state)

    @router.post("/api/admin/users/{user_id}/magic-link", status_code=201)
    async def reissue_magic_link_endpoint(user_id: str, actor: Actor = Depends(current_admin)):
        """Issue a fresh link for a user; the previous one stops working."""
        try:
            link = await server_state.magic_links.issue_link(user_id)
            logger.info(f"[ADMIN] {actor.id} re-issued magic link for {user_id}")
            return {
                "user_id": link.user_id,
                "magic_link": link.url,
                "expires_at": link.expires_at.isoformat() + "Z",
            }
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[ADMIN] ❌ Failed to issue magic link for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to issue magic link")

    @router.delete("/api/admin/users/{user_id}/magic-link")
    async def invalidate_magic_link_endpoint(user_id: str, actor: Actor = Depends(current_admin)):
        try:
            await server_state.magic_links.invalidate(user_id)
            logger.info(f"[ADMIN] {actor.id} invalidated magic link for {user_id}")
            return {"success": True, "user_id": user_id}
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[ADMIN] ❌ Failed to invalidate magic link for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to invalidate magic link")

    return router

"""Ticket statistics routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from informejo.c2_auth_service.access_policy import Actor
from informejo.core.errors import InformejoError
from informejo.server.dependencies import staff_actor

logger = logging.getLogger(__name__)


def create_stats_router(server_state):
    router = APIRouter(tags=["stats"])
    current_staff = staff_actor(server_state)

    @router.get("/api/stats")
    async def stats_endpoint(actor: Actor = Depends(current_staff)):
        """Counts by status and priority; users only see their own tickets."""
        try:
            return await server_state.ticket_service.get_stats(actor)
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[STATS] ❌ Unexpected error: {e}")
            raise HTTPException(status_code=500, detail="Failed to compute stats")

    return router

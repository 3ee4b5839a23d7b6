"""Health check routes for Informejo."""

from datetime import datetime

from fastapi import APIRouter

from informejo import __version__


def create_health_router(server_state):
    router = APIRouter(tags=["health"])

    @router.get("/health")
    async def health_check():
        """Health check endpoint.

        Returns:
            dict: Health status, timestamp, version and realtime counts
        """
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "version": __version__,
            "realtime": server_state.event_bus.stats(),
        }

    return router

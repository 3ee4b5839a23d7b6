"""C3 Stats Routes."""
from informejo.c3_stats_routes.stats_routes import create_stats_router
__all__ = ["create_stats_router"]

"""C3 Magic Link Routes - public anonymous ticket endpoints."""
from informejo.c3_magic_link_routes.magic_link_routes import create_magic_link_router
__all__ = ["create_magic_link_router"]

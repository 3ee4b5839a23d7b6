"""C3 Admin Routes - magic-link administration."""
from informejo.c3_admin_routes.admin_routes import create_admin_router
__all__ = ["create_admin_router"]

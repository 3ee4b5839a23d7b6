"""C3 Upload Routes - serve stored attachments."""
from informejo.c3_upload_routes.upload_routes import create_upload_router
__all__ = ["create_upload_router"]

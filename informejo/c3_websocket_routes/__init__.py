"""C3 WebSocket Routes - real-time room subscriptions."""
from informejo.c3_websocket_routes.websocket_routes import create_websocket_router, handle_client_message
__all__ = ["create_websocket_router", "handle_client_message"]

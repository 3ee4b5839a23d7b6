"""Informejo HTTP and WebSocket server."""

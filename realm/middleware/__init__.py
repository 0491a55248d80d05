"""ASGI middleware for the realm server."""

"""FastAPI application assembly for the realm server."""

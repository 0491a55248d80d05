"""Utility helpers shared across the realm server."""

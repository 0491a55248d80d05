"""Pydantic request schemas for the realm API."""

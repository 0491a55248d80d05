"""Background workers for the realm server."""

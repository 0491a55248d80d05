"""
Structured logging package for the realm server.

Import explicitly, e.g. 'from realm.structured_logging.enhanced_logging_config import get_logger'.
The package is not named 'logging' so it never shadows the standard library module.
"""

__all__: list[str] = []

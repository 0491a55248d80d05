"""
Database configuration for the realm server.

This module provides the async engine, session management and schema
initialisation. Initialisation is lazy: nothing touches the database
until the first engine or session is requested.
"""

import threading
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .exceptions import ActionRejected, DatabaseError, ValidationError
from .structured_logging.enhanced_logging_config import get_logger
from .utils.error_logging import create_error_context, log_and_raise

logger = get_logger(__name__)


class DatabaseManager:
    """
    Thread-safe singleton for database management.

    Owns the engine and session maker built from the configured URL.
    """

    _instance: "DatabaseManager | None" = None
    _lock: threading.Lock = threading.Lock()

    def __init__(self) -> None:
        if DatabaseManager._instance is not None:
            raise RuntimeError("Use DatabaseManager.get_instance()")

        self.engine: AsyncEngine | None = None
        self.session_maker: async_sessionmaker[AsyncSession] | None = None
        self.database_url: str | None = None
        self._initialized: bool = False

    @classmethod
    def get_instance(cls) -> "DatabaseManager":
        """Get the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton for testing."""
        with cls._lock:
            cls._instance = None

    def _initialize_database(self, database_url: str | None = None) -> None:
        """
        Build engine and session maker from configuration.

        Raises:
            ValidationError: If the configuration cannot be loaded
        """
        if self._initialized:
            return

        context = create_error_context(action="database_initialization")

        from .config import get_config  # pylint: disable=import-outside-toplevel

        try:
            config = get_config()
        except ValueError as e:
            log_and_raise(
                ValidationError,
                f"Failed to load configuration: {e}",
                context=context,
                details={"config_error": str(e)},
                user_friendly="Database cannot be initialized: configuration not loaded or invalid",
            )

        self.database_url = database_url or config.database.url

        engine_kwargs: dict[str, Any] = {"echo": config.database.echo}
        if self.database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.database_url:
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(
                {
                    "pool_pre_ping": True,
                    "pool_size": config.database.pool_size,
                    "max_overflow": config.database.max_overflow,
                    "pool_timeout": config.database.pool_timeout,
                }
            )

        self.engine = create_async_engine(self.database_url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._initialized = True
        logger.info("Database engine created", database_url=self.database_url.split("@")[-1])

    def configure(self, database_url: str) -> None:
        """Point the manager at an explicit URL (CLI overrides, tests)."""
        self.engine = None
        self.session_maker = None
        self._initialized = False
        self._initialize_database(database_url)

    def get_engine(self) -> AsyncEngine:
        """Get the database engine, initializing if necessary."""
        if not self._initialized:
            self._initialize_database()
        assert self.engine is not None, "Database engine not initialized"
        return self.engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        """Get the async session maker, initializing if necessary."""
        if not self._initialized:
            self._initialize_database()
        assert self.session_maker is not None, "Session maker not initialized"
        return self.session_maker

    async def close(self) -> None:
        """Dispose the engine and forget it."""
        if self.engine is not None:
            engine = self.engine
            try:
                await engine.dispose()
                logger.info("Database connections closed")
            finally:
                self.engine = None
                self.session_maker = None
                self._initialized = False
        else:
            self._initialized = False


def get_database_manager() -> DatabaseManager:
    return DatabaseManager.get_instance()


def get_engine() -> AsyncEngine:
    """Get the database engine, initializing if necessary."""
    return get_database_manager().get_engine()


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the async session maker, initializing if necessary."""
    return get_database_manager().get_session_maker()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one unit of work.

    Commits when the request handler returns normally and rolls back when
    it raises, including a rejected game action; services themselves only
    flush.
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except ActionRejected:
            await session.rollback()
            raise
        except Exception as e:
            logger.error("Database session error", error=str(e), error_type=type(e).__name__)
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Create all tables known to the model registry and verify connectivity.

    Raises:
        DatabaseError: If the schema cannot be created
    """
    from sqlalchemy.orm import configure_mappers  # pylint: disable=import-outside-toplevel

    from . import models  # noqa: F401  # pylint: disable=import-outside-toplevel,unused-import
    from .models.base import Base  # pylint: disable=import-outside-toplevel

    configure_mappers()
    engine = get_engine()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        log_and_raise(
            DatabaseError,
            f"Database initialization failed: {e}",
            context=create_error_context(action="init_db"),
            details={"error": str(e)},
            user_friendly="Database could not be initialized",
            operation="init_db",
        )
    logger.info("Database initialization complete", table_count=len(Base.metadata.tables))


async def close_db() -> None:
    """Close database connections."""
    logger.info("Closing database connections")
    await get_database_manager().close()

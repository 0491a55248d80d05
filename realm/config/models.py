"""
Pydantic-based configuration models for the realm server.

Every sub-configuration reads its own environment prefix; AppConfig
aggregates them and additionally reads a local .env file.
"""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

SUPPORTED_DATABASE_SCHEMES = ("sqlite+aiosqlite", "postgresql+asyncpg")


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8000, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class DatabaseConfig(BaseSettings):
    """Database configuration."""

    url: str = Field(default="sqlite+aiosqlite:///./realm.db", description="Primary database URL")
    echo: bool = Field(default=False, description="Echo SQL statements to the log")
    pool_size: int = Field(default=5, description="Number of connections to maintain in pool")
    max_overflow: int = Field(default=10, description="Additional connections beyond pool_size")
    pool_timeout: int = Field(default=30, description="Seconds to wait for connection from pool")

    @field_validator("url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only async drivers are usable by the engine."""
        if not v:
            raise ValueError("Database URL cannot be empty")
        if not v.startswith(SUPPORTED_DATABASE_SCHEMES):
            logger.error(
                "Database URL validation failed - unsupported driver",
                url_preview=v[:50],
                expected=list(SUPPORTED_DATABASE_SCHEMES),
            )
            raise ValueError(f"Database URL must start with one of {list(SUPPORTED_DATABASE_SCHEMES)}")
        return v

    @field_validator("pool_size", "max_overflow", "pool_timeout")
    @classmethod
    def validate_pool_config(cls, v: int) -> int:
        """Validate pool configuration values are positive."""
        if v < 1:
            raise ValueError("Pool configuration values must be at least 1")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    model_config = {"env_prefix": "DATABASE_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_bytes: int = Field(default=10 * 1024 * 1024, description="Rotate log files past this size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_dict(self) -> dict[str, Any]:
        """The ``logging`` section of AppConfig.to_dict()."""
        return {
            "environment": self.environment,
            "level": self.level,
            "log_base": self.log_base,
            "rotation": {
                "max_bytes": self.rotation_max_bytes,
                "backup_count": self.rotation_backup_count,
            },
            "disable_logging": self.disable_logging,
        }


class GameConfig(BaseSettings):
    """Game rule timings that operators may tune."""

    world_tick_interval_seconds: int = Field(
        default=82800, description="Real seconds between world ticks (one game week)"
    )
    world_tick_poll_seconds: float = Field(default=60.0, description="How often the tick loop checks the world")
    world_tick_enabled: bool = Field(default=True, description="Run the world tick loop inside the server")
    action_queue_delay_seconds: float = Field(default=3.0, description="Delay between action queue iterations")
    action_queue_enabled: bool = Field(default=True, description="Run the action queue worker inside the server")
    energy_regen_minutes: int = Field(default=5, description="Minutes per regenerated energy point")
    inventory_slots: int = Field(default=28, description="Inventory slots per player")

    @field_validator("world_tick_interval_seconds", "energy_regen_minutes", "inventory_slots")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("world_tick_poll_seconds", "action_queue_delay_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Delay values cannot be negative")
        return v

    model_config = {"env_prefix": "GAME_", "case_sensitive": False, "extra": "ignore"}


class CORSConfig(BaseSettings):
    """Cross-origin resource sharing configuration."""

    allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins permitted to access the API",
    )
    allow_credentials: bool = Field(default=True, description="Whether credentialed requests are accepted")
    allow_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        description="HTTP methods permitted by CORS responses",
    )
    allow_headers: list[str] = Field(
        default_factory=lambda: ["Content-Type", "Authorization", "X-Player-Id", "X-Request-Id"],
        description="Request headers permitted by CORS responses",
    )
    max_age: int = Field(default=600, description="Seconds browsers may cache CORS preflight responses")

    @field_validator("allow_methods")
    @classmethod
    def normalize_methods(cls, value: list[str]) -> list[str]:
        return [str(m).strip().upper() for m in value if str(m).strip()]

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via get_config() rather than instantiating directly.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    game: GameConfig = Field(default_factory=GameConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_dict(self) -> dict[str, Any]:
        """Plain dict view used by logging setup and diagnostics."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "database_url": self.database.url,
            "logging": self.logging.to_dict(),
            "game": self.game.model_dump(),
            "cors": self.cors.model_dump(),
        }

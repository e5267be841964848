"""Configuration management for the library lending service.

Settings come from (highest precedence first):
1. Explicit keyword arguments (tests, embedding applications)
2. ``LIBRARY_LENDING_*`` environment variables
3. A ``.env`` file in the working directory
4. The defaults declared below

The five lending ceilings are *not* read from here at runtime. They live in the
single ``settings`` row owned by the configuration collaborator; the
``default_*`` values below only seed that row the first time it is read.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LendingConfig(BaseSettings):
    """Process-level configuration for the lending service."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_LENDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Service Metadata ===

    server_name: str = Field(
        default="library-lending",
        description="Service name announced to clients",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Service version",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="SQLite database file path",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides database_path when set",
    )

    sqlite_busy_timeout: float = Field(
        default=30.0,
        description="Seconds a SQLite writer waits for the database lock",
        gt=0,
    )

    # === Transport Configuration ===

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    http_host: str = Field(
        default="127.0.0.1",
        description="HTTP server host for the streamable HTTP transport",
    )

    http_port: int = Field(
        default=8080,
        description="HTTP server port for the streamable HTTP transport",
        ge=1024,
        le=65535,
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    # === Lending Workflow ===

    borrow_requires_approval: bool = Field(
        default=False,
        description="New borrows start 'pending' and wait for an admin to approve them",
    )

    booking_grace_days: int = Field(
        default=7,
        description="Days a booking stays collectable after the anchoring borrow's due date",
        ge=1,
    )

    # Seeds for the settings row (see module docstring)
    default_max_borrow_duration: int = Field(default=30, ge=1)
    default_max_borrow_limit: int = Field(default=3, ge=1)
    default_max_extension_limit: int = Field(default=2, ge=0)
    default_max_booking_duration: int = Field(default=7, ge=1)
    default_max_booking_limit: int = Field(default=3, ge=1)

    # === Validation Methods ===

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Resolve the database path to an absolute location."""
        return v.absolute()

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @field_validator("http_port")
    @classmethod
    def validate_http_port(cls, v: int) -> int:
        reserved_ports = {3306, 5432}
        if v in reserved_ports:
            raise ValueError(f"Port {v} is commonly reserved, choose another")
        return v

    # === Computed Properties ===

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    @property
    def server_info(self) -> dict[str, str]:
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: LendingConfig | None = None


def get_config() -> LendingConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LendingConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def set_config(config: LendingConfig) -> None:
    """Install an explicit configuration (embedding applications and tests)."""
    _ConfigStore._instance = config  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration so the next ``get_config()`` re-reads the environment."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]

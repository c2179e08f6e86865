"""Configuration management for the library circulation service.

Settings are read from ``LIBRARY_*`` environment variables (or a ``.env``
file) and validated with Pydantic v2:

1. Server metadata - name and version reported to connected clients
2. Persistence - location of the SQLite record store
3. Circulation rules - loan period and display placeholders
4. Runtime - transport, logging and event delivery
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibrarySettings(BaseSettings):
    """Service configuration loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="library-circulation",
        description="Server name announced to clients",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Record Store ===

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="SQLite database file path",
    )

    # === Circulation Rules ===

    loan_period_days: int = Field(
        default=14,
        description="Days between borrow date and due date",
        ge=1,
        le=365,
    )

    unknown_placeholder: str = Field(
        default="Unknown",
        description="Display value for loans whose book or member no longer exists",
        min_length=1,
    )

    # === Transport Configuration ===

    transport: str = Field(
        default="stdio",
        description="Transport used by the request/response boundary",
        pattern=r"^(stdio|streamable_http)$",
    )

    http_host: str = Field(default="127.0.0.1", description="HTTP bind host")

    http_port: int = Field(
        default=5000,
        description="HTTP bind port",
        ge=1024,
        le=65535,
    )

    # === Event Delivery ===

    notifier_workers: int = Field(
        default=1,
        description="Worker threads delivering events; one keeps issue order",
        ge=1,
        le=16,
    )

    # === Development Configuration ===

    debug: bool = Field(default=False, description="Enable debug logging")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Resolve the database path and make sure its directory exists."""
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")
        return abs_path

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
        """Get the SQLAlchemy database URL for the record store."""
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for the configuration singleton."""

    _instance: LibrarySettings | None = None


def get_config() -> LibrarySettings:
    """Get or create the process-wide settings instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LibrarySettings()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Drop the cached settings so the next ``get_config`` re-reads the environment."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]

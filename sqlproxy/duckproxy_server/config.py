"""
Configuration management for the DuckProxy server.

All configuration is done via environment variables - no config files inside containers.
This module provides typed configuration classes with validation.

Invariants:
    - All non-secret settings have sensible defaults for local development
    - Secrets (the MotherDuck token, the webhook URL) have no defaults
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Raise ConfigError from validate() for anything that would make the
      server listen without a working store
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .errors import ConfigError
from .sql.tables import parse_aliases

logger = logging.getLogger(__name__)

LOG_FORMATS = ("json", "text")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'")


@dataclass(frozen=True)
class StoreConfig:
    """Primary store configuration.

    Attributes:
        database: Database name; tables are addressed as <database>.<table>
        token: MotherDuck access token
        local_path: Local DuckDB file attached instead of MotherDuck
    """

    database: str = "PartnerPortal"
    token: str | None = field(default=None, repr=False)
    local_path: str | None = None

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        return cls(
            database=os.getenv("MOTHERDUCK_DATABASE", "PartnerPortal"),
            token=os.getenv("MOTHERDUCK_TOKEN") or os.getenv("motherduck_token"),
            local_path=os.getenv("DUCKDB_PATH") or None,
        )

    @property
    def uses_motherduck(self) -> bool:
        return self.local_path is None


@dataclass(frozen=True)
class BackupConfig:
    """Backup webhook configuration.

    Attributes:
        enabled: Whether mutations are mirrored (GOOGLE_SHEETS_BACKUP != "false")
        url: Webhook URL
        max_attempts: Delivery attempts per event
        retry_delay_ms: Delay after the first failed attempt
        max_retry_delay_ms: Upper bound on any retry delay
        timeout_seconds: Timeout for one webhook call
    """

    enabled: bool = True
    url: str | None = None
    max_attempts: int = 3
    retry_delay_ms: int = 500
    max_retry_delay_ms: int = 5000
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> BackupConfig:
        """Load configuration from environment variables."""
        return cls(
            enabled=os.getenv("GOOGLE_SHEETS_BACKUP", "true").lower() != "false",
            url=os.getenv("APPS_SCRIPT_URL") or None,
            max_attempts=_env_int("BACKUP_MAX_ATTEMPTS", 3),
            retry_delay_ms=_env_int("BACKUP_RETRY_DELAY_MS", 500),
            max_retry_delay_ms=_env_int("BACKUP_MAX_RETRY_DELAY_MS", 5000),
            timeout_seconds=_env_float("BACKUP_TIMEOUT_SECONDS", 10.0),
        )

    @property
    def active(self) -> bool:
        """Enabled and pointing somewhere."""
        return self.enabled and bool(self.url)


@dataclass(frozen=True)
class HttpConfig:
    """HTTP server configuration.

    Attributes:
        host: Address to bind
        port: Port to listen on
        cors_origins: Allowed CORS origins ("*" allows any)
        raw_query_enabled: Whether GET /api/query executes caller SQL
        table_aliases: Extra table label -> canonical name pairs
    """

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: tuple[str, ...] = ("*",)
    raw_query_enabled: bool = False
    table_aliases: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> HttpConfig:
        """Load configuration from environment variables."""
        origins = os.getenv("CORS_ORIGINS", "*")
        try:
            aliases = parse_aliases(os.getenv("TABLE_ALIASES", ""))
        except ValueError as e:
            raise ConfigError(f"TABLE_ALIASES: {e}")
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 3000),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            raw_query_enabled=_env_bool("RAW_QUERY_ENABLED", "false"),
            table_aliases=aliases,
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json").lower(),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    Attributes:
        store: Primary store configuration
        backup: Backup webhook configuration
        http: HTTP server configuration
        observability: Logging configuration
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Returns:
            ServerConfig with all sections populated from environment.

        Raises:
            ConfigError: If required configuration is missing or invalid.
        """
        config = cls(
            store=StoreConfig.from_env(),
            backup=BackupConfig.from_env(),
            http=HttpConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ConfigError: If configuration is invalid.
        """
        if not self.store.database:
            raise ConfigError("MOTHERDUCK_DATABASE must not be empty")
        if self.store.uses_motherduck and not self.store.token:
            raise ConfigError("MOTHERDUCK_TOKEN is required unless DUCKDB_PATH is set")

        if not 1 <= self.http.port <= 65535:
            raise ConfigError(f"PORT must be between 1 and 65535, got {self.http.port}")

        if self.backup.max_attempts < 1:
            raise ConfigError("BACKUP_MAX_ATTEMPTS must be at least 1")
        if self.backup.retry_delay_ms < 0 or self.backup.max_retry_delay_ms < 0:
            raise ConfigError("Backup retry delays must not be negative")
        if self.backup.timeout_seconds <= 0:
            raise ConfigError("BACKUP_TIMEOUT_SECONDS must be positive")

        if self.observability.log_format not in LOG_FORMATS:
            raise ConfigError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

        if self.backup.enabled and not self.backup.url:
            logger.warning("Backup is enabled but APPS_SCRIPT_URL is not set; mirroring is off")

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Server configuration loaded",
            extra={
                "database": self.store.database,
                "store": "motherduck" if self.store.uses_motherduck else "local",
                "token_set": bool(self.store.token),
                "backup_enabled": self.backup.active,
                "backup_max_attempts": self.backup.max_attempts,
                "http_bind": f"{self.http.host}:{self.http.port}",
                "raw_query_enabled": self.http.raw_query_enabled,
                "table_aliases": len(self.http.table_aliases),
                "log_level": self.observability.log_level,
            },
        )

from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the attendance batch importer.

These are the typed view of config/import.yml after schema validation and
default application in attendance_import.config.loader.
"""

DEFAULT_CHUNK_SIZE = 500
DEFAULT_MAX_LOGGED_ERRORS = 1000
DEFAULT_MAX_INLINE_ERRORS = 25
DEFAULT_TIMEZONE = "America/Los_Angeles"
DEFAULT_REPORT_DIRECTORY = "./logs"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    connect_timeout: int | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an attendance import run."""
    chunk_size: int = DEFAULT_CHUNK_SIZE  # rows per slice between yield points
    max_logged_errors: int = DEFAULT_MAX_LOGGED_ERRORS  # error ledger cap
    max_inline_errors: int = DEFAULT_MAX_INLINE_ERRORS  # on-screen preview cap
    timezone: str = DEFAULT_TIMEZONE  # service-local calendar day boundary
    report_directory: str = DEFAULT_REPORT_DIRECTORY
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

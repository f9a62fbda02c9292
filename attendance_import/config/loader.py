from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from attendance_import.models.config_models import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_INLINE_ERRORS,
    DEFAULT_MAX_LOGGED_ERRORS,
    DEFAULT_REPORT_DIRECTORY,
    DEFAULT_TIMEZONE,
    DatabaseConfig,
    ImportConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against the packaged JSON schema (unknown keys rejected)
- Apply defaults for every omitted key
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "config_from_mapping",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema missing / unreadable, or data fails validation
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_mapping(data: dict[str, Any]) -> ImportConfig:
    _validate_config_schema(data)
    tz = data.get("timezone", DEFAULT_TIMEZONE)
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {tz}") from e
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
        connect_timeout=db_raw.get("connect_timeout"),
    )
    return ImportConfig(
        chunk_size=data.get("chunk_size", DEFAULT_CHUNK_SIZE),
        max_logged_errors=data.get("max_logged_errors", DEFAULT_MAX_LOGGED_ERRORS),
        max_inline_errors=data.get("max_inline_errors", DEFAULT_MAX_INLINE_ERRORS),
        timezone=tz,
        report_directory=data.get("report_directory", DEFAULT_REPORT_DIRECTORY),
        database=db,
    )


def load_config(path: Path | None = None) -> ImportConfig:
    """Load and validate the YAML config.

    ``path=None`` means the default location; when that file does not exist
    the built-in defaults are used. An explicit path must exist.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return ImportConfig()
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return config_from_mapping(data)

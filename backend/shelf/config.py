"""Shelf application configuration.

Loads settings from a single YAML file:
  * shelf.settings.yaml: server, storage and logging configuration

The file location can be overridden with the SHELF_SETTINGS environment
variable.  Relative storage paths are resolved against the directory that
holds the settings file, so the backend behaves the same regardless of the
working directory it is started from.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("shelf.settings.yaml")
SETTINGS_ENV_VAR = "SHELF_SETTINGS"

# File size limit: 20MB
DEFAULT_MAX_FILE_BYTES = 20 * 1024 * 1024


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 8000
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class StorageSettings(BaseModel):
    """Where uploads live and how hard the naming logic tries."""
    root_dir:         str = "./uploads"
    max_file_bytes:   int = DEFAULT_MAX_FILE_BYTES
    max_name_probes:  int = 10_000
    conflict_retries: int = 3
    chunk_size:       int = 64 * 1024

    @field_validator("max_file_bytes", "max_name_probes", "chunk_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("conflict_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value


class LoggingSettings(BaseModel):
    level: str = "info"


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def _default_settings_path() -> Path:
    override = os.environ.get(SETTINGS_ENV_VAR)
    return Path(override) if override else SETTINGS_FILE


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load *AppConfig* from YAML, resolving the storage root to an absolute path."""
    path = Path(settings_path) if settings_path else _default_settings_path()
    config = AppConfig(**_load_yaml(path))

    root = Path(config.storage.root_dir).expanduser()
    if not root.is_absolute():
        root = path.resolve().parent / root
    config.storage.root_dir = os.path.abspath(root)

    logger.info(
        "Settings loaded (server=%s:%s, storage.root_dir=%s, max_file_bytes=%d)",
        config.server.host,
        config.server.port,
        config.storage.root_dir,
        config.storage.max_file_bytes,
    )
    return config


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Process-wide configuration, loaded once."""
    return load_config()

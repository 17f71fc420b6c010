"""Configuration management for sqlitestore.

Configuration is loaded from ~/.sqlitestore/config.toml with sensible defaults.

Example config file:
    [store]
    db_path = "~/.sqlitestore/sessions.db"
    cleanup_interval = 300
"""

from __future__ import annotations

import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

# Use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)


def get_default_db_path() -> Path:
    """Get the default database path.

    Returns:
        Path to ~/.sqlitestore/sessions.db
    """
    return Path.home() / ".sqlitestore" / "sessions.db"


class StoreConfig(BaseModel):
    """Configuration for the session store."""

    db_path: str = Field(default_factory=lambda: str(get_default_db_path()))
    # Seconds between expiry sweeps; 0 disables the background sweep
    cleanup_interval: float = Field(default=300.0, ge=0)

    def get_db_path(self) -> Path:
        """Get the expanded database path."""
        return Path(self.db_path).expanduser()

    def get_cleanup_interval(self) -> timedelta:
        return timedelta(seconds=self.cleanup_interval)


def get_default_config_path() -> Path:
    return Path.home() / ".sqlitestore" / "config.toml"


def load_config(config_path: Path | None = None) -> StoreConfig:
    """Load configuration from a TOML file.

    If the file doesn't exist or can't be parsed, returns the defaults.
    Keys missing from the ``[store]`` section keep their default values.

    Args:
        config_path: Path to the config file. Defaults to ~/.sqlitestore/config.toml.

    Returns:
        StoreConfig with loaded or default values.
    """
    if config_path is None:
        config_path = get_default_config_path()

    if not config_path.exists():
        return StoreConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return StoreConfig()

    return _merge_config(StoreConfig(), data)


def _merge_config(default: StoreConfig, data: dict[str, Any]) -> StoreConfig:
    """Merge loaded config data with defaults.

    Raises:
        ValidationError: If a provided value is invalid (e.g. a negative interval).
    """
    store_data = data.get("store", {})
    if not isinstance(store_data, dict):
        return default

    try:
        return StoreConfig(**{**default.model_dump(), **store_data})
    except ValidationError:
        logger.error("Invalid [store] section in config: %s", store_data)
        raise


# Global config cache
_config_cache: StoreConfig | None = None


def get_config() -> StoreConfig:
    """Get the global configuration instance.

    Loads from ~/.sqlitestore/config.toml on first call, then returns the cached instance.
    """
    global _config_cache
    if _config_cache is None:
        _config_cache = load_config()
    return _config_cache


def _clear_config_cache() -> None:
    """Clear the config cache. Used for testing."""
    global _config_cache
    _config_cache = None

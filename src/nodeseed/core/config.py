"""Core configuration - centralized config for the nodeseed package.

All environment-based configuration should flow through this module.

Usage:
    from nodeseed.core.config import get_config
    config = get_config()

    store = config.resolved_store_path
    key = config.seed_key_bytes
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigException


class CoreSettings(BaseSettings):
    """Core configuration settings for nodeseed.

    Settings can be configured via environment variables with the
    NODESEED_ prefix, or through a local ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # SEED STORE SETTINGS
    # ==========================================================================

    store_path: str = Field(
        default="~/.nodeseed/store",
        description="Default storage location for the node seed (path or memory://<name>)",
        validation_alias="NODESEED_STORE_PATH",
    )
    seed_key: str = Field(
        default="seed",
        description="Key the seed is stored under",
        validation_alias="NODESEED_SEED_KEY",
    )
    lookup_timeout: float | None = Field(
        default=5.0,
        description="Seconds before a seed lookup is treated as a storage failure (0 disables)",
        validation_alias="NODESEED_LOOKUP_TIMEOUT",
    )
    persist_generated: bool = Field(
        default=True,
        description="Write freshly generated seeds back to the store",
        validation_alias="NODESEED_PERSIST_GENERATED",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="NODESEED_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="NODESEED_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="NODESEED_LOG_FILE",
    )

    @field_validator("lookup_timeout")
    @classmethod
    def _zero_disables_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            return None
        return value

    @field_validator("seed_key")
    @classmethod
    def _seed_key_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("seed_key must not be empty")
        return value

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def seed_key_bytes(self) -> bytes:
        """Storage key as bytes."""
        return self.seed_key.encode("utf-8")

    @property
    def resolved_store_path(self) -> str:
        """Store location with ``~`` expanded for filesystem paths."""
        if "://" in self.store_path:
            return self.store_path
        return str(Path(self.store_path).expanduser())


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.

    Raises:
        ConfigException: If an environment setting fails validation.
    """
    global _config
    if _config is None:
        try:
            _config = CoreSettings()
        except ValidationError as e:
            first = e.errors()[0]
            setting = ".".join(str(part) for part in first["loc"])
            raise ConfigException(f"Invalid setting {setting}: {first['msg']}", setting=setting or None) from e
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None

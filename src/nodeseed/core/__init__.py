"""nodeseed core - configuration, logging and the exception hierarchy."""

from .config import CoreSettings, clear_config_cache, get_config
from .exceptions import (
    ConfigException,
    InvariantViolation,
    MalformedSeedError,
    NodeSeedException,
    StorageError,
)
from .logging import (
    configure_logging,
    correlation_context,
    get_logger,
)

__all__ = [
    # Config
    "CoreSettings",
    "clear_config_cache",
    "get_config",
    # Exceptions
    "ConfigException",
    "InvariantViolation",
    "MalformedSeedError",
    "NodeSeedException",
    "StorageError",
    # Logging
    "configure_logging",
    "correlation_context",
    "get_logger",
]

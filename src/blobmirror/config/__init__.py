"""Configuration module for blob-mirror."""

from blobmirror.config.loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    EnvVarNotFoundError,
    load_config,
)
from blobmirror.config.models import (
    AppConfig,
    DiscordConfig,
    GitHubConfig,
    LoggingConfig,
    MirrorConfig,
    RedisConfig,
    ServerConfig,
)

__all__ = [
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "EnvVarNotFoundError",
    # Functions
    "load_config",
    # Models
    "AppConfig",
    "DiscordConfig",
    "GitHubConfig",
    "LoggingConfig",
    "MirrorConfig",
    "RedisConfig",
    "ServerConfig",
]

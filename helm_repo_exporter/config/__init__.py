"""Configuration package exports."""

from .loader import (
    ConfigError,
    load_config,
    load_config_file,
    load_config_from_env,
)
from .models import (
    AuthConfig,
    BasicAuth,
    ExporterConfig,
    RepositoryConfig,
    parse_duration,
)

__all__ = [
    "AuthConfig",
    "BasicAuth",
    "ConfigError",
    "ExporterConfig",
    "RepositoryConfig",
    "load_config",
    "load_config_file",
    "load_config_from_env",
    "parse_duration",
]

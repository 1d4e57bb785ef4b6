"""Config module exports."""

from apiresource.config.loader import get_config, load_config, reset_config, set_config
from apiresource.config.models import (
    ApiResourceConfig,
    DefinitionConfig,
    DispatchConfig,
    LoggingConfig,
    LogOutputConfig,
)

__all__ = [
    "load_config",
    "get_config",
    "set_config",
    "reset_config",
    "ApiResourceConfig",
    "DefinitionConfig",
    "DispatchConfig",
    "LoggingConfig",
    "LogOutputConfig",
]

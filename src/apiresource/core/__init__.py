"""Core module exports."""

from apiresource.core.errors import (
    ApiResourceError,
    ConfigError,
    DefinitionError,
    ErrorCode,
)
from apiresource.core.inflection import ids_accessor, singularize
from apiresource.core.logging import configure_logging, get_logger

__all__ = [
    # Errors
    "ApiResourceError",
    "ConfigError",
    "DefinitionError",
    "ErrorCode",
    # Inflection
    "ids_accessor",
    "singularize",
    # Logging
    "configure_logging",
    "get_logger",
]

"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (APIRESOURCE__SECTION__KEY)
3. YAML file (apiresource.yaml in the working directory, or an explicit path)
4. Built-in defaults (this file)

Environment Variable Format:
    APIRESOURCE__<SECTION>__<KEY>=<VALUE>

Examples:
    APIRESOURCE__LOGGING__LEVEL=DEBUG
    APIRESOURCE__DISPATCH__PER_PAGE_KEY=limit
    APIRESOURCE__DISPATCH__MAX_PER_PAGE=500
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        APIRESOURCE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every skipped scope and filter.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DispatchConfig(BaseModel):
    """Names and limits used when applying request parameters to a query.

    Env vars:
        APIRESOURCE__DISPATCH__TYPE_KEY
        APIRESOURCE__DISPATCH__PAGE_KEY
        APIRESOURCE__DISPATCH__PER_PAGE_KEY
        APIRESOURCE__DISPATCH__IDS_KEY
        APIRESOURCE__DISPATCH__DEFAULT_PER_PAGE
        APIRESOURCE__DISPATCH__MAX_PER_PAGE
    """

    type_key: str = Field(
        default="type",
        description="Parameter naming a subtype to filter single-table-inheritance queries by.",
    )
    page_key: str = Field(default="page", description="Parameter holding the 1-based page number.")
    per_page_key: str = Field(default="per_page", description="Parameter holding the page size.")
    ids_key: str = Field(
        default="ids",
        description="Parameter holding a list of primary keys for add_static_scopes.",
    )
    default_per_page: int = Field(
        default=25,
        description="Page size used when only the page number is supplied.",
    )
    max_per_page: int = Field(
        default=100,
        description="Upper bound for caller-supplied page sizes.",
    )

    @field_validator("default_per_page", "max_per_page")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Page sizes must be >= 1, got {v}")
        return v

    @model_validator(mode="after")
    def validate_default_within_max(self) -> "DispatchConfig":
        if self.default_per_page > self.max_per_page:
            raise ValueError(
                f"default_per_page ({self.default_per_page}) exceeds "
                f"max_per_page ({self.max_per_page})"
            )
        return self


class DefinitionConfig(BaseModel):
    """Resource definition building.

    Env vars:
        APIRESOURCE__DEFINITION__IDS_SUFFIX
    """

    ids_suffix: str = Field(
        default="_ids",
        description="Suffix of the identifier-list attribute derived from has_many relations.",
    )


class ApiResourceConfig(BaseModel):
    """Root configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    definition: DefinitionConfig = Field(default_factory=DefinitionConfig)

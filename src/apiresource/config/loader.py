"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (APIRESOURCE__SECTION__KEY)
3. YAML config file
4. Built-in defaults (lowest priority)

The loaded configuration is memoized process-wide by get_config(); tests and
host applications swap it with set_config() / reset_config().
"""

import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from apiresource.config.models import (
    ApiResourceConfig,
    DefinitionConfig,
    DispatchConfig,
    LoggingConfig,
)
from apiresource.core.errors import ConfigError

DEFAULT_CONFIG_FILENAME = "apiresource.yaml"

_config: ApiResourceConfig | None = None
_config_lock = threading.Lock()


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top-level value must be a mapping")
    return data


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class ApiResourceSettings(BaseSettings):
        """Root config. Env vars: APIRESOURCE__LOGGING__LEVEL, APIRESOURCE__DISPATCH__PAGE_KEY..."""

        model_config = SettingsConfigDict(
            env_prefix="APIRESOURCE__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        dispatch: DispatchConfig = DispatchConfig()
        definition: DefinitionConfig = DefinitionConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml file
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return ApiResourceSettings


def load_config(config_path: Path | None = None, **kwargs: Any) -> ApiResourceConfig:
    """Load config: defaults < YAML file < env vars < kwargs.

    Args:
        config_path: YAML file to read. Defaults to apiresource.yaml in the
                     current working directory; a missing file is not an error.
        **kwargs: Override values (highest precedence), keyed by section.

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    path = config_path or Path.cwd() / DEFAULT_CONFIG_FILENAME
    yaml_config = _load_yaml(path)

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return ApiResourceConfig.model_validate(settings.model_dump())


def get_config() -> ApiResourceConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    with _config_lock:
        if _config is None:
            _config = load_config()
        return _config


def set_config(config: ApiResourceConfig) -> None:
    """Replace the process-wide configuration."""
    global _config
    with _config_lock:
        _config = config


def reset_config() -> None:
    """Forget the process-wide configuration; the next get_config() reloads it."""
    global _config
    with _config_lock:
        _config = None

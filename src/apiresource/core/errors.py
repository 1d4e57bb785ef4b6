"""apiresource error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Resource definition (registration-time programmer errors)

Dispatching untrusted parameters never raises; these errors only surface
from configuration loading and from registration calls made by the host
application.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Definition (3xxx)
    NOT_A_RECORD_TYPE = 3001
    UNSUPPORTED_SCOPE_SIGNATURE = 3002
    INVALID_SCOPE_CONTRACT = 3003
    STATIC_SCOPE_WITH_PARAMS = 3004
    UNKNOWN_ALIAS_TARGET = 3005
    UNKNOWN_SCOPE = 3006


@dataclass(frozen=True, slots=True)
class ApiResourceError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'UNKNOWN_SCOPE')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ApiResourceError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class DefinitionError(ApiResourceError):
    """Invalid registration against a record type."""

    @classmethod
    def not_a_record_type(cls, obj: Any) -> "DefinitionError":
        name = getattr(obj, "__name__", repr(obj))
        return cls(
            code=ErrorCode.NOT_A_RECORD_TYPE,
            message=f"{name} is not a mapped record type",
            details={"type": name},
        )

    @classmethod
    def unsupported_signature(cls, scope: str, reason: str) -> "DefinitionError":
        return cls(
            code=ErrorCode.UNSUPPORTED_SCOPE_SIGNATURE,
            message=f"Scope '{scope}' has an unsupported signature: {reason}",
            details={"scope": scope, "reason": reason},
        )

    @classmethod
    def invalid_contract(cls, scope: str, reason: str) -> "DefinitionError":
        return cls(
            code=ErrorCode.INVALID_SCOPE_CONTRACT,
            message=f"Scope '{scope}' has an invalid parameter contract: {reason}",
            details={"scope": scope, "reason": reason},
        )

    @classmethod
    def static_with_params(cls, scope: str, params: list[str]) -> "DefinitionError":
        return cls(
            code=ErrorCode.STATIC_SCOPE_WITH_PARAMS,
            message=f"Static scope '{scope}' cannot take parameters: {', '.join(params)}",
            details={"scope": scope, "params": params},
        )

    @classmethod
    def unknown_alias_target(cls, alias: str, target: str) -> "DefinitionError":
        return cls(
            code=ErrorCode.UNKNOWN_ALIAS_TARGET,
            message=f"Cannot alias '{alias}' to unknown attribute '{target}'",
            details={"alias": alias, "target": target},
        )

    @classmethod
    def unknown_scope(cls, record_type: str, scope: str) -> "DefinitionError":
        return cls(
            code=ErrorCode.UNKNOWN_SCOPE,
            message=f"{record_type} has no scope named '{scope}'",
            details={"type": record_type, "scope": scope},
        )

"""apiresource: introspectable API resource definitions for SQLAlchemy models.

Usage:
    from apiresource import ResourceModel, scope

    class User(ResourceModel, Base):
        __tablename__ = "users"
        ...

        @scope
        def by_name(query, name):
            return query.where(User.name == name)

    User.attr_protected("updated_at")
    User.resource_definition().scopes   # {"by_name": {"name": "req"}}
    User.add_scopes({"by_name": {"name": "Dan"}, "type": "Admin", "page": 2})
"""

__version__ = "0.1.0"

from apiresource.config import load_config
from apiresource.core import (
    ApiResourceError,
    ConfigError,
    DefinitionError,
    ErrorCode,
    configure_logging,
    get_logger,
)
from apiresource.resource import (
    Arity,
    Param,
    ResourceDefinition,
    ResourceModel,
    ScopeDescriptor,
    TypeTag,
    Visibility,
    add_scopes,
    add_static_scopes,
    apply_scope,
    classify,
    definition_for,
    invalidate,
    protected_scope,
    register_scope,
    scope,
    scopes_for,
    static_scope,
    typecast_for,
)

__all__ = [
    "__version__",
    # Engine
    "ResourceModel",
    "definition_for",
    "invalidate",
    "add_scopes",
    "add_static_scopes",
    "apply_scope",
    "register_scope",
    "scopes_for",
    "scope",
    "protected_scope",
    "static_scope",
    "classify",
    "typecast_for",
    # Models
    "Arity",
    "Param",
    "ResourceDefinition",
    "ScopeDescriptor",
    "TypeTag",
    "Visibility",
    # Ambient
    "load_config",
    "configure_logging",
    "get_logger",
    "ApiResourceError",
    "ConfigError",
    "DefinitionError",
    "ErrorCode",
]

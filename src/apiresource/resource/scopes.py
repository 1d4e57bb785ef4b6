"""Scope registry.

Scopes are named query filters. A scope is public (listed in the resource
definition and applied by add_scopes), protected (callable directly through
apply_scope but hidden from API consumers), or static (a boolean flag filter
with no parameters, applied by add_static_scopes).

Scopes can be registered imperatively:

    register_scope(Post, "by_user", lambda query, user_id: query.where(...))

or declared in the class body of a ResourceModel subclass:

    class Post(ResourceModel, Base):
        @scope
        def by_user(query, user_id):
            return query.where(Post.user_id == user_id)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from sqlalchemy.sql.elements import ClauseElement

from apiresource.core.errors import DefinitionError
from apiresource.resource.models import ScopeDescriptor, Visibility
from apiresource.resource.registrar import (
    build_scope,
    mapper_for,
    registrar_for,
    resolved_registry,
)

logger = structlog.get_logger()


def register_scope(
    record_type: type,
    name: str,
    handler: Any,
    visibility: Visibility | str = Visibility.PUBLIC,
    params: Any = None,
) -> ScopeDescriptor:
    """Register (or replace) a scope on record_type.

    Args:
        record_type: Mapped class owning the scope
        name: Scope name, also the parameter key callers use
        handler: ``handler(query, *args) -> query`` or a SQL clause element
        visibility: public, protected or static
        params: Optional explicit contract; skips signature inspection

    Returns:
        The registered descriptor.
    """
    mapper_for(record_type)
    descriptor = build_scope(name, handler, Visibility(visibility), params)
    registrar_for(record_type).add_scope(descriptor)
    return descriptor


def scopes_for(record_type: type) -> dict[str, ScopeDescriptor]:
    """All scopes usable on record_type, inherited ones first."""
    return dict(resolved_registry(record_type).scopes)


def public_scopes(record_type: type) -> dict[str, ScopeDescriptor]:
    return {
        name: d
        for name, d in scopes_for(record_type).items()
        if d.visibility is Visibility.PUBLIC
    }


def _call_handler(handler: Any, query: Any, *args: Any, **kwargs: Any) -> Any:
    if isinstance(handler, ClauseElement):
        return query.where(handler)
    return handler(query, *args, **kwargs)


def invoke(descriptor: ScopeDescriptor, query: Any, *args: Any, **kwargs: Any) -> Any:
    """Apply one scope to a query."""
    if descriptor.is_expression:
        return query.where(descriptor.handler)
    return descriptor.handler(query, *args, **kwargs)


def apply_scope(record_type: type, name: str, query: Any, *args: Any, **kwargs: Any) -> Any:
    """Apply a scope by name regardless of its visibility.

    This is the direct path for application code; request parameters go
    through add_scopes / add_static_scopes instead.

    Raises:
        DefinitionError: If no scope with that name is registered.
    """
    descriptor = scopes_for(record_type).get(name)
    if descriptor is None:
        raise DefinitionError.unknown_scope(record_type.__name__, name)
    return invoke(descriptor, query, *args, **kwargs)


class ScopeDeclaration:
    """A scope declared in a class body, registered when the class is created."""

    def __init__(
        self,
        handler: Any,
        *,
        name: str | None = None,
        visibility: Visibility = Visibility.PUBLIC,
        params: Any = None,
    ) -> None:
        self.handler = handler
        self.name = name
        self.visibility = visibility
        self.params = params

    def __set_name__(self, owner: type, attr_name: str) -> None:
        if self.name is None:
            self.name = attr_name

    def __call__(self, query: Any, *args: Any, **kwargs: Any) -> Any:
        return _call_handler(self.handler, query, *args, **kwargs)

    def register(self, record_type: type, attr_name: str) -> ScopeDescriptor:
        return register_scope(
            record_type,
            self.name or attr_name,
            self.handler,
            self.visibility,
            self.params,
        )


def _declarator(
    visibility: Visibility,
) -> Callable[..., Any]:
    def declare(
        handler: Any = None,
        *,
        name: str | None = None,
        params: Any = None,
    ) -> Any:
        if handler is None:
            return lambda fn: ScopeDeclaration(fn, name=name, visibility=visibility, params=params)
        return ScopeDeclaration(handler, name=name, visibility=visibility, params=params)

    return declare


scope = _declarator(Visibility.PUBLIC)
scope.__doc__ = "Declare a public scope in a ResourceModel class body."

protected_scope = _declarator(Visibility.PROTECTED)
protected_scope.__doc__ = "Declare a scope hidden from the resource definition."

static_scope = _declarator(Visibility.STATIC)
static_scope.__doc__ = "Declare a parameterless flag scope applied by add_static_scopes."


def collect_declarations(record_type: type) -> list[ScopeDescriptor]:
    """Register the ScopeDeclarations found in record_type's own namespace."""
    registered = []
    for attr_name, value in list(vars(record_type).items()):
        if isinstance(value, ScopeDeclaration):
            registered.append(value.register(record_type, attr_name))
    if registered:
        logger.debug(
            "scopes_declared",
            type=record_type.__name__,
            scopes=[d.name for d in registered],
        )
    return registered

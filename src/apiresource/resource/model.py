"""ResourceModel mixin for SQLAlchemy mapped classes.

Usage:
    class Base(DeclarativeBase):
        pass

    class Post(ResourceModel, Base):
        __tablename__ = "posts"
        id = Column(Integer, primary_key=True)
        title = Column(String)
        user_id = Column(Integer, ForeignKey("users.id"))

        @scope
        def by_user(query, user_id):
            return query.where(Post.user_id == user_id)

    Post.attr_protected("user_id")
    Post.virtual_attribute("excerpt", type=str)

    Post.resource_definition()
    Post.add_scopes({"by_user": {"user_id": 7}, "page": 2})
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from sqlalchemy.orm import ColumnProperty, SynonymProperty, synonym

from apiresource.core.errors import DefinitionError
from apiresource.resource import scopes as scope_registry
from apiresource.resource.cache import definition_for
from apiresource.resource.dispatch import add_scopes, add_static_scopes
from apiresource.resource.models import (
    ResourceDefinition,
    ScopeDescriptor,
    VirtualField,
    Visibility,
)
from apiresource.resource.registrar import mapper_for, registrar_for, resolved_registry
from apiresource.resource.typecasts import attribute_typecasts, coerce_type_tag

logger = structlog.get_logger()


def _virtual_accessor(name: str) -> property:
    def fget(self: Any) -> Any:
        return vars(self).get(name)

    def fset(self: Any, value: Any) -> None:
        vars(self)[name] = value

    return property(fget, fset, doc=f"Virtual attribute '{name}'.")


def _alias_accessor(alias: str, target: str) -> property:
    def fget(self: Any) -> Any:
        return getattr(self, target)

    def fset(self: Any, value: Any) -> None:
        setattr(self, target, value)

    return property(fget, fset, doc=f"Alias of '{target}'.")


# =============================================================================
# Registration entry points (usable on any mapped class)
# =============================================================================


def declare_visibility(record_type: type, names: tuple[str, ...], visibility: Visibility) -> None:
    mapper_for(record_type)
    registrar_for(record_type).declare_visibility(names, visibility)


def virtual_attribute(
    record_type: type,
    name: str,
    type: Any = None,  # noqa: A002
    define_accessors: bool = True,
) -> VirtualField:
    """Declare an attribute that has no column of its own.

    Args:
        record_type: Mapped class
        name: Attribute name
        type: Optional type override (tag, Python type or SQLAlchemy type);
              it takes precedence over a same-named column's type
        define_accessors: Create a read/write property unless the class
                          already has an attribute of that name
    """
    mapper_for(record_type)
    virtual = VirtualField(
        name=name,
        type_tag=coerce_type_tag(type) if type is not None else None,
        define_accessors=define_accessors,
    )
    registrar_for(record_type).add_virtual_field(virtual)
    if define_accessors and not hasattr(record_type, name):
        setattr(record_type, name, _virtual_accessor(name))
    return virtual


def alias_attribute(record_type: type, alias: str, target: str) -> None:
    """Expose target under a second name that reads and writes the same storage.

    Mapped targets become SQLAlchemy synonyms, so the alias also works in
    queries and constructors; other targets get a proxying property.

    The target may also be a declared virtual field without accessors, in
    which case the alias proxies whatever the instance stores under it.

    Raises:
        DefinitionError: If target is neither an attribute of record_type nor
            one of its declared virtual fields.
    """
    mapper = mapper_for(record_type)
    declared = target in resolved_registry(record_type).virtual_fields
    if not declared and not hasattr(record_type, target):
        raise DefinitionError.unknown_alias_target(alias, target)

    if mapper.has_property(target) and isinstance(
        mapper.get_property(target), (ColumnProperty, SynonymProperty)
    ):
        mapper.add_property(alias, synonym(target))
    else:
        setattr(record_type, alias, _alias_accessor(alias, target))
    registrar_for(record_type).add_alias(alias, target)


def belongs_to_remote(
    record_type: type,
    name: str,
    class_name: str | None = None,
    foreign_key: str | None = None,
) -> None:
    """Declare a belongs-to association resolved outside this database."""
    mapper_for(record_type)
    registrar_for(record_type).add_remote_belongs_to(
        name, {"class_name": class_name, "foreign_key": foreign_key}
    )


def assign_attributes(
    record: Any,
    values: Mapping[str, Any],
    *,
    include_protected: bool = False,
) -> list[str]:
    """Mass-assign request values onto a record, honoring visibility.

    Private attributes are never assigned; protected ones only when the
    caller grants it. Unknown keys and relationships are ignored.

    Returns:
        Names that were assigned.
    """
    record_type = type(record)
    mapper = mapper_for(record_type)
    registry = resolved_registry(record_type)
    assigned: list[str] = []

    for key, value in values.items():
        visibility = registry.visibility_of(key)
        target = registry.aliases.get(key)
        if target is not None:
            visibility = max(visibility, registry.visibility_of(target), key=lambda v: v.rank)

        if visibility is Visibility.PRIVATE or (
            visibility is Visibility.PROTECTED and not include_protected
        ):
            logger.debug(
                "assignment_skipped",
                type=record_type.__name__,
                field=key,
                reason=visibility.value,
            )
            continue

        is_column = mapper.has_property(key) and isinstance(
            mapper.get_property(key), (ColumnProperty, SynonymProperty)
        )
        if not (is_column or key in registry.virtual_fields or target is not None):
            logger.debug(
                "assignment_skipped", type=record_type.__name__, field=key, reason="unknown"
            )
            continue

        setattr(record, key, value)
        assigned.append(key)
    return assigned


# =============================================================================
# Mixin
# =============================================================================


class ResourceModel:
    """Mixin giving a mapped class its resource definition and scope dispatch.

    Put it before the declarative base: ``class Post(ResourceModel, Base)``.
    Scopes declared in the class body with @scope, @protected_scope or
    @static_scope are registered when the class is created.
    """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        scope_registry.collect_declarations(cls)

    # -- definition -----------------------------------------------------------

    @classmethod
    def resource_definition(cls, force: bool = False) -> ResourceDefinition:
        return definition_for(cls, force=force)

    @classmethod
    def attribute_typecasts(cls) -> dict[str, str]:
        return attribute_typecasts(cls)

    # -- dispatch -------------------------------------------------------------

    @classmethod
    def add_scopes(cls, params: Mapping[str, Any], query: Any = None) -> Any:
        return add_scopes(cls, params, query)

    @classmethod
    def add_static_scopes(cls, params: Mapping[str, Any], query: Any = None) -> Any:
        return add_static_scopes(cls, params, query)

    @classmethod
    def apply_scope(cls, name: str, query: Any, *args: Any, **kwargs: Any) -> Any:
        return scope_registry.apply_scope(cls, name, query, *args, **kwargs)

    # -- scopes ---------------------------------------------------------------

    @classmethod
    def scope(cls, name: str, handler: Any, params: Any = None) -> ScopeDescriptor:
        return scope_registry.register_scope(cls, name, handler, Visibility.PUBLIC, params)

    @classmethod
    def protected_scope(cls, name: str, handler: Any, params: Any = None) -> ScopeDescriptor:
        return scope_registry.register_scope(cls, name, handler, Visibility.PROTECTED, params)

    @classmethod
    def static_scope(cls, name: str, handler: Any) -> ScopeDescriptor:
        return scope_registry.register_scope(cls, name, handler, Visibility.STATIC)

    # -- fields ---------------------------------------------------------------

    @classmethod
    def attr_public(cls, *names: str) -> None:
        declare_visibility(cls, names, Visibility.PUBLIC)

    @classmethod
    def attr_protected(cls, *names: str) -> None:
        declare_visibility(cls, names, Visibility.PROTECTED)

    @classmethod
    def attr_private(cls, *names: str) -> None:
        declare_visibility(cls, names, Visibility.PRIVATE)

    @classmethod
    def virtual_attribute(
        cls,
        name: str,
        type: Any = None,  # noqa: A002
        define_accessors: bool = True,
    ) -> VirtualField:
        return virtual_attribute(cls, name, type=type, define_accessors=define_accessors)

    @classmethod
    def alias_attribute(cls, alias: str, target: str) -> None:
        alias_attribute(cls, alias, target)

    @classmethod
    def belongs_to_remote(
        cls,
        name: str,
        class_name: str | None = None,
        foreign_key: str | None = None,
    ) -> None:
        belongs_to_remote(cls, name, class_name=class_name, foreign_key=foreign_key)

    # -- instances ------------------------------------------------------------

    def assign_attributes(
        self, values: Mapping[str, Any], *, include_protected: bool = False
    ) -> list[str]:
        return assign_attributes(self, values, include_protected=include_protected)

    def update_attributes_with_protected(
        self, values: Mapping[str, Any], allowed: bool
    ) -> list[str]:
        """Assign values, including protected attributes when allowed is true.

        The caller decides allowed (typically from its own permission check)
        and commits the session.
        """
        return assign_attributes(self, values, include_protected=allowed)

"""Field and association classification.

Walks a record type's mapped columns, virtual fields, aliases and
relationships and partitions them into the public and protected attribute
sets and the has_many / belongs_to association maps.

Rules:
- Fields are public unless declared protected or private.
- Private fields appear in neither attribute set.
- Conflicting declarations resolve to the most restrictive one.
- Protected (or private) associations are left out of the association maps,
  as is the identifier-list attribute derived from them.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.orm import RelationshipDirection, RelationshipProperty

from apiresource.core.inflection import ids_accessor
from apiresource.resource.models import (
    ASSOCIATION_OPTION_KEYS,
    AssociationDescriptor,
    AssociationKind,
    Associations,
    AttributeEntry,
    AttributeSets,
    FieldDescriptor,
    FieldOrigin,
    Visibility,
)
from apiresource.resource.registrar import ResolvedRegistry, mapper_for, resolved_registry
from apiresource.resource.typecasts import typecast_for

logger = structlog.get_logger()


def field_descriptors(record_type: type) -> list[tuple[FieldDescriptor, Visibility]]:
    """Every declared field of record_type with its effective visibility.

    Columns come first, then virtual fields, then aliases. A virtual field
    sharing a column's name is reported once, as the column, carrying the
    virtual field's type override.
    """
    mapper = mapper_for(record_type)
    registry = resolved_registry(record_type)
    result: list[tuple[FieldDescriptor, Visibility]] = []
    seen: set[str] = set()

    for prop in mapper.column_attrs:
        name = prop.key
        seen.add(name)
        descriptor = FieldDescriptor(name, typecast_for(record_type, name), FieldOrigin.COLUMN)
        result.append((descriptor, registry.visibility_of(name)))

    for name in registry.virtual_fields:
        if name in seen:
            continue
        seen.add(name)
        descriptor = FieldDescriptor(name, typecast_for(record_type, name), FieldOrigin.VIRTUAL)
        result.append((descriptor, registry.visibility_of(name)))

    for alias, target in registry.aliases.items():
        if alias in seen:
            continue
        seen.add(alias)
        visibility = max(
            registry.visibility_of(alias),
            registry.visibility_of(target),
            key=lambda v: v.rank,
        )
        descriptor = FieldDescriptor(alias, typecast_for(record_type, alias), FieldOrigin.ALIAS)
        result.append((descriptor, visibility))

    return result


def _relationship_kind(rel: RelationshipProperty[Any]) -> AssociationKind | None:
    if rel.direction is RelationshipDirection.MANYTOONE:
        return AssociationKind.BELONGS_TO
    if rel.uselist:
        return AssociationKind.HAS_MANY
    # scalar one-to-one has no counterpart in the definition
    return None


def _relationship_options(rel: RelationshipProperty[Any]) -> dict[str, str]:
    options = {"class_name": rel.mapper.class_.__name__}
    pairs = rel.synchronize_pairs
    if len(pairs) == 1:
        options["foreign_key"] = pairs[0][1].name
    return {k: v for k, v in options.items() if k in ASSOCIATION_OPTION_KEYS}


def _association_hidden(name: str, registry: ResolvedRegistry, info: Any = None) -> bool:
    if registry.visibility_of(name) in (Visibility.PROTECTED, Visibility.PRIVATE):
        return True
    return bool(info and info.get("protected"))


def association_descriptors(record_type: type) -> list[AssociationDescriptor]:
    """Visible has_many / belongs_to associations of record_type."""
    mapper = mapper_for(record_type)
    registry = resolved_registry(record_type)
    result: list[AssociationDescriptor] = []

    for rel in mapper.relationships:
        kind = _relationship_kind(rel)
        if kind is None:
            logger.debug("association_ignored", type=record_type.__name__, association=rel.key)
            continue
        if _association_hidden(rel.key, registry, rel.info):
            continue
        result.append(AssociationDescriptor(rel.key, kind, _relationship_options(rel)))

    for name, remote in registry.remote_belongs_to.items():
        if _association_hidden(name, registry):
            continue
        result.append(AssociationDescriptor(name, AssociationKind.BELONGS_TO, dict(remote.options)))

    return result


def classify_type(
    record_type: type, *, ids_suffix: str = "_ids"
) -> tuple[AttributeSets, Associations]:
    """Partition record_type's fields and associations by visibility."""
    registry = resolved_registry(record_type)
    public: set[AttributeEntry] = set()
    protected: set[AttributeEntry] = set()

    def emit(entry: AttributeEntry, visibility: Visibility) -> None:
        if visibility is Visibility.PRIVATE:
            return
        if visibility is Visibility.PROTECTED:
            protected.add(entry)
        else:
            public.add(entry)

    for descriptor, visibility in field_descriptors(record_type):
        emit(descriptor.entry(), visibility)

    has_many: dict[str, dict[str, str]] = {}
    belongs_to: dict[str, dict[str, str]] = {}
    for assoc in association_descriptors(record_type):
        if assoc.kind is AssociationKind.HAS_MANY:
            has_many[assoc.name] = dict(assoc.options)
            ids_name = ids_accessor(assoc.name, ids_suffix)
            emit(ids_name, registry.visibility_of(ids_name))
        else:
            belongs_to[assoc.name] = dict(assoc.options)

    return (
        AttributeSets(public=frozenset(public), protected=frozenset(protected)),
        Associations(has_many=has_many, belongs_to=belongs_to),
    )

"""Resource definition models - descriptors and the computed definition.

All values here are immutable once built; the definition cache hands the same
instance to every reader.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.sql.elements import ClauseElement


class TypeTag(str, Enum):
    """Semantic type of an exposed attribute."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    TEXT = "text"
    BINARY = "binary"
    OTHER = "other"


class Arity(str, Enum):
    """How a scope parameter is supplied."""

    REQUIRED = "req"
    OPTIONAL = "opt"
    VARIADIC = "rest"


class Visibility(str, Enum):
    """Visibility tier of a field, association or scope."""

    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"
    STATIC = "static"  # scopes only: boolean flag filters

    @property
    def rank(self) -> int:
        """Restrictiveness; the highest rank wins when declarations conflict."""
        return _VISIBILITY_RANK[self]


_VISIBILITY_RANK = {
    Visibility.PUBLIC: 0,
    Visibility.STATIC: 0,
    Visibility.PROTECTED: 1,
    Visibility.PRIVATE: 2,
}


class FieldOrigin(str, Enum):
    """Where an attribute's value lives."""

    COLUMN = "column"
    VIRTUAL = "virtual"
    ALIAS = "alias"


class AssociationKind(str, Enum):
    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"


# Relationship options that survive into the definition
ASSOCIATION_OPTION_KEYS = ("class_name", "foreign_key")


@dataclass(frozen=True, slots=True)
class Param:
    """One entry of a scope's parameter contract."""

    name: str
    arity: Arity
    default: Any = inspect.Parameter.empty

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


@dataclass(frozen=True, slots=True)
class ScopeDescriptor:
    """A registered scope.

    handler is either a callable taking the query followed by the contract's
    parameters, or a SQL clause element applied with ``query.where``.
    """

    name: str
    handler: Any
    contract: tuple[Param, ...]
    visibility: Visibility = Visibility.PUBLIC

    @property
    def is_expression(self) -> bool:
        return isinstance(self.handler, ClauseElement)

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.contract if p.arity is Arity.REQUIRED)

    def contract_map(self) -> dict[str, str]:
        """Contract as exposed to API consumers: {param: "req"|"opt"|"rest"}."""
        return {p.name: p.arity.value for p in self.contract}


@dataclass(frozen=True, slots=True)
class VirtualField:
    """A declared attribute with no storage column of its own."""

    name: str
    type_tag: TypeTag | None = None
    define_accessors: bool = True


@dataclass(frozen=True, slots=True)
class RemoteAssociation:
    """A belongs-to association not backed by a local foreign key."""

    name: str
    options: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    name: str
    type_tag: TypeTag | None
    origin: FieldOrigin

    def entry(self) -> tuple[str, str] | str:
        """Attribute-set entry: (name, tag) when typed, the bare name otherwise."""
        if self.type_tag is None:
            return self.name
        return (self.name, self.type_tag.value)


@dataclass(frozen=True, slots=True)
class AssociationDescriptor:
    name: str
    kind: AssociationKind
    options: Mapping[str, str] = field(default_factory=dict)


AttributeEntry = tuple[str, str] | str


def _entry_name(entry: AttributeEntry) -> str:
    return entry if isinstance(entry, str) else entry[0]


@dataclass(frozen=True)
class AttributeSets:
    public: frozenset[AttributeEntry] = frozenset()
    protected: frozenset[AttributeEntry] = frozenset()

    def names(self, *, include_protected: bool = False) -> list[str]:
        entries = self.public | self.protected if include_protected else self.public
        return sorted(_entry_name(e) for e in entries)


@dataclass(frozen=True)
class Associations:
    has_many: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    belongs_to: Mapping[str, Mapping[str, str]] = field(default_factory=dict)


@dataclass(frozen=True)
class ResourceDefinition:
    """What a record type exposes to API consumers."""

    attributes: AttributeSets
    associations: Associations
    scopes: Mapping[str, Mapping[str, str]]

    def attribute_names(self, *, include_protected: bool = False) -> list[str]:
        """Names a response for the given tier may contain.

        The caller decides the tier; protected attributes are only listed
        when include_protected is set.
        """
        return self.attributes.names(include_protected=include_protected)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses (sets become sorted lists)."""

        def _entries(entries: frozenset[AttributeEntry]) -> list[Any]:
            return [
                e if isinstance(e, str) else list(e)
                for e in sorted(entries, key=_entry_name)
            ]

        return {
            "attributes": {
                "public": _entries(self.attributes.public),
                "protected": _entries(self.attributes.protected),
            },
            "associations": {
                "has_many": {k: dict(v) for k, v in self.associations.has_many.items()},
                "belongs_to": {k: dict(v) for k, v in self.associations.belongs_to.items()},
            },
            "scopes": {k: dict(v) for k, v in self.scopes.items()},
        }

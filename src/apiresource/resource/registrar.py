"""Per-type registration of resource metadata.

Each record type owns a ResourceRegistrar holding only what was declared on
that type. The effective view (resolved_registry) is rebuilt on request by
copying the ancestors' entries root-first and layering each type's own
entries on top, so a subclass extends its parents without ever sharing a
mutable structure with them, and a parent never sees subclass entries.

Registrars stay open for the life of the process. Mutations do not drop the
cached resource definition; callers pass force=True (or call invalidate)
to pick up late registrations.
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Mapper
from sqlalchemy.sql.elements import ClauseElement

from apiresource.core.errors import DefinitionError
from apiresource.resource.models import (
    ASSOCIATION_OPTION_KEYS,
    Param,
    RemoteAssociation,
    ScopeDescriptor,
    VirtualField,
    Visibility,
)
from apiresource.resource.signature import classify, normalize_contract

logger = structlog.get_logger()

_registrars: weakref.WeakKeyDictionary[type, ResourceRegistrar] = weakref.WeakKeyDictionary()
_registrars_lock = threading.Lock()


def mapper_for(record_type: Any) -> Mapper[Any]:
    """Return the SQLAlchemy mapper of a record type.

    Raises:
        DefinitionError: If record_type is not a mapped class.
    """
    if not isinstance(record_type, type):
        raise DefinitionError.not_a_record_type(record_type)
    try:
        mapper = sa_inspect(record_type)
    except NoInspectionAvailable as e:
        raise DefinitionError.not_a_record_type(record_type) from e
    if not isinstance(mapper, Mapper):
        raise DefinitionError.not_a_record_type(record_type)
    return mapper


@dataclass
class ResourceRegistrar:
    """Declarations made directly on one record type."""

    record_type_name: str
    visibility: dict[str, Visibility] = field(default_factory=dict)
    virtual_fields: dict[str, VirtualField] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    scopes: dict[str, ScopeDescriptor] = field(default_factory=dict)
    remote_belongs_to: dict[str, RemoteAssociation] = field(default_factory=dict)

    def declare_visibility(self, names: Iterable[str], visibility: Visibility) -> None:
        """Record a visibility for names; the most restrictive declaration wins."""
        for name in names:
            current = self.visibility.get(name)
            if current is not None and current.rank > visibility.rank:
                logger.debug(
                    "visibility_conflict",
                    type=self.record_type_name,
                    field=name,
                    kept=current.value,
                    ignored=visibility.value,
                )
                continue
            self.visibility[name] = visibility

    def add_virtual_field(self, virtual: VirtualField) -> None:
        self.virtual_fields[virtual.name] = virtual

    def add_alias(self, alias: str, target: str) -> None:
        self.aliases[alias] = target

    def add_scope(self, descriptor: ScopeDescriptor) -> None:
        if descriptor.name in self.scopes:
            logger.debug("scope_redefined", type=self.record_type_name, scope=descriptor.name)
        self.scopes[descriptor.name] = descriptor

    def add_remote_belongs_to(self, name: str, options: Mapping[str, Any]) -> None:
        kept = {k: str(v) for k, v in options.items() if k in ASSOCIATION_OPTION_KEYS and v}
        self.remote_belongs_to[name] = RemoteAssociation(name, kept)


@dataclass(frozen=True)
class ResolvedRegistry:
    """Effective declarations of a record type, ancestors included."""

    visibility: Mapping[str, Visibility]
    virtual_fields: Mapping[str, VirtualField]
    aliases: Mapping[str, str]
    scopes: Mapping[str, ScopeDescriptor]
    remote_belongs_to: Mapping[str, RemoteAssociation]

    def visibility_of(self, name: str) -> Visibility:
        return self.visibility.get(name, Visibility.PUBLIC)


def registrar_for(record_type: type) -> ResourceRegistrar:
    """Return (creating on first use) the registrar owned by record_type."""
    with _registrars_lock:
        registrar = _registrars.get(record_type)
        if registrar is None:
            registrar = ResourceRegistrar(record_type.__name__)
            _registrars[record_type] = registrar
        return registrar


def _lineage(record_type: type) -> list[ResourceRegistrar]:
    """Registrars of record_type and its ancestors, root first."""
    with _registrars_lock:
        return [_registrars[k] for k in reversed(record_type.__mro__) if k in _registrars]


def resolved_registry(record_type: type) -> ResolvedRegistry:
    """Merge ancestor declarations with record_type's own, root first."""
    visibility: dict[str, Visibility] = {}
    virtual_fields: dict[str, VirtualField] = {}
    aliases: dict[str, str] = {}
    scopes: dict[str, ScopeDescriptor] = {}
    remote: dict[str, RemoteAssociation] = {}

    for registrar in _lineage(record_type):
        for name, declared in registrar.visibility.items():
            current = visibility.get(name)
            if current is None or declared.rank >= current.rank:
                visibility[name] = declared
        virtual_fields.update(registrar.virtual_fields)
        aliases.update(registrar.aliases)
        scopes.update(registrar.scopes)
        remote.update(registrar.remote_belongs_to)

    return ResolvedRegistry(
        visibility=visibility,
        virtual_fields=virtual_fields,
        aliases=aliases,
        scopes=scopes,
        remote_belongs_to=remote,
    )


def build_scope(
    name: str,
    handler: Any,
    visibility: Visibility,
    params: Any = None,
) -> ScopeDescriptor:
    """Validate a scope handler and classify its contract."""
    if not isinstance(handler, ClauseElement) and not callable(handler):
        raise DefinitionError.unsupported_signature(
            name, f"expected a callable or SQL expression, got {type(handler).__name__}"
        )

    contract: tuple[Param, ...]
    if params is not None:
        contract = normalize_contract(params, name=name)
    else:
        contract = classify(handler, name=name)

    if visibility is Visibility.STATIC and contract:
        raise DefinitionError.static_with_params(name, [p.name for p in contract])
    return ScopeDescriptor(name=name, handler=handler, contract=contract, visibility=visibility)

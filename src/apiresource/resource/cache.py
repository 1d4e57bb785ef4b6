"""Resource definition cache.

Definitions are computed lazily, memoized per concrete record type, and only
recomputed when asked to (force=True) or after invalidate(). Recomputation
builds a complete new definition before publishing it under the lock, so a
reader sees either the old value or the new one.
"""

from __future__ import annotations

import threading
import weakref

import structlog

from apiresource.config.loader import get_config
from apiresource.config.models import DefinitionConfig
from apiresource.resource.classifier import classify_type
from apiresource.resource.models import ResourceDefinition
from apiresource.resource.registrar import mapper_for
from apiresource.resource.scopes import public_scopes

logger = structlog.get_logger()


def build_definition(
    record_type: type, config: DefinitionConfig | None = None
) -> ResourceDefinition:
    """Compute a record type's definition from scratch."""
    config = config or get_config().definition
    attributes, associations = classify_type(record_type, ids_suffix=config.ids_suffix)
    scopes = {name: d.contract_map() for name, d in public_scopes(record_type).items()}
    return ResourceDefinition(attributes=attributes, associations=associations, scopes=scopes)


class DefinitionCache:
    """Process-wide memo of ResourceDefinitions keyed by record type."""

    def __init__(self) -> None:
        self._definitions: weakref.WeakKeyDictionary[type, ResourceDefinition] = (
            weakref.WeakKeyDictionary()
        )
        self._lock = threading.Lock()

    def get(self, record_type: type, *, force: bool = False) -> ResourceDefinition:
        """Return the memoized definition, computing it when missing or forced."""
        mapper_for(record_type)
        if not force:
            with self._lock:
                cached = self._definitions.get(record_type)
            if cached is not None:
                return cached

        definition = build_definition(record_type)
        with self._lock:
            if not force and record_type in self._definitions:
                # another thread published first; keep a single artifact
                return self._definitions[record_type]
            self._definitions[record_type] = definition

        logger.debug(
            "definition_computed",
            type=record_type.__name__,
            forced=force,
            public=len(definition.attributes.public),
            protected=len(definition.attributes.protected),
            scopes=len(definition.scopes),
        )
        return definition

    def invalidate(self, record_type: type | None = None) -> None:
        """Drop one memoized definition, or all of them."""
        with self._lock:
            if record_type is None:
                self._definitions.clear()
            else:
                self._definitions.pop(record_type, None)

    def __contains__(self, record_type: type) -> bool:
        with self._lock:
            return record_type in self._definitions


_cache = DefinitionCache()


def definition_for(record_type: type, force: bool = False) -> ResourceDefinition:
    """Resource definition of record_type, memoized unless force is set."""
    return _cache.get(record_type, force=force)


def invalidate(record_type: type | None = None) -> None:
    """Forget the memoized definition of record_type (or of every type)."""
    _cache.invalidate(record_type)

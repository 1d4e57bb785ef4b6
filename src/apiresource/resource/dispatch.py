"""Scope dispatcher - applies untrusted request parameters to a query.

add_scopes(record_type, params, query):
1. Subtype filter when params[type_key] names a strict descendant of
   record_type (single-table inheritance).
2. Pagination when page / per-page keys are present.
3. Every public scope with parameters that the request names and whose
   required parameters are all supplied.

add_static_scopes(record_type, params, query):
- Every parameterless public/static scope whose flag is set.
- An identifier-list filter from params[ids_key].

Dispatch degrades by omission: unknown subtypes, unsatisfiable scopes and
malformed pagination values are skipped, never raised. params is only read.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy import select

from apiresource.config.loader import get_config
from apiresource.config.models import DispatchConfig
from apiresource.resource.models import Arity, Param, ScopeDescriptor, Visibility
from apiresource.resource.registrar import mapper_for
from apiresource.resource.scopes import invoke, scopes_for

logger = structlog.get_logger()

_FALSE_FLAGS = frozenset({"", "0", "false", "f", "no", "n", "off"})


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return [value]
    return list(value)


def flag_set(value: Any) -> bool:
    """Interpret a request flag; strings like "false" and "0" are unset."""
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_FLAGS
    return bool(value)


# =============================================================================
# Subtype filter
# =============================================================================


def apply_type_filter(
    record_type: type, params: Mapping[str, Any], query: Any, type_key: str
) -> Any:
    """Restrict query to a descendant subtype named in params, if any."""
    requested = params.get(type_key)
    if not isinstance(requested, str) or not requested:
        return query

    mapper = mapper_for(record_type)
    discriminator = mapper.polymorphic_on
    if discriminator is None:
        logger.debug("type_filter_skipped", type=record_type.__name__, reason="not_polymorphic")
        return query

    target = None
    for candidate in mapper.self_and_descendants:
        if candidate is mapper:
            continue
        if requested in (candidate.class_.__name__, candidate.polymorphic_identity):
            target = candidate
            break
    if target is None:
        logger.debug(
            "type_filter_skipped",
            type=record_type.__name__,
            requested=requested,
            reason="not_a_descendant",
        )
        return query

    identities = [
        m.polymorphic_identity
        for m in target.self_and_descendants
        if m.polymorphic_identity is not None
    ]
    if len(identities) == 1:
        return query.where(discriminator == identities[0])
    return query.where(discriminator.in_(identities))


# =============================================================================
# Pagination
# =============================================================================


def _as_int(value: Any) -> int | None:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number


def paginate(query: Any, page: int, per_page: int) -> Any:
    """Limit query to one 1-based page."""
    return query.limit(per_page).offset((page - 1) * per_page)


def apply_pagination(params: Mapping[str, Any], query: Any, config: DispatchConfig) -> Any:
    """Paginate when the request carries page or per-page keys."""
    if config.page_key not in params and config.per_page_key not in params:
        return query

    page = _as_int(params.get(config.page_key, 1))
    per_page = _as_int(params.get(config.per_page_key, config.default_per_page))
    if page is None or per_page is None:
        logger.debug(
            "pagination_skipped",
            page=params.get(config.page_key),
            per_page=params.get(config.per_page_key),
        )
        return query

    page = max(page, 1)
    per_page = min(max(per_page, 1), config.max_per_page)
    return paginate(query, page, per_page)


# =============================================================================
# Parameterized scopes
# =============================================================================


def _argument_source(
    descriptor: ScopeDescriptor, params: Mapping[str, Any]
) -> Mapping[str, Any] | None:
    """Where a scope's arguments come from, or None when it was not requested."""
    if descriptor.name in params:
        value = params[descriptor.name]
        if isinstance(value, Mapping):
            return value
        if len(descriptor.contract) == 1 and descriptor.contract[0].arity is not Arity.OPTIONAL:
            return {descriptor.contract[0].name: value}
        return None

    required = descriptor.required
    if required and all(name in params for name in required):
        return params
    return None


def build_arguments(
    descriptor: ScopeDescriptor, source: Mapping[str, Any]
) -> tuple[list[Any], dict[str, Any]] | None:
    """Positional and keyword arguments for a scope, or None if unsatisfiable.

    Parameters are filled in contract order. Absent optional parameters are
    left to the handler's defaults. When a later parameter is present, the
    gap is filled with the known defaults; if a default is unknown the
    remaining parameters go by keyword and a trailing variadic is dropped.
    """
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    skipped: list[Param] = []
    positional = True

    def close_gap() -> None:
        nonlocal positional
        if positional and skipped:
            if all(p.has_default for p in skipped):
                args.extend(p.default for p in skipped)
            else:
                positional = False
        skipped.clear()

    for param in descriptor.contract:
        if param.arity is Arity.VARIADIC:
            values = _as_list(source.get(param.name))
            if not values:
                continue
            close_gap()
            if positional:
                args.extend(values)
            else:
                logger.debug("scope_variadic_dropped", scope=descriptor.name, param=param.name)
            continue

        if param.name not in source:
            if param.arity is Arity.REQUIRED:
                return None
            skipped.append(param)
            continue

        close_gap()
        if positional:
            args.append(source[param.name])
        else:
            kwargs[param.name] = source[param.name]

    return args, kwargs


def apply_parameterized_scopes(record_type: type, params: Mapping[str, Any], query: Any) -> Any:
    for name, descriptor in scopes_for(record_type).items():
        if descriptor.visibility is not Visibility.PUBLIC or not descriptor.contract:
            continue
        source = _argument_source(descriptor, params)
        if source is None:
            continue
        arguments = build_arguments(descriptor, source)
        if arguments is None:
            logger.debug(
                "scope_skipped",
                type=record_type.__name__,
                scope=name,
                reason="missing_required",
            )
            continue
        args, kwargs = arguments
        query = invoke(descriptor, query, *args, **kwargs)
        logger.debug("scope_applied", type=record_type.__name__, scope=name)
    return query


# =============================================================================
# Entry points
# =============================================================================


def add_scopes(
    record_type: type,
    params: Mapping[str, Any],
    query: Any = None,
    config: DispatchConfig | None = None,
) -> Any:
    """Apply the subtype filter, pagination and parameterized scopes.

    Args:
        record_type: Mapped class being queried
        params: Request parameters (read only)
        query: Query to build on; defaults to ``select(record_type)``
        config: Parameter names and limits; defaults to the loaded config

    Returns:
        The derived query, or query itself when nothing applied.
    """
    config = config or get_config().dispatch
    if query is None:
        query = select(record_type)

    query = apply_type_filter(record_type, params, query, config.type_key)
    query = apply_pagination(params, query, config)
    return apply_parameterized_scopes(record_type, params, query)


def add_static_scopes(
    record_type: type,
    params: Mapping[str, Any],
    query: Any = None,
    config: DispatchConfig | None = None,
) -> Any:
    """Apply flagged parameterless scopes and the identifier-list filter."""
    config = config or get_config().dispatch
    if query is None:
        query = select(record_type)

    for name, descriptor in scopes_for(record_type).items():
        if descriptor.visibility is Visibility.PROTECTED or descriptor.contract:
            continue
        if name in params and flag_set(params[name]):
            query = invoke(descriptor, query)
            logger.debug("static_scope_applied", type=record_type.__name__, scope=name)

    ids = params.get(config.ids_key)
    if ids is not None:
        query = apply_ids_filter(record_type, ids, query)
    return query


def apply_ids_filter(record_type: type, ids: Any, query: Any) -> Any:
    """Restrict query to the given primary keys."""
    if isinstance(ids, str):
        values = [part.strip() for part in ids.split(",") if part.strip()]
    else:
        values = _as_list(ids)

    primary_key = mapper_for(record_type).primary_key
    if len(primary_key) != 1:
        logger.debug("ids_filter_skipped", type=record_type.__name__, reason="composite_key")
        return query
    return query.where(primary_key[0].in_(values))

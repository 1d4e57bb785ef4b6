"""Scope signature classification.

A scope handler is called as ``handler(query, *args)``. Its contract is the
ordered list of parameters after the query, each tagged required, optional
or variadic. Handlers that are SQL clause elements take no parameters.

Contracts can also be declared explicitly, which skips reflection entirely:

    params={"user_id": "req"}
    params=[("a", "req"), ("b", "opt")]
    params=[Param("ids", Arity.VARIADIC)]
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.sql.elements import ClauseElement

from apiresource.core.errors import DefinitionError
from apiresource.resource.models import Arity, Param

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)

ContractSpec = Mapping[str, Any] | Iterable[Param | tuple[str, Any]]


def classify(handler: Any, *, name: str | None = None) -> tuple[Param, ...]:
    """Derive the parameter contract of a scope handler.

    Args:
        handler: Callable taking the query first, or a SQL clause element
        name: Scope name, used in error messages

    Raises:
        DefinitionError: If the callable cannot be described by a
            required/optional/variadic contract.
    """
    scope_name = name or getattr(handler, "__name__", repr(handler))
    if isinstance(handler, ClauseElement) or not callable(handler):
        return ()

    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError) as e:
        raise DefinitionError.unsupported_signature(scope_name, str(e)) from e

    parameters = list(signature.parameters.values())
    if not parameters or parameters[0].kind not in _POSITIONAL:
        raise DefinitionError.unsupported_signature(
            scope_name, "first positional parameter must accept the query"
        )

    contract: list[Param] = []
    for param in parameters[1:]:
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            continue
        if param.kind is inspect.Parameter.KEYWORD_ONLY:
            raise DefinitionError.unsupported_signature(
                scope_name, f"keyword-only parameter '{param.name}'"
            )
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            contract.append(Param(param.name, Arity.VARIADIC))
        elif param.default is inspect.Parameter.empty:
            contract.append(Param(param.name, Arity.REQUIRED))
        else:
            contract.append(Param(param.name, Arity.OPTIONAL, param.default))
    return tuple(contract)


def normalize_contract(spec: ContractSpec, *, name: str) -> tuple[Param, ...]:
    """Turn an explicitly declared contract into Params and validate it."""
    items: Iterable[Any] = spec.items() if isinstance(spec, Mapping) else spec

    contract: list[Param] = []
    for item in items:
        if isinstance(item, Param):
            contract.append(item)
            continue
        try:
            param_name, arity = item
        except (TypeError, ValueError) as e:
            raise DefinitionError.invalid_contract(name, f"malformed entry {item!r}") from e
        try:
            contract.append(Param(str(param_name), Arity(arity)))
        except ValueError as e:
            raise DefinitionError.invalid_contract(
                name, f"unknown arity {arity!r} for '{param_name}'"
            ) from e

    _validate(contract, name=name)
    return tuple(contract)


def _validate(contract: list[Param], *, name: str) -> None:
    seen: set[str] = set()
    for index, param in enumerate(contract):
        if param.name in seen:
            raise DefinitionError.invalid_contract(name, f"duplicate parameter '{param.name}'")
        seen.add(param.name)
        if param.arity is Arity.VARIADIC and index != len(contract) - 1:
            raise DefinitionError.invalid_contract(
                name, f"variadic parameter '{param.name}' must be last"
            )

"""Attribute typecast registry.

Resolution order for a field name:
1. An explicit type given when the field was declared virtual (wins even
   over a same-named column).
2. The mapped column's SQL type.
3. For an alias, the type of the aliased attribute.
4. Otherwise untyped (None).
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import types as sqltypes
from sqlalchemy.orm import ColumnProperty

from apiresource.resource.models import TypeTag
from apiresource.resource.registrar import mapper_for, resolved_registry

# Order matters: subclasses before their bases (Text is a String, Enum is a
# String). Float and Double are listed on their own since SQLAlchemy 2.1 no
# longer derives them from Numeric.
_SQL_TYPE_TAGS: tuple[tuple[type[sqltypes.TypeEngine[Any]], TypeTag], ...] = (
    (sqltypes.Interval, TypeTag.OTHER),
    (sqltypes.Boolean, TypeTag.BOOLEAN),
    (sqltypes.Text, TypeTag.TEXT),
    (sqltypes.Enum, TypeTag.STRING),
    (sqltypes.String, TypeTag.STRING),
    (sqltypes.Integer, TypeTag.INTEGER),
    (sqltypes.Float, TypeTag.FLOAT),
    (sqltypes.Numeric, TypeTag.FLOAT),
    (sqltypes.DateTime, TypeTag.TIME),
    (sqltypes.Time, TypeTag.TIME),
    (sqltypes.Date, TypeTag.DATE),
    (sqltypes.LargeBinary, TypeTag.BINARY),
    (sqltypes.BINARY, TypeTag.BINARY),
    (sqltypes.VARBINARY, TypeTag.BINARY),
)

_PYTHON_TYPE_TAGS: tuple[tuple[type, TypeTag], ...] = (
    (bool, TypeTag.BOOLEAN),
    (int, TypeTag.INTEGER),
    (float, TypeTag.FLOAT),
    (Decimal, TypeTag.FLOAT),
    (datetime.datetime, TypeTag.TIME),
    (datetime.time, TypeTag.TIME),
    (datetime.date, TypeTag.DATE),
    (str, TypeTag.STRING),
    (bytes, TypeTag.BINARY),
)


def tag_for_sql_type(sql_type: sqltypes.TypeEngine[Any]) -> TypeTag:
    """Map a column's SQL type to a semantic tag."""
    for sql_cls, tag in _SQL_TYPE_TAGS:
        if isinstance(sql_type, sql_cls):
            return tag
    if isinstance(sql_type, sqltypes.TypeDecorator):
        return tag_for_sql_type(sql_type.impl)
    return TypeTag.OTHER


def coerce_type_tag(declared: Any) -> TypeTag:
    """Interpret a type given at virtual-field declaration time.

    Accepts a TypeTag, its string value, a Python type, or a SQLAlchemy type
    class or instance. Anything unrecognised maps to TypeTag.OTHER.
    """
    if isinstance(declared, TypeTag):
        return declared
    if isinstance(declared, str):
        try:
            return TypeTag(declared.lower())
        except ValueError:
            return TypeTag.OTHER
    if isinstance(declared, sqltypes.TypeEngine):
        return tag_for_sql_type(declared)
    if isinstance(declared, type):
        if issubclass(declared, sqltypes.TypeEngine):
            return tag_for_sql_type(declared())
        # datetime.datetime subclasses datetime.date; the table is ordered for it
        for py_cls, tag in _PYTHON_TYPE_TAGS:
            if issubclass(declared, py_cls):
                return tag
    return TypeTag.OTHER


def _column_tag(record_type: type, field_name: str) -> TypeTag | None:
    mapper = mapper_for(record_type)
    if not mapper.has_property(field_name):
        return None
    prop = mapper.get_property(field_name)
    if isinstance(prop, ColumnProperty):
        return tag_for_sql_type(prop.columns[0].type)
    return None


def typecast_for(record_type: type, field_name: str) -> TypeTag | None:
    """Semantic type of a field, or None when it is untyped."""
    registry = resolved_registry(record_type)

    virtual = registry.virtual_fields.get(field_name)
    if virtual is not None and virtual.type_tag is not None:
        return virtual.type_tag

    tag = _column_tag(record_type, field_name)
    if tag is not None:
        return tag

    target = registry.aliases.get(field_name)
    if target is not None and target != field_name:
        return typecast_for(record_type, target)
    return None


def attribute_typecasts(record_type: type) -> dict[str, str]:
    """All typed fields of a record type as {name: tag}."""
    registry = resolved_registry(record_type)
    names = [prop.key for prop in mapper_for(record_type).column_attrs]
    names += [n for n in registry.virtual_fields if n not in names]
    names += [n for n in registry.aliases if n not in names]

    casts: dict[str, str] = {}
    for name in names:
        tag = typecast_for(record_type, name)
        if tag is not None:
            casts[name] = tag.value
    return casts

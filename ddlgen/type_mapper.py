# File: ddlgen/type_mapper.py
"""
ddlgen - SQL → Logical Type Mapping
=====================================
A pure, table-driven function from a SQL Server type (name, length,
precision, scale) to a ``LogicalType``.

The tables below are the single source of truth; ``map_type`` holds no
per-call state and is cached, so the same inputs always yield an equal
``LogicalType`` (precision, scale and length included).  Lookup is
case-insensitive.  Unknown names raise ``UnknownTypeError`` with the
table/column that used them.
"""

from __future__ import annotations

import functools
import logging
import re
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import ValidationError

from ddlgen.errors import UnknownTypeError
from ddlgen.models import ColumnMetadata, LogicalKind, LogicalType

logger: logging.Logger = logging.getLogger("ddlgen.type_mapper")

# ---------------------------------------------------------------------------
# Mapping tables
# ---------------------------------------------------------------------------

_FIXED_TYPES: Dict[str, LogicalKind] = {
    # integer family
    "tinyint": LogicalKind.BYTE,
    "smallint": LogicalKind.INT16,
    "int": LogicalKind.INT32,
    "integer": LogicalKind.INT32,
    "bigint": LogicalKind.INT64,
    # floating family
    "float": LogicalKind.DOUBLE,
    "real": LogicalKind.SINGLE,
    # date / time family
    "date": LogicalKind.DATE,
    "time": LogicalKind.TIME,
    "datetime": LogicalKind.DATETIME,
    "datetime2": LogicalKind.DATETIME,
    "smalldatetime": LogicalKind.DATETIME,
    "datetimeoffset": LogicalKind.DATETIMEOFFSET,
    # scalar
    "bit": LogicalKind.BOOL,
    "uniqueidentifier": LogicalKind.GUID,
    # binary family
    "varbinary": LogicalKind.BYTES,
    "binary": LogicalKind.BYTES,
    "image": LogicalKind.BYTES,
    "timestamp": LogicalKind.BYTES,
    "rowversion": LogicalKind.BYTES,
}

# name → default (precision, scale); money types have a fixed shape
_DECIMAL_TYPES: Dict[str, Tuple[int, int]] = {
    "decimal": (18, 0),
    "numeric": (18, 0),
    "money": (19, 4),
    "smallmoney": (10, 4),
}
_PARAMETERISED_DECIMALS: FrozenSet[str] = frozenset({"decimal", "numeric"})

_BOUNDED_STRING_TYPES: FrozenSet[str] = frozenset({"varchar", "nvarchar", "char", "nchar"})

# name → fixed max length (None = unbounded)
_UNBOUNDED_STRING_TYPES: Dict[str, Optional[int]] = {
    "text": None,
    "ntext": None,
    "xml": None,
    "geography": None,
    "geometry": None,
    "hierarchyid": None,
    "sql_variant": None,
    "sysname": 128,
}

# Types whose single argument is a length (not a precision)
LENGTH_TYPES: FrozenSet[str] = _BOUNDED_STRING_TYPES | frozenset({"varbinary", "binary"})
DECIMAL_TYPES: FrozenSet[str] = frozenset(_DECIMAL_TYPES)

_TYPE_EXPRESSION_RE: re.Pattern[str] = re.compile(
    r"^\s*\[?(?P<name>[A-Za-z_][A-Za-z0-9_]*)\]?\s*(?:\(\s*(?P<args>[^)]*)\))?\s*$"
)
_LOGICAL_NAMES: FrozenSet[str] = frozenset(kind.value for kind in LogicalKind)


def known_types() -> List[str]:
    """Every SQL type name the mapper understands, sorted."""
    names = (
        set(_FIXED_TYPES)
        | set(_DECIMAL_TYPES)
        | set(_BOUNDED_STRING_TYPES)
        | set(_UNBOUNDED_STRING_TYPES)
    )
    return sorted(names)


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


def map_type(
    sql_type_name: str,
    length: Optional[int] = None,
    precision: Optional[int] = None,
    scale: Optional[int] = None,
    *,
    is_max: bool = False,
    table: Optional[str] = None,
    column: Optional[str] = None,
) -> LogicalType:
    """
    Map one SQL type to its ``LogicalType``.

    *table* and *column* only label the ``UnknownTypeError``; the lookup
    itself is cached on the type arguments alone.

    Examples:
        >>> str(map_type("DECIMAL", precision=18, scale=2))
        'Decimal(18,2)'
        >>> str(map_type("nvarchar", is_max=True))
        'String(max)'
        >>> str(map_type("char"))
        'String(1)'
    """
    try:
        logical: Optional[LogicalType] = _lookup(
            sql_type_name.strip().lower(), length, precision, scale, is_max
        )
    except ValidationError as exc:
        detail: str = _describe(sql_type_name, length, precision, scale, is_max)
        logger.debug("Invalid type arguments for %s: %s", detail, exc)
        raise UnknownTypeError(detail, table, column) from exc

    if logical is None:
        raise UnknownTypeError(sql_type_name, table, column)
    return logical


@functools.lru_cache(maxsize=None)
def _lookup(
    name: str,
    length: Optional[int],
    precision: Optional[int],
    scale: Optional[int],
    is_max: bool,
) -> Optional[LogicalType]:
    """``None`` for a type name the mapper does not know."""
    if name in _FIXED_TYPES:
        return LogicalType(kind=_FIXED_TYPES[name])

    if name in _DECIMAL_TYPES:
        default_p, default_s = _DECIMAL_TYPES[name]
        if name in _PARAMETERISED_DECIMALS and precision is not None:
            return LogicalType(
                kind=LogicalKind.DECIMAL,
                precision=precision,
                scale=scale if scale is not None else 0,
            )
        return LogicalType(kind=LogicalKind.DECIMAL, precision=default_p, scale=default_s)

    if name in _BOUNDED_STRING_TYPES:
        if is_max:
            return LogicalType(kind=LogicalKind.STRING)
        return LogicalType(
            kind=LogicalKind.STRING,
            max_length=length if length is not None else 1,
        )

    if name in _UNBOUNDED_STRING_TYPES:
        return LogicalType(
            kind=LogicalKind.STRING, max_length=_UNBOUNDED_STRING_TYPES[name]
        )
    return None


def _describe(
    name: str,
    length: Optional[int],
    precision: Optional[int],
    scale: Optional[int],
    is_max: bool,
) -> str:
    if is_max:
        return f"{name}(max)"
    args: List[str] = [str(a) for a in (length, precision, scale) if a is not None]
    return f"{name}({','.join(args)})" if args else name


def map_column(column: ColumnMetadata, table: Optional[str] = None) -> LogicalType:
    """Map a parsed column, carrying table/column context into any error."""
    return map_type(
        column.sql_type_name,
        column.max_length,
        column.precision,
        column.scale,
        is_max=column.is_max_length,
        table=table,
        column=column.name,
    )


def resolve_type_expression(
    text: str,
    *,
    table: Optional[str] = None,
    column: Optional[str] = None,
) -> LogicalType:
    """
    Resolve a free-form type expression as written in the view registry.

    Accepts canonical logical text (``Int32``, ``Decimal(18,2)``,
    ``String(max)``) or a SQL type expression (``int``, ``decimal(18,2)``,
    ``nvarchar(max)``).
    """
    head: str = text.split("(", 1)[0].strip()
    if head in _LOGICAL_NAMES:
        try:
            return LogicalType.parse(text)
        except ValueError as exc:
            raise UnknownTypeError(text, table, column) from exc

    match = _TYPE_EXPRESSION_RE.match(text or "")
    if not match:
        raise UnknownTypeError(text, table, column)
    name: str = match.group("name")
    args_text: Optional[str] = match.group("args")
    args: List[str] = [a.strip() for a in args_text.split(",")] if args_text else []

    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    is_max: bool = False
    try:
        if args and args[0].lower() == "max":
            is_max = True
        elif name.lower() in LENGTH_TYPES and args:
            length = int(args[0])
        elif args:
            precision = int(args[0])
            scale = int(args[1]) if len(args) > 1 else None
    except ValueError as exc:
        raise UnknownTypeError(text, table, column) from exc

    return map_type(
        name, length, precision, scale, is_max=is_max, table=table, column=column
    )


__all__: List[str] = [
    "LENGTH_TYPES",
    "DECIMAL_TYPES",
    "known_types",
    "map_type",
    "map_column",
    "resolve_type_expression",
]

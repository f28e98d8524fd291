# File: ddlgen/views.py
"""
ddlgen - View Registry
=======================
Loads the view registry (``views.yaml``) and the hand-written ``SELECT``
files it points at, producing ``ViewDefinition`` records for the parallel
view pipeline.

Registry format::

    views:
      - name: ProductSalesView
        description: Top selling products
        sql_file: sql/views/ProductSalesView.sql
        parameters:
          - {name: TopN, type: int, nullable: false, default: "10"}
        properties:
          - {name: Id, type: int, nullable: false}
          - {name: Name, type: "nvarchar(100)"}

``type`` is a SQL type expression, a logical type (``Decimal(18,2)``) or
one of the short registry names (``string``, ``bool``, ``long`` ...).
SQL paths are relative to the registry file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ddlgen.errors import ParseError, UnknownTypeError, ViewRegistryError
from ddlgen.lexer import Token, TokenKind, tokenize
from ddlgen.models import LogicalType, ViewColumn, ViewDefinition, ViewParameter
from ddlgen.type_mapper import resolve_type_expression
from ddlgen.utils import read_file
from ddlgen.validators import VIEW_COLUMN_NOT_IN_SELECT, ValidationResult

logger: logging.Logger = logging.getLogger("ddlgen.views")

# Short type names accepted in the registry, mapped to SQL types
_REGISTRY_TYPE_ALIASES: Dict[str, str] = {
    "string": "nvarchar",
    "str": "nvarchar",
    "bool": "bit",
    "boolean": "bit",
    "byte": "tinyint",
    "short": "smallint",
    "long": "bigint",
    "double": "float",
    "single": "real",
    "guid": "uniqueidentifier",
    "uuid": "uniqueidentifier",
    "bytes": "varbinary",
}

# ---------------------------------------------------------------------------
# Raw registry schema
# ---------------------------------------------------------------------------

_REGISTRY_CONFIG: ConfigDict = ConfigDict(extra="ignore", str_strip_whitespace=True)


class _RegistryProperty(BaseModel):
    model_config = _REGISTRY_CONFIG

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    nullable: bool = Field(default=True)
    max_length: Optional[int] = Field(default=None, ge=1)


class _RegistryParameter(BaseModel):
    model_config = _REGISTRY_CONFIG

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    nullable: bool = Field(default=False)
    default: Optional[str] = Field(default=None)


class _RegistryView(BaseModel):
    model_config = _REGISTRY_CONFIG

    name: str = Field(..., min_length=1)
    description: str = Field(default="")
    sql_file: str = Field(..., min_length=1)
    parameters: List[_RegistryParameter] = Field(default_factory=list)
    properties: List[_RegistryProperty] = Field(default_factory=list)


class _Registry(BaseModel):
    model_config = _REGISTRY_CONFIG

    views: List[_RegistryView] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# SELECT list extraction
# ---------------------------------------------------------------------------


def _item_name(item: List[Token]) -> Optional[str]:
    """Output column name of one SELECT-list item (``None`` for ``*``/unnamed)."""
    if not item:
        return None
    # T-SQL "alias = expression"
    if len(item) > 2 and item[0].is_identifier and item[1].value == "=":
        return item[0].value
    for idx in range(len(item) - 2, -1, -1):
        if item[idx].upper == "AS" and item[idx + 1].is_identifier or (
            item[idx].upper == "AS" and item[idx + 1].kind == TokenKind.STRING
        ):
            return item[idx + 1].value
    last: Token = item[-1]
    if not (last.is_identifier or last.kind == TokenKind.STRING and len(item) > 1):
        return None
    if len(item) == 1:
        return last.value
    prev: Token = item[-2]
    if prev.value == ".":
        return last.value
    if prev.kind == TokenKind.PUNCT and prev.value != ")":
        return None
    return last.value


def extract_select_columns(sql: str) -> Optional[List[str]]:
    """
    Names of the output columns of the outermost ``SELECT``.

    Returns ``None`` when the list cannot be determined statically (no
    ``SELECT`` found, or a ``*`` wildcard).
    """
    tokens: List[Token] = tokenize(sql)
    depth: int = 0
    start: Optional[int] = None
    for idx, tok in enumerate(tokens):
        if tok.kind == TokenKind.PUNCT and tok.value == "(":
            depth += 1
        elif tok.kind == TokenKind.PUNCT and tok.value == ")":
            depth -= 1
        elif depth == 0 and tok.upper == "SELECT":
            start = idx + 1
            break
    if start is None:
        return None

    items: List[List[Token]] = [[]]
    depth = 0
    idx = start
    while tokens[idx].upper in ("DISTINCT", "ALL"):
        idx += 1
    if tokens[idx].upper == "TOP":
        top: Token = tokens[idx]
        idx += 1
        if tokens[idx].value == "(":
            while tokens[idx].value != ")" and tokens[idx].kind != TokenKind.EOF:
                idx += 1
        if tokens[idx].kind == TokenKind.EOF:
            raise ParseError("TOP is not followed by a row count", top.line, top.column)
        idx += 1
        while tokens[idx].upper in ("PERCENT", "WITH", "TIES"):
            idx += 1

    for tok in tokens[idx:]:
        if tok.kind == TokenKind.EOF:
            break
        if depth == 0 and (tok.upper in ("FROM", "INTO", "UNION", "WHERE", "ORDER") or tok.value == ";"):
            break
        if tok.kind == TokenKind.PUNCT and tok.value == "(":
            depth += 1
        elif tok.kind == TokenKind.PUNCT and tok.value == ")":
            depth -= 1
        if depth == 0 and tok.kind == TokenKind.PUNCT and tok.value == ",":
            items.append([])
            continue
        items[-1].append(tok)

    names: List[str] = []
    for item in items:
        if item and item[-1].value == "*":
            return None
        name: Optional[str] = _item_name(item)
        if name:
            names.append(name)
    return names


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


def _resolve_registry_type(
    type_text: str, max_length: Optional[int], view: str, column: str
) -> LogicalType:
    text: str = type_text.strip()
    alias: Optional[str] = _REGISTRY_TYPE_ALIASES.get(text.lower())
    if alias is not None:
        if alias == "nvarchar":
            text = f"nvarchar({max_length})" if max_length else "nvarchar(max)"
        else:
            text = alias
    return resolve_type_expression(text, table=view, column=column)


class ViewRegistryLoader:
    """Reads one registry file and the SQL files it references."""

    def __init__(self, registry_path: Path) -> None:
        self.registry_path: Path = Path(registry_path)
        self.diagnostics: ValidationResult = ValidationResult()

    def load(self) -> List[ViewDefinition]:
        registry: _Registry = self._read_registry()
        views: List[ViewDefinition] = []
        seen: Set[str] = set()
        for entry in registry.views:
            key: str = entry.name.lower()
            if key in seen:
                raise ViewRegistryError(
                    f"View '{entry.name}' is declared more than once in {self.registry_path}."
                )
            seen.add(key)
            views.append(self._load_view(entry))
        logger.info("Loaded %d view(s) from %s", len(views), self.registry_path)
        return views

    def _read_registry(self) -> _Registry:
        if not self.registry_path.is_file():
            raise ViewRegistryError(f"View registry not found: {self.registry_path}")
        try:
            raw: Any = yaml.safe_load(read_file(self.registry_path))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise ViewRegistryError(f"Invalid view registry {self.registry_path}: {exc}") from exc
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ViewRegistryError(
                f"View registry {self.registry_path} must be a mapping with a 'views' list."
            )
        try:
            return _Registry.model_validate(raw)
        except ValidationError as exc:
            raise ViewRegistryError(f"Invalid view registry {self.registry_path}: {exc}") from exc

    def _load_view(self, entry: _RegistryView) -> ViewDefinition:
        sql_path: Path = (self.registry_path.parent / entry.sql_file).resolve()
        if not sql_path.is_file():
            raise ViewRegistryError(f"SQL file for view '{entry.name}' not found: {sql_path}")
        try:
            sql: str = read_file(sql_path)
        except (OSError, UnicodeDecodeError) as exc:
            raise ViewRegistryError(
                f"Cannot read SQL file for view '{entry.name}' ({sql_path}): {exc}"
            ) from exc
        if not sql.strip():
            raise ViewRegistryError(f"SQL file for view '{entry.name}' is empty: {sql_path}")

        try:
            columns: List[ViewColumn] = [
                ViewColumn(
                    name=prop.name,
                    logical_type=_resolve_registry_type(
                        prop.type, prop.max_length, entry.name, prop.name
                    ),
                    nullable=prop.nullable,
                )
                for prop in entry.properties
            ]
            parameters: List[ViewParameter] = [
                ViewParameter(
                    name=param.name.lstrip("@"),
                    logical_type=_resolve_registry_type(param.type, None, entry.name, param.name),
                    nullable=param.nullable,
                    default=param.default,
                )
                for param in entry.parameters
            ]
            view = ViewDefinition(
                name=entry.name,
                description=entry.description,
                sql_file=Path(entry.sql_file).as_posix(),
                sql_source=sql,
                result_columns=tuple(columns),
                parameters=tuple(parameters),
            )
        except UnknownTypeError as exc:
            raise ViewRegistryError(f"View '{entry.name}': {exc}") from exc
        except ValidationError as exc:
            raise ViewRegistryError(f"View '{entry.name}' is invalid: {exc}") from exc

        self._check_select_list(view, sql_path)
        return view

    def _check_select_list(self, view: ViewDefinition, sql_path: Path) -> None:
        try:
            selected: Optional[List[str]] = extract_select_columns(view.sql_source)
        except ParseError as exc:
            raise ViewRegistryError(f"Cannot read SQL for view '{view.name}' ({sql_path}): {exc}") from exc
        if selected is None:
            logger.debug("SELECT list of %s is not statically known; skipping column check", view.name)
            return
        available: Set[str] = {name.lower() for name in selected}
        for column in view.result_columns:
            if column.name.lower() not in available:
                self.diagnostics.add_warning(
                    VIEW_COLUMN_NOT_IN_SELECT,
                    f"Declared column '{column.name}' of view '{view.name}' does not "
                    f"appear in the SELECT list of {view.sql_file}.",
                    {"view": view.name, "column": column.name},
                )


def load_view_registry(
    registry_path: Path,
    diagnostics: Optional[ValidationResult] = None,
) -> List[ViewDefinition]:
    """Load every view of *registry_path*; warnings go to *diagnostics*."""
    loader = ViewRegistryLoader(registry_path)
    views: List[ViewDefinition] = loader.load()
    if diagnostics is not None:
        diagnostics.merge(loader.diagnostics)
    return views


__all__: List[str] = [
    "ViewRegistryLoader",
    "extract_select_columns",
    "load_view_registry",
]

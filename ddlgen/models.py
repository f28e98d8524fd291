# File: ddlgen/models.py
"""
ddlgen - Core Data Models
==========================
Pydantic V2 models for every record that flows through the pipeline:

    Parse → Visit → MapTypes → Build → Serialize → Generate

``TableMetadata`` / ``ColumnMetadata`` / ``ForeignKeyMetadata`` come out of
the visitor, ``EntityDefinition`` / ``ViewDefinition`` come out of the
builder and are what the template engine consumes, and
``IntermediateSchemaDocument`` is the serialised contract between the two
halves of the tool.

All pipeline records are frozen: once a stage has produced them nobody
edits them in place.  Document field names (camelCase aliases) are a
contract with external consumers; changes must be additive.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen.models")

DOCUMENT_VERSION: int = 1

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class LogicalKind(str, Enum):
    """Closed set of dialect-independent logical types."""

    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    BYTE = "Byte"
    DECIMAL = "Decimal"
    DOUBLE = "Double"
    SINGLE = "Single"
    BOOL = "Bool"
    GUID = "Guid"
    DATE = "Date"
    TIME = "Time"
    DATETIME = "DateTime"
    DATETIMEOFFSET = "DateTimeOffset"
    STRING = "String"
    BYTES = "Bytes"


class Cardinality(str, Enum):
    """Relationship cardinality as seen from the entity that owns it."""

    MANY_TO_ONE = "many-to-one"
    ONE_TO_MANY = "one-to-many"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_RECORD_CONFIG: ConfigDict = ConfigDict(
    frozen=True,
    extra="forbid",
    populate_by_name=True,
    alias_generator=to_camel,
)

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)

_LOGICAL_TYPE_RE: re.Pattern[str] = re.compile(
    r"^\s*(?P<kind>[A-Za-z0-9]+)\s*(?:\(\s*(?P<args>[^)]*)\))?\s*$"
)


# ---------------------------------------------------------------------------
# Logical type
# ---------------------------------------------------------------------------


class LogicalType(BaseModel):
    """
    One variant of the logical type set.

    Only ``Decimal`` carries precision/scale and only ``String`` carries a
    maximum length (``None`` means unbounded).  The canonical text form
    (``Decimal(18,2)``, ``String(100)``, ``String(max)``) is what the
    intermediate document stores; ``parse`` is its exact inverse.
    """

    model_config = _RECORD_CONFIG

    kind: LogicalKind = Field(..., description="Type variant.")
    precision: Optional[int] = Field(default=None, ge=1, le=38)
    scale: Optional[int] = Field(default=None, ge=0, le=38)
    max_length: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_parameters(self) -> "LogicalType":
        if self.kind == LogicalKind.DECIMAL:
            if self.precision is None or self.scale is None:
                raise ValueError("Decimal requires both precision and scale.")
            if self.scale > self.precision:
                raise ValueError(
                    f"Decimal scale ({self.scale}) exceeds precision ({self.precision})."
                )
        elif self.precision is not None or self.scale is not None:
            raise ValueError(f"{self.kind.value} does not take precision/scale.")
        if self.kind != LogicalKind.STRING and self.max_length is not None:
            raise ValueError(f"{self.kind.value} does not take a max length.")
        return self

    @property
    def is_unbounded(self) -> bool:
        return self.kind == LogicalKind.STRING and self.max_length is None

    @property
    def is_numeric(self) -> bool:
        return self.kind in {
            LogicalKind.INT16,
            LogicalKind.INT32,
            LogicalKind.INT64,
            LogicalKind.BYTE,
            LogicalKind.DECIMAL,
            LogicalKind.DOUBLE,
            LogicalKind.SINGLE,
        }

    @classmethod
    def parse(cls, text: str) -> "LogicalType":
        """Parse the canonical text form back into a ``LogicalType``."""
        match = _LOGICAL_TYPE_RE.match(text or "")
        if not match:
            raise ValueError(f"Malformed logical type: {text!r}")
        try:
            kind: LogicalKind = LogicalKind(match.group("kind"))
        except ValueError as exc:
            raise ValueError(f"Unknown logical type: {text!r}") from exc

        args_text: Optional[str] = match.group("args")
        args: List[str] = (
            [a.strip() for a in args_text.split(",")] if args_text is not None else []
        )

        if kind == LogicalKind.DECIMAL:
            if len(args) != 2:
                raise ValueError(f"Decimal needs (precision,scale): {text!r}")
            return cls(kind=kind, precision=int(args[0]), scale=int(args[1]))
        if kind == LogicalKind.STRING:
            if len(args) != 1:
                raise ValueError(f"String needs (length) or (max): {text!r}")
            if args[0].lower() == "max":
                return cls(kind=kind)
            return cls(kind=kind, max_length=int(args[0]))
        if args:
            raise ValueError(f"{kind.value} takes no arguments: {text!r}")
        return cls(kind=kind)

    def __str__(self) -> str:
        if self.kind == LogicalKind.DECIMAL:
            return f"Decimal({self.precision},{self.scale})"
        if self.kind == LogicalKind.STRING:
            return f"String({self.max_length if self.max_length else 'max'})"
        return self.kind.value

    def __repr__(self) -> str:
        return f"<LogicalType {self}>"


def _coerce_logical_type(value: Any) -> Any:
    if isinstance(value, str):
        return LogicalType.parse(value)
    return value


# ---------------------------------------------------------------------------
# Parse-side records (output of the table visitor)
# ---------------------------------------------------------------------------


class ColumnMetadata(BaseModel):
    """A single column exactly as declared in ``CREATE TABLE``."""

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    sql_type_name: str = Field(..., min_length=1, description="SQL type as written.")
    is_nullable: bool = Field(default=True, description="NULL allowed?")
    is_identity: bool = Field(default=False, description="IDENTITY column?")
    max_length: Optional[int] = Field(default=None, ge=1)
    is_max_length: bool = Field(
        default=False, description="True for (MAX) length arguments."
    )
    precision: Optional[int] = Field(default=None, ge=0)
    scale: Optional[int] = Field(default=None, ge=0)
    default_expression: Optional[str] = Field(
        default=None, description="DEFAULT expression source text."
    )
    identity_seed: Optional[int] = Field(default=None)
    identity_increment: Optional[int] = Field(default=None)
    source_line: int = Field(default=0, ge=0, description="Declaration line.")

    def __repr__(self) -> str:
        null_flag: str = " NULL" if self.is_nullable else " NOT NULL"
        return f"<Column {self.name} {self.sql_type_name}{null_flag}>"


class ForeignKeyMetadata(BaseModel):
    """Single-column foreign key reference."""

    model_config = _RECORD_CONFIG

    column_name: str = Field(..., min_length=1)
    referenced_schema: str = Field(default="", description="Empty when unqualified.")
    referenced_table: str = Field(..., min_length=1)
    referenced_column: str = Field(default="Id", min_length=1)
    constraint_name: Optional[str] = Field(default=None)

    def __repr__(self) -> str:
        target: str = (
            f"{self.referenced_schema}.{self.referenced_table}"
            if self.referenced_schema
            else self.referenced_table
        )
        return f"<FK {self.column_name} → {target}.{self.referenced_column}>"


class TableMetadata(BaseModel):
    """
    Everything the visitor learned about one ``CREATE TABLE`` statement.

    Inline and table-level constraints are already merged; unsupported
    constructs have been reported and dropped.
    """

    model_config = _RECORD_CONFIG

    schema_name: str = Field(default="", alias="schema")
    name: str = Field(..., min_length=1)
    columns: Tuple[ColumnMetadata, ...] = Field(default_factory=tuple)
    primary_key_column: Optional[str] = Field(default=None)
    foreign_keys: Tuple[ForeignKeyMetadata, ...] = Field(default_factory=tuple)
    source_line: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _validate_references(self) -> "TableMetadata":
        names = {c.name.lower() for c in self.columns}
        if self.primary_key_column and self.primary_key_column.lower() not in names:
            raise ValueError(
                f"Primary key column '{self.primary_key_column}' does not exist "
                f"in table '{self.qualified_name}'."
            )
        return self

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}" if self.schema_name else self.name

    def get_column(self, name: str) -> Optional[ColumnMetadata]:
        """Case-insensitive column lookup (SQL Server default collation)."""
        wanted: str = name.lower()
        for col in self.columns:
            if col.name.lower() == wanted:
                return col
        return None

    def __repr__(self) -> str:
        return (
            f"<Table {self.qualified_name} "
            f"({len(self.columns)} cols, {len(self.foreign_keys)} FKs)>"
        )


# ---------------------------------------------------------------------------
# Build-side records (intermediate document)
# ---------------------------------------------------------------------------


class PropertyConstraints(BaseModel):
    """Constraint metadata driving validation attribute emission."""

    model_config = _RECORD_CONFIG

    required: bool = Field(default=False)
    max_length: Optional[int] = Field(default=None, ge=1)
    precision: Optional[int] = Field(default=None, ge=1)
    scale: Optional[int] = Field(default=None, ge=0)


class PropertyDef(BaseModel):
    """One property of a generated entity."""

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1)
    logical_type: LogicalType = Field(...)
    sql_type: str = Field(..., min_length=1)
    nullable: bool = Field(default=True)
    is_primary_key: bool = Field(default=False)
    is_identity: bool = Field(default=False)
    default_value: Optional[str] = Field(default=None)
    constraints: PropertyConstraints = Field(default_factory=PropertyConstraints)

    @field_validator("logical_type", mode="before")
    @classmethod
    def _parse_logical_type(cls, v: Any) -> Any:
        return _coerce_logical_type(v)

    @field_serializer("logical_type")
    def _serialize_logical_type(self, value: LogicalType) -> str:
        return str(value)

    @model_validator(mode="after")
    def _keys_are_never_null(self) -> "PropertyDef":
        if self.nullable and (self.is_primary_key or self.is_identity):
            raise ValueError(
                f"Property '{self.name}' is a key/identity and cannot be nullable."
            )
        return self

    def __repr__(self) -> str:
        flags: str = "" if self.nullable else " required"
        return f"<Property {self.name}: {self.logical_type}{flags}>"


class RelationshipDef(BaseModel):
    """Named navigation derived from one foreign key."""

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1, description="Attribute name on the entity.")
    target_entity: str = Field(..., min_length=1)
    target_schema: str = Field(default="")
    foreign_key_column: str = Field(..., min_length=1)
    principal_key: str = Field(default="Id")
    cardinality: Cardinality = Field(...)
    inverse: Optional[str] = Field(
        default=None, description="Name of the matching relationship on the target."
    )

    def __repr__(self) -> str:
        return (
            f"<Relationship {self.name} ({self.cardinality.value}) "
            f"→ {self.target_entity}>"
        )


class EntityDefinition(BaseModel):
    """The unit the code generator consumes; derived 1:1 from a table."""

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1)
    schema_name: str = Field(default="", alias="schema")
    table: str = Field(..., min_length=1)
    properties: Tuple[PropertyDef, ...] = Field(default_factory=tuple)
    relationships: Tuple[RelationshipDef, ...] = Field(default_factory=tuple)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}" if self.schema_name else self.name

    @property
    def primary_key(self) -> Optional[PropertyDef]:
        for prop in self.properties:
            if prop.is_primary_key:
                return prop
        return None

    def get_property(self, name: str) -> Optional[PropertyDef]:
        wanted: str = name.lower()
        for prop in self.properties:
            if prop.name.lower() == wanted:
                return prop
        return None

    def __repr__(self) -> str:
        return (
            f"<Entity {self.qualified_name} "
            f"({len(self.properties)} props, {len(self.relationships)} rels)>"
        )


class ViewColumn(BaseModel):
    """One declared result column of a view projection."""

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1)
    logical_type: LogicalType = Field(...)
    nullable: bool = Field(default=True)

    @field_validator("logical_type", mode="before")
    @classmethod
    def _parse_logical_type(cls, v: Any) -> Any:
        return _coerce_logical_type(v)

    @field_serializer("logical_type")
    def _serialize_logical_type(self, value: LogicalType) -> str:
        return str(value)


class ViewParameter(BaseModel):
    """A ``@parameter`` the view SQL expects."""

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1)
    logical_type: LogicalType = Field(...)
    nullable: bool = Field(default=False)
    default: Optional[str] = Field(default=None)

    @field_validator("logical_type", mode="before")
    @classmethod
    def _parse_logical_type(cls, v: Any) -> Any:
        return _coerce_logical_type(v)

    @field_serializer("logical_type")
    def _serialize_logical_type(self, value: LogicalType) -> str:
        return str(value)


class ViewDefinition(BaseModel):
    """
    Read-only projection over a hand-written ``SELECT``.

    No primary or foreign key semantics.  ``sql_source`` is loaded from
    ``sql_file`` and is kept out of the serialised document.
    """

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1)
    description: str = Field(default="")
    sql_file: str = Field(default="")
    sql_source: str = Field(default="", exclude=True)
    result_columns: Tuple[ViewColumn, ...] = Field(default_factory=tuple)
    parameters: Tuple[ViewParameter, ...] = Field(default_factory=tuple)

    @field_validator("result_columns")
    @classmethod
    def _unique_columns(cls, v: Tuple[ViewColumn, ...]) -> Tuple[ViewColumn, ...]:
        seen: set = set()
        for col in v:
            key: str = col.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate result column '{col.name}'.")
            seen.add(key)
        return v

    def __repr__(self) -> str:
        return f"<View {self.name} ({len(self.result_columns)} cols)>"


class AppMetadata(BaseModel):
    """Application block at the top of the intermediate document."""

    model_config = _RECORD_CONFIG

    name: str = Field(default="app", min_length=1)
    title: str = Field(default="")
    description: str = Field(default="")


class IntermediateSchemaDocument(BaseModel):
    """
    The root of the intermediate schema document.

    Entities keep discovery order and properties keep declaration order so
    that re-serialising unchanged input is byte-identical.
    """

    model_config = _RECORD_CONFIG

    version: int = Field(default=DOCUMENT_VERSION, ge=1)
    generator: str = Field(default="")
    app: AppMetadata = Field(default_factory=AppMetadata)
    entities: Tuple[EntityDefinition, ...] = Field(default_factory=tuple)
    views: Tuple[ViewDefinition, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _unique_names(self) -> "IntermediateSchemaDocument":
        keys: List[str] = [e.qualified_name.lower() for e in self.entities]
        if len(keys) != len(set(keys)):
            dupes: List[str] = sorted({k for k in keys if keys.count(k) > 1})
            raise ValueError(f"Duplicate entity names: {dupes}")
        view_names: List[str] = [v.name.lower() for v in self.views]
        if len(view_names) != len(set(view_names)):
            raise ValueError("Duplicate view names in document.")
        return self

    def get_entity(self, name: str, schema: str = "") -> Optional[EntityDefinition]:
        for entity in self.entities:
            if entity.name == name and entity.schema_name.lower() == schema.lower():
                return entity
        return None

    def __repr__(self) -> str:
        return (
            f"<IntermediateSchemaDocument v{self.version} "
            f"{len(self.entities)} entities, {len(self.views)} views>"
        )


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Every knob of a generation run.

    Loaded from an optional YAML file and overridden from the CLI.
    """

    model_config = _SHARED_CONFIG

    # -- Application metadata -----------------------------------------------
    app_name: str = Field(default="app", min_length=1, max_length=128)
    app_title: str = Field(default="", description="Human-readable title.")
    app_description: str = Field(default="")

    # -- Output -------------------------------------------------------------
    package_name: str = Field(
        default="generated_models",
        description="Import package of the generated tree.",
    )
    manual_extension_pattern: str = Field(
        default="*_ext.py",
        min_length=1,
        description="Glob for hand-written files the generator must never write.",
    )
    write_document: bool = Field(
        default=True, description="Write the intermediate document next to the code."
    )
    document_filename: str = Field(default="data.yaml", min_length=1)
    atomic_writes: bool = Field(default=True)
    max_workers: int = Field(
        default=4, ge=1, le=64, description="Parallel file writers (1 = sequential)."
    )

    # -- Semantics ----------------------------------------------------------
    strict_foreign_keys: bool = Field(
        default=False,
        description="Treat FKs to tables missing from the input as fatal.",
    )
    fail_on_warnings: bool = Field(default=False)

    # -- Code style ---------------------------------------------------------
    indent_size: int = Field(default=4, ge=2, le=8)
    generate_docstrings: bool = Field(default=True)

    @field_validator("package_name")
    @classmethod
    def _valid_package(cls, v: str) -> str:
        for part in v.split("."):
            if not part.isidentifier():
                raise ValueError(f"Invalid package name: {v!r}")
        return v

    def app_metadata(self) -> AppMetadata:
        return AppMetadata(
            name=self.app_name,
            title=self.app_title or self.app_name,
            description=self.app_description,
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DOCUMENT_VERSION",
    "LogicalKind",
    "Cardinality",
    "LogicalType",
    "ColumnMetadata",
    "ForeignKeyMetadata",
    "TableMetadata",
    "PropertyConstraints",
    "PropertyDef",
    "RelationshipDef",
    "EntityDefinition",
    "ViewColumn",
    "ViewParameter",
    "ViewDefinition",
    "AppMetadata",
    "IntermediateSchemaDocument",
    "GenerationConfig",
]

logger.debug("ddlgen.models loaded — %d public symbols.", len(__all__))

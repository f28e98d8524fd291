# File: ddlgen/builder.py
"""
ddlgen - Metadata Builder & Serializer
========================================
Assembles the visitor's ``TableMetadata`` records into
``EntityDefinition``s and writes the intermediate schema document.

Build rules:
    - one entity per table, in discovery order; properties in declaration order
    - entity name = singular of the table name (``Products`` → ``Product``)
    - every resolved foreign key adds a ``many-to-one`` relationship on the
      owning entity and a ``one-to-many`` relationship on the referenced one,
      linked through ``inverse``
    - relationship names never collide with each other or with property
      attribute names on the same entity

Serialization is deterministic: PyYAML ``safe_dump`` with insertion order,
no timestamps, and a self-check that re-parses and re-dumps the output.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import yaml
from pydantic import ValidationError

from ddlgen.errors import ForeignKeyResolutionError, SerializationError
from ddlgen.models import (
    AppMetadata,
    Cardinality,
    ColumnMetadata,
    EntityDefinition,
    ForeignKeyMetadata,
    IntermediateSchemaDocument,
    LogicalKind,
    LogicalType,
    PropertyConstraints,
    PropertyDef,
    RelationshipDef,
    TableMetadata,
    ViewDefinition,
)
from ddlgen.type_mapper import map_column
from ddlgen.utils import safe_identifier, table_to_entity_name, to_plural
from ddlgen.validators import UNRESOLVED_FOREIGN_KEY, ValidationResult

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen.builder")

_FK_SUFFIX_RE: re.Pattern[str] = re.compile(r"(?:_(?:id|Id|ID)|(?<=[a-z0-9])(?:Id|ID))$")

DOCUMENT_HEADER: str = "# Generated by ddlgen. Do not edit by hand; re-run the generator.\n"

TableKey = Tuple[str, str]


def _key(schema: str, name: str) -> TableKey:
    return (schema.lower(), name.lower())


def _render_sql_type(column: ColumnMetadata) -> str:
    """``nvarchar(100)``, ``decimal(18,2)``, ``nvarchar(max)``, ``int``."""
    name: str = column.sql_type_name.lower()
    if column.is_max_length:
        return f"{name}(max)"
    if column.max_length is not None:
        return f"{name}({column.max_length})"
    if column.precision is not None and column.scale is not None:
        return f"{name}({column.precision},{column.scale})"
    if column.precision is not None:
        return f"{name}({column.precision})"
    return name


def _unique_name(candidate: str, used: Set[str]) -> str:
    name: str = candidate
    counter: int = 2
    while name in used:
        name = f"{candidate}_{counter}"
        counter += 1
    used.add(name)
    return name


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class _EntityDraft:
    """Mutable accumulator used only while the builder runs."""

    __slots__ = ("table", "name", "properties", "relationships", "used_names")

    def __init__(self, table: TableMetadata, name: str, properties: List[PropertyDef]) -> None:
        self.table: TableMetadata = table
        self.name: str = name
        self.properties: List[PropertyDef] = properties
        self.relationships: List[RelationshipDef] = []
        self.used_names: Set[str] = {safe_identifier(p.name) for p in properties}

    def freeze(self) -> EntityDefinition:
        return EntityDefinition(
            name=self.name,
            schema=self.table.schema_name,
            table=self.table.name,
            properties=tuple(self.properties),
            relationships=tuple(self.relationships),
        )


class MetadataBuilder:
    """
    Turns a complete table set into an ``IntermediateSchemaDocument``.

    Needs every table up front: relationship naming depends on how many
    foreign keys point from one table to another.
    """

    def __init__(
        self,
        tables: Sequence[TableMetadata],
        *,
        app: Optional[AppMetadata] = None,
        views: Sequence[ViewDefinition] = (),
        strict_foreign_keys: bool = False,
        generator_name: str = "ddlgen",
    ) -> None:
        self.tables: List[TableMetadata] = list(tables)
        self.app: AppMetadata = app or AppMetadata()
        self.views: List[ViewDefinition] = list(views)
        self.strict_foreign_keys: bool = strict_foreign_keys
        self.generator_name: str = generator_name
        self.diagnostics: ValidationResult = ValidationResult()

        self._drafts: Dict[TableKey, _EntityDraft] = {}
        self._by_name: Dict[str, List[TableKey]] = {}

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def build(self) -> IntermediateSchemaDocument:
        for table in self.tables:
            key: TableKey = _key(table.schema_name, table.name)
            self._drafts[key] = _EntityDraft(
                table, table_to_entity_name(table.name), self._build_properties(table)
            )
            self._by_name.setdefault(table.name.lower(), []).append(key)

        for table in self.tables:
            self._add_relationships(self._drafts[_key(table.schema_name, table.name)])

        document = IntermediateSchemaDocument(
            generator=self.generator_name,
            app=self.app,
            entities=tuple(d.freeze() for d in self._drafts.values()),
            views=tuple(self.views),
        )
        logger.info(
            "Built document — %d entities, %d relationships, %d views",
            len(document.entities),
            sum(len(e.relationships) for e in document.entities),
            len(document.views),
        )
        return document

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def _build_properties(self, table: TableMetadata) -> List[PropertyDef]:
        pk: str = (table.primary_key_column or "").lower()
        properties: List[PropertyDef] = []
        for column in table.columns:
            logical: LogicalType = map_column(column, table.qualified_name)
            is_pk: bool = column.name.lower() == pk
            nullable: bool = column.is_nullable and not is_pk and not column.is_identity
            constraints = PropertyConstraints(
                required=not nullable,
                max_length=logical.max_length if logical.kind == LogicalKind.STRING else None,
                precision=logical.precision,
                scale=logical.scale,
            )
            properties.append(
                PropertyDef(
                    name=column.name,
                    logical_type=logical,
                    sql_type=_render_sql_type(column),
                    nullable=nullable,
                    is_primary_key=is_pk,
                    is_identity=column.is_identity,
                    default_value=column.default_expression,
                    constraints=constraints,
                )
            )
        return properties

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def _resolve_target(
        self, owner: TableMetadata, fk: ForeignKeyMetadata
    ) -> Optional[_EntityDraft]:
        if fk.referenced_schema:
            return self._drafts.get(_key(fk.referenced_schema, fk.referenced_table))

        same_schema = self._drafts.get(_key(owner.schema_name, fk.referenced_table))
        if same_schema is not None:
            return same_schema

        candidates: List[TableKey] = self._by_name.get(fk.referenced_table.lower(), [])
        if len(candidates) == 1:
            return self._drafts[candidates[0]]
        if len(candidates) > 1:
            raise ForeignKeyResolutionError(
                f"Foreign key '{owner.qualified_name}.{fk.column_name}' references "
                f"'{fk.referenced_table}', which exists in several schemas "
                f"({', '.join(sorted(self._drafts[c].table.qualified_name for c in candidates))}); "
                f"qualify the reference with a schema."
            )
        return None

    def _add_relationships(self, owner: _EntityDraft) -> None:
        table: TableMetadata = owner.table

        fan_out: Dict[Tuple[str, str], int] = {}
        targets: List[Tuple[ForeignKeyMetadata, ColumnMetadata, Optional[_EntityDraft]]] = []
        for fk in table.foreign_keys:
            local: Optional[ColumnMetadata] = table.get_column(fk.column_name)
            if local is None:
                raise ForeignKeyResolutionError(
                    f"Foreign key column '{fk.column_name}' does not exist in "
                    f"table '{table.qualified_name}'."
                )
            target: Optional[_EntityDraft] = self._resolve_target(table, fk)
            targets.append((fk, local, target))
            if target is not None:
                pair = _key(target.table.schema_name, target.table.name)
                fan_out[pair] = fan_out.get(pair, 0) + 1

        for fk, local, target in targets:
            owner_side: str = self._owner_side_name(local.name, fk, target)

            if target is None:
                self._unresolved(table, fk)
                owner.relationships.append(
                    RelationshipDef(
                        name=_unique_name(owner_side, owner.used_names),
                        target_entity=table_to_entity_name(fk.referenced_table),
                        target_schema=fk.referenced_schema or table.schema_name,
                        foreign_key_column=local.name,
                        principal_key=fk.referenced_column,
                        cardinality=Cardinality.MANY_TO_ONE,
                    )
                )
                continue

            principal: Optional[ColumnMetadata] = target.table.get_column(fk.referenced_column)
            if principal is None:
                raise ForeignKeyResolutionError(
                    f"Foreign key '{table.qualified_name}.{local.name}' references "
                    f"column '{fk.referenced_column}', which does not exist in "
                    f"table '{target.table.qualified_name}'."
                )

            owner_name: str = _unique_name(owner_side, owner.used_names)
            target_side: str = safe_identifier(to_plural(owner.name))
            if fan_out[_key(target.table.schema_name, target.table.name)] > 1:
                target_side = f"{target_side}_by_{owner_name}"
            inverse_name: str = _unique_name(target_side, target.used_names)

            owner.relationships.append(
                RelationshipDef(
                    name=owner_name,
                    target_entity=target.name,
                    target_schema=target.table.schema_name,
                    foreign_key_column=local.name,
                    principal_key=principal.name,
                    cardinality=Cardinality.MANY_TO_ONE,
                    inverse=inverse_name,
                )
            )
            target.relationships.append(
                RelationshipDef(
                    name=inverse_name,
                    target_entity=owner.name,
                    target_schema=table.schema_name,
                    foreign_key_column=local.name,
                    principal_key=principal.name,
                    cardinality=Cardinality.ONE_TO_MANY,
                    inverse=owner_name,
                )
            )

    @staticmethod
    def _owner_side_name(
        column_name: str, fk: ForeignKeyMetadata, target: Optional[_EntityDraft]
    ) -> str:
        """``CategoryId`` → ``category``; a bare ``Id`` falls back to the target."""
        stem: str = _FK_SUFFIX_RE.sub("", column_name)
        if stem and stem != column_name:
            return safe_identifier(stem)
        target_name: str = target.name if target else table_to_entity_name(fk.referenced_table)
        return safe_identifier(target_name)

    def _unresolved(self, table: TableMetadata, fk: ForeignKeyMetadata) -> None:
        target: str = (
            f"{fk.referenced_schema}.{fk.referenced_table}"
            if fk.referenced_schema
            else fk.referenced_table
        )
        message: str = (
            f"Foreign key '{table.qualified_name}.{fk.column_name}' references "
            f"table '{target}', which is not defined in the input."
        )
        if self.strict_foreign_keys:
            raise ForeignKeyResolutionError(message)
        self.diagnostics.add_warning(
            UNRESOLVED_FOREIGN_KEY,
            message + " Only the owning side of the relationship is generated.",
            {"table": table.qualified_name, "column": fk.column_name},
        )


def build(
    tables: Sequence[TableMetadata],
    *,
    app: Optional[AppMetadata] = None,
    views: Sequence[ViewDefinition] = (),
    strict_foreign_keys: bool = False,
) -> IntermediateSchemaDocument:
    """Convenience wrapper around ``MetadataBuilder`` (diagnostics are dropped)."""
    return MetadataBuilder(
        tables, app=app, views=views, strict_foreign_keys=strict_foreign_keys
    ).build()


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def document_to_dict(document: IntermediateSchemaDocument) -> Dict[str, Any]:
    """camelCase, insertion-ordered, JSON-compatible view of the document."""
    return document.model_dump(mode="json", by_alias=True, exclude_none=True)


def _dump(data: Dict[str, Any]) -> str:
    return DOCUMENT_HEADER + yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=120,
    )


def serialize(document: IntermediateSchemaDocument) -> str:
    """
    Render the document as YAML.

    Raises ``SerializationError`` when the output cannot be encoded or does
    not survive a parse → dump round trip byte-for-byte.
    """
    try:
        text: str = _dump(document_to_dict(document))
        text.encode("utf-8")
        again: str = _dump(document_to_dict(deserialize(text)))
    except (yaml.YAMLError, UnicodeError, ValueError) as exc:
        raise SerializationError(f"Could not serialize document: {exc}") from exc
    if again != text:
        raise SerializationError("Serialized document is not stable across a round trip.")
    return text


def deserialize(text: str) -> IntermediateSchemaDocument:
    """Parse a YAML document written by ``serialize``."""
    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SerializationError(f"Invalid YAML document: {exc}") from exc
    if not isinstance(data, dict):
        raise SerializationError("Intermediate document must be a mapping.")
    try:
        return IntermediateSchemaDocument.model_validate(data)
    except ValidationError as exc:
        raise SerializationError(f"Invalid intermediate document: {exc}") from exc


__all__: List[str] = [
    "DOCUMENT_HEADER",
    "MetadataBuilder",
    "build",
    "document_to_dict",
    "serialize",
    "deserialize",
]

# File: ddlgen/templates.py
"""
ddlgen - Code Template Engine
==============================
Turns ``EntityDefinition`` / ``ViewDefinition`` records into Python source
text:

    1. one module per entity: a SQLAlchemy 2.0 ORM class (``Mapped[]`` /
       ``mapped_column()``) plus a Pydantic V2 validation schema
    2. one module per view: a frozen, read-only Pydantic projection
    3. the shared declarative base, package ``__init__`` files and the
       ``manifest.json`` the consuming runtime enumerates

**Performance contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()`` pattern.
    - Template methods are stateless — safe for concurrent use.

**Determinism contract:**
    - Same input records → byte-identical output.  No timestamps, no
      absolute paths, no set iteration order leaks into the text.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ddlgen.errors import GenerationError
from ddlgen.models import (
    Cardinality,
    EntityDefinition,
    GenerationConfig,
    IntermediateSchemaDocument,
    LogicalKind,
    LogicalType,
    PropertyDef,
    RelationshipDef,
    ViewDefinition,
    ViewParameter,
)
from ddlgen.utils import (
    build_import_block,
    entity_to_module_name,
    make_docstring,
    merge_import_dicts,
    safe_identifier,
    sha256_hex,
    to_pascal_case,
    wrap_in_quotes,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VIEWS_PACKAGE: str = "views"
BASE_MODULE: str = "base.py"
MANIFEST_FILE: str = "manifest.json"

# LogicalKind → Python annotation
_PYTHON_TYPE_MAP: Dict[LogicalKind, str] = {
    LogicalKind.INT16: "int",
    LogicalKind.INT32: "int",
    LogicalKind.INT64: "int",
    LogicalKind.BYTE: "int",
    LogicalKind.DECIMAL: "Decimal",
    LogicalKind.DOUBLE: "float",
    LogicalKind.SINGLE: "float",
    LogicalKind.BOOL: "bool",
    LogicalKind.GUID: "UUID",
    LogicalKind.DATE: "date",
    LogicalKind.TIME: "time",
    LogicalKind.DATETIME: "datetime",
    LogicalKind.DATETIMEOFFSET: "datetime",
    LogicalKind.STRING: "str",
    LogicalKind.BYTES: "bytes",
}

# Python annotation → module it is imported from
_PYTHON_TYPE_IMPORTS: Dict[str, str] = {
    "Decimal": "decimal",
    "UUID": "uuid",
    "date": "datetime",
    "time": "datetime",
    "datetime": "datetime",
}

# LogicalKind → SQLAlchemy type name (parameters added by _sqlalchemy_type)
_SQLALCHEMY_TYPE_MAP: Dict[LogicalKind, str] = {
    LogicalKind.INT16: "SmallInteger",
    LogicalKind.INT32: "Integer",
    LogicalKind.INT64: "BigInteger",
    LogicalKind.BYTE: "SmallInteger",
    LogicalKind.DECIMAL: "Numeric",
    LogicalKind.DOUBLE: "Double",
    LogicalKind.SINGLE: "Float",
    LogicalKind.BOOL: "Boolean",
    LogicalKind.GUID: "Uuid",
    LogicalKind.DATE: "Date",
    LogicalKind.TIME: "Time",
    LogicalKind.DATETIME: "DateTime",
    LogicalKind.DATETIMEOFFSET: "DateTime",
    LogicalKind.STRING: "String",
    LogicalKind.BYTES: "LargeBinary",
}

_INTEGER_KINDS = frozenset(
    {LogicalKind.INT16, LogicalKind.INT32, LogicalKind.INT64, LogicalKind.BYTE}
)


# ---------------------------------------------------------------------------
# Type helpers
# ---------------------------------------------------------------------------


def python_type(logical: LogicalType) -> str:
    """``Decimal(18,2)`` → ``Decimal``, ``String(100)`` → ``str``."""
    return _PYTHON_TYPE_MAP[logical.kind]


def _sqlalchemy_type(logical: LogicalType) -> Tuple[str, str]:
    """
    Return ``(import_name, expression)`` for ``mapped_column``.

    Examples:
        - ``Decimal(18,2)`` → ``("Numeric", "Numeric(18, 2)")``
        - ``String(max)`` → ``("Text", "Text")``
        - ``DateTimeOffset`` → ``("DateTime", "DateTime(timezone=True)")``
    """
    name: str = _SQLALCHEMY_TYPE_MAP[logical.kind]
    if logical.kind == LogicalKind.DECIMAL:
        return name, f"{name}({logical.precision}, {logical.scale})"
    if logical.kind == LogicalKind.STRING:
        if logical.max_length is None:
            return "Text", "Text"
        return name, f"{name}({logical.max_length})"
    if logical.kind == LogicalKind.DATETIMEOFFSET:
        return name, f"{name}(timezone=True)"
    return name, name


def _python_imports(types: Sequence[str]) -> Dict[str, Set[str]]:
    imports: Dict[str, Set[str]] = {}
    for annotation in types:
        module: Optional[str] = _PYTHON_TYPE_IMPORTS.get(annotation)
        if module is not None:
            imports.setdefault(module, set()).add(annotation)
    return imports


def _field_constraints(prop: PropertyDef) -> List[str]:
    """Pydantic ``Field`` keyword arguments carrying the column constraints."""
    logical: LogicalType = prop.logical_type
    parts: List[str] = []
    if logical.kind == LogicalKind.STRING and logical.max_length is not None:
        parts.append(f"max_length={logical.max_length}")
    elif logical.kind == LogicalKind.DECIMAL:
        parts.append(f"max_digits={logical.precision}")
        parts.append(f"decimal_places={logical.scale}")
    elif logical.kind == LogicalKind.BYTE:
        parts.append("ge=0")
        parts.append("le=255")
    return parts


def _check_unique(owner: str, names: Sequence[Tuple[str, str]]) -> None:
    """Raise when two source names collapse to one Python attribute."""
    seen: Dict[str, str] = {}
    for attr, source in names:
        if attr in seen:
            raise GenerationError(
                owner,
                f"'{seen[attr]}' and '{source}' both map to attribute '{attr}'.",
            )
        seen[attr] = source


class _ImportNames(dict):
    """
    Local spelling of every imported name in one generated module.

    A generated class named like one of its module's imports (a table
    ``Fields`` becomes ``class Field``) would rebind that name; such
    imports are aliased with a leading underscore.  Names that are not
    aliased look up to themselves.
    """

    def __init__(self, imports: Dict[str, Set[str]], class_names: Sequence[str]) -> None:
        super().__init__()
        imported: Set[str] = {name for names in imports.values() for name in names}
        for name in class_names:
            if name in imported:
                self[name] = f"_{name}"

    def __missing__(self, key: str) -> str:
        return key

    def import_block(self, imports: Dict[str, Set[str]]) -> str:
        return build_import_block({
            module: {f"{name} as {self[name]}" if name in self else name for name in names}
            for module, names in imports.items()
        })


def schema_package(schema_name: str) -> str:
    """Sub-package for a SQL schema (empty for unqualified tables)."""
    return safe_identifier(schema_name) if schema_name else ""


def entity_module_path(entity: EntityDefinition) -> str:
    """Relative POSIX path of an entity's module, e.g. ``sales/product.py``."""
    package: str = schema_package(entity.schema_name)
    module: str = f"{entity_to_module_name(entity.name)}.py"
    return f"{package}/{module}" if package else module


def view_module_path(view: ViewDefinition) -> str:
    return f"{VIEWS_PACKAGE}/{entity_to_module_name(view.name)}.py"


def view_class_name(view: ViewDefinition) -> str:
    return view.name if view.name.isidentifier() else to_pascal_case(view.name)


# ---------------------------------------------------------------------------
# TemplateGenerator class
# ---------------------------------------------------------------------------


class TemplateGenerator:
    """
    Stateless code-generation engine.

    Each ``generate_*`` method returns one complete file as a string.
    Entity and view generation raise ``GenerationError`` for records that
    cannot be rendered; nothing else about the run is affected.

    Thread-safe: no mutable instance state.
    """

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._indent: str = " " * config.indent_size
        self._double_indent: str = self._indent * 2
        logger.debug(
            "TemplateGenerator initialised (package=%s, indent=%d).",
            config.package_name,
            config.indent_size,
        )

    # ===================================================================
    # Naming
    # ===================================================================

    def manual_extension_name(self, module_name: str) -> str:
        """``product`` → ``product_ext.py`` for the default pattern."""
        pattern: str = self._config.manual_extension_pattern.rsplit("/", 1)[-1]
        if pattern.count("*") == 1:
            return pattern.replace("*", module_name)
        return pattern

    def _class_ref(
        self,
        document: IntermediateSchemaDocument,
        entity_name: str,
        schema_name: str,
    ) -> str:
        """
        String used to reference a mapped class from ``relationship()``.

        A bare class name, or the fully qualified module path when the same
        class name exists in more than one schema.
        """
        clashes: int = sum(1 for e in document.entities if e.name == entity_name)
        if clashes <= 1:
            return entity_name
        package: str = schema_package(schema_name)
        parts: List[str] = [self._config.package_name]
        if package:
            parts.append(package)
        parts.append(entity_to_module_name(entity_name))
        parts.append(entity_name)
        return ".".join(parts)

    # ===================================================================
    # 1. Entity module
    # ===================================================================

    def generate_entity(
        self,
        entity: EntityDefinition,
        document: IntermediateSchemaDocument,
        generated: Optional[Set[str]] = None,
    ) -> str:
        """
        Generate the module for one entity: ``class <Entity>(Base)`` and
        ``class <Entity>Schema(BaseModel)``.

        *generated* holds the qualified names of the entities whose modules
        are part of the output (default: every entity with a primary key).
        Relationships to any other entity are left out, together with their
        ``ForeignKey`` target, so the mapper registry stays configurable.

        Raises ``GenerationError`` when the entity has no primary key, when
        its class name is reserved, or when two columns/relationships
        collapse to the same attribute.
        """
        pk: Optional[PropertyDef] = entity.primary_key
        if pk is None:
            raise GenerationError(
                entity.qualified_name,
                f"table '{entity.table}' has no primary key; an ORM mapping "
                f"cannot be generated.",
            )
        if entity.name == "Base":
            raise GenerationError(
                entity.qualified_name,
                "class name 'Base' is taken by the declarative base.",
            )

        _check_unique(
            entity.qualified_name,
            [(safe_identifier(p.name), p.name) for p in entity.properties]
            + [(safe_identifier(r.name), r.name) for r in entity.relationships],
        )

        if generated is None:
            generated = {e.qualified_name for e in document.entities if e.primary_key is not None}

        module_name: str = entity_to_module_name(entity.name)
        resolved: List[RelationshipDef] = []
        unresolved: List[RelationshipDef] = []
        not_generated: List[RelationshipDef] = []
        # foreign key column (lower-cased) → ForeignKey target "schema.Table.Column"
        fk_targets: Dict[str, str] = {}
        for rel in entity.relationships:
            target: Optional[EntityDefinition] = document.get_entity(
                rel.target_entity, rel.target_schema
            )
            if target is None:
                unresolved.append(rel)
                continue
            if target.qualified_name not in generated:
                not_generated.append(rel)
                continue
            resolved.append(rel)
            if rel.cardinality == Cardinality.MANY_TO_ONE:
                fk_targets[rel.foreign_key_column.lower()] = (
                    f"{self._table_label(target)}.{rel.principal_key}"
                )

        # --- Collect imports ---
        imports: Dict[str, Set[str]] = {
            "sqlalchemy.orm": {"Mapped", "mapped_column"},
            "pydantic": {"BaseModel", "ConfigDict"},
        }
        annotations: List[str] = [python_type(p.logical_type) for p in entity.properties]
        if any(p.nullable for p in entity.properties):
            imports.setdefault("typing", set()).add("Optional")
        for prop in entity.properties:
            imports.setdefault("sqlalchemy", set()).add(_sqlalchemy_type(prop.logical_type)[0])
            if prop.default_value is not None:
                imports["sqlalchemy"].add("text")
            if _field_constraints(prop):
                imports["pydantic"].add("Field")
        if fk_targets:
            imports["sqlalchemy"].add("ForeignKey")
        if resolved:
            imports["sqlalchemy.orm"].add("relationship")
            if any(r.cardinality == Cardinality.ONE_TO_MANY for r in resolved):
                imports.setdefault("typing", set()).add("List")
            if any(self._optional_reference(entity, r) for r in resolved):
                imports.setdefault("typing", set()).add("Optional")
        all_imports: Dict[str, Set[str]] = merge_import_dicts(
            imports, _python_imports(annotations)
        )
        names: _ImportNames = _ImportNames(all_imports, [entity.name, f"{entity.name}Schema"])
        base_import: str = "from ..base import Base" if entity.schema_name else "from .base import Base"

        lines: List[str] = []

        # --- File header ---
        lines.append('"""')
        lines.append(f"ORM model and validation schema for table {self._table_label(entity)}.")
        lines.append("")
        lines.append("Generated by ddlgen; do not edit by hand. Hand-written extensions")
        lines.append(
            f"belong in {self.manual_extension_name(module_name)}, which is never overwritten."
        )
        lines.append('"""')
        lines.append("")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append(names.import_block(all_imports))
        lines.append("")
        lines.append(base_import)
        lines.append("")
        lines.append("")

        # --- ORM class ---
        lines.append(f"class {entity.name}(Base):")
        if self._config.generate_docstrings:
            lines.append(make_docstring(f"Row of {self._table_label(entity)}.", 1, self._config.indent_size))
            lines.append("")
        lines.append(f"{self._indent}__tablename__ = {wrap_in_quotes(entity.table)}")
        if entity.schema_name:
            lines.append(
                f'{self._indent}__table_args__ = {{"schema": {wrap_in_quotes(entity.schema_name)}}}'
            )
        lines.append("")

        lines.append(f"{self._indent}# --- Columns ---")
        for prop in entity.properties:
            lines.append(
                f"{self._indent}{safe_identifier(prop.name)}: {self._mapped_annotation(prop, names)} = "
                f"{names['mapped_column']}({self._mapped_column_args(prop, fk_targets, names)})"
            )

        if entity.relationships:
            lines.append("")
            lines.append(f"{self._indent}# --- Relationships ---")
            for rel in resolved:
                lines.append(f"{self._indent}{self._relationship_line(entity, rel, document, names)}")
            for rel in unresolved:
                lines.append(
                    f"{self._indent}# {safe_identifier(rel.name)}: {rel.foreign_key_column} "
                    f"references {self._target_label(rel)}, which is not part of this model."
                )
            for rel in not_generated:
                lines.append(
                    f"{self._indent}# {safe_identifier(rel.name)}: omitted, "
                    f"{self._target_label(rel)} was not generated."
                )

        lines.append("")
        pk_attr: str = safe_identifier(pk.name)
        lines.append(f"{self._indent}def __repr__(self) -> str:")
        lines.append(f'{self._double_indent}return f"<{entity.name} {pk_attr}={{self.{pk_attr}!r}}>"')
        lines.append("")
        lines.append("")

        # --- Validation schema ---
        lines.extend(self._schema_class(entity, names))

        content: str = "\n".join(lines)
        logger.debug(
            "Generated entity module for '%s': %d lines.",
            entity.qualified_name,
            content.count("\n") + 1,
        )
        return content

    @staticmethod
    def _table_label(entity: EntityDefinition) -> str:
        return f"{entity.schema_name}.{entity.table}" if entity.schema_name else entity.table

    @staticmethod
    def _target_label(rel: RelationshipDef) -> str:
        return f"{rel.target_schema}.{rel.target_entity}" if rel.target_schema else rel.target_entity

    @staticmethod
    def _mapped_annotation(prop: PropertyDef, names: _ImportNames) -> str:
        base_type: str = names[python_type(prop.logical_type)]
        if prop.nullable:
            return f"{names['Mapped']}[{names['Optional']}[{base_type}]]"
        return f"{names['Mapped']}[{base_type}]"

    @staticmethod
    def _mapped_column_args(
        prop: PropertyDef, fk_targets: Dict[str, str], names: _ImportNames
    ) -> str:
        """
        Argument string for ``mapped_column(...)``, e.g.
        ``"Price", Numeric(18, 2), nullable=False``.
        """
        type_name, type_expr = _sqlalchemy_type(prop.logical_type)
        parts: List[str] = [
            wrap_in_quotes(prop.name),
            names[type_name] + type_expr[len(type_name):],
        ]

        fk_target: Optional[str] = fk_targets.get(prop.name.lower())
        if fk_target is not None:
            parts.append(f"{names['ForeignKey']}({wrap_in_quotes(fk_target)})")

        if prop.is_primary_key:
            parts.append("primary_key=True")
        if prop.is_identity:
            parts.append("autoincrement=True")
        elif prop.is_primary_key and prop.logical_type.kind in _INTEGER_KINDS:
            parts.append("autoincrement=False")

        # PKs are implicitly NOT NULL
        if not prop.is_primary_key:
            parts.append("nullable=True" if prop.nullable else "nullable=False")

        if prop.default_value is not None:
            parts.append(f"server_default={names['text']}({wrap_in_quotes(prop.default_value)})")

        return ", ".join(parts)

    @staticmethod
    def _optional_reference(entity: EntityDefinition, rel: RelationshipDef) -> bool:
        if rel.cardinality != Cardinality.MANY_TO_ONE:
            return False
        column: Optional[PropertyDef] = entity.get_property(rel.foreign_key_column)
        return column is None or column.nullable

    def _relationship_line(
        self,
        entity: EntityDefinition,
        rel: RelationshipDef,
        document: IntermediateSchemaDocument,
        names: _ImportNames,
    ) -> str:
        """Build a single ``relationship()`` declaration line."""
        target_ref: str = self._class_ref(document, rel.target_entity, rel.target_schema)
        parts: List[str] = [wrap_in_quotes(target_ref)]

        if rel.inverse:
            parts.append(f"back_populates={wrap_in_quotes(safe_identifier(rel.inverse))}")

        # Several paths to the same target need the join column spelled out
        same_target: int = sum(
            1
            for other in entity.relationships
            if other.target_entity == rel.target_entity
            and other.target_schema.lower() == rel.target_schema.lower()
        )
        if same_target > 1:
            if rel.cardinality == Cardinality.MANY_TO_ONE:
                holder: str = self._class_ref(document, entity.name, entity.schema_name)
            else:
                holder = target_ref
            parts.append(
                f'foreign_keys="[{holder}.{safe_identifier(rel.foreign_key_column)}]"'
            )

        self_reference: bool = (
            rel.target_entity == entity.name
            and rel.target_schema.lower() == entity.schema_name.lower()
        )
        if self_reference and rel.cardinality == Cardinality.MANY_TO_ONE:
            parts.append(f'remote_side="[{target_ref}.{safe_identifier(rel.principal_key)}]"')

        mapped: str = names["Mapped"]
        if rel.cardinality == Cardinality.ONE_TO_MANY:
            type_hint: str = f'{mapped}[{names["List"]}["{rel.target_entity}"]]'
        elif self._optional_reference(entity, rel):
            type_hint = f'{mapped}[{names["Optional"]}["{rel.target_entity}"]]'
        else:
            type_hint = f'{mapped}["{rel.target_entity}"]'

        return (
            f"{safe_identifier(rel.name)}: {type_hint} = "
            f"{names['relationship']}({', '.join(parts)})"
        )

    def _schema_class(self, entity: EntityDefinition, names: _ImportNames) -> List[str]:
        lines: List[str] = [f"class {entity.name}Schema({names['BaseModel']}):"]
        if self._config.generate_docstrings:
            lines.append(
                make_docstring(f"Validation schema for {entity.name}.", 1, self._config.indent_size)
            )
            lines.append("")
        lines.append(f"{self._indent}model_config = {names['ConfigDict']}(from_attributes=True)")
        lines.append("")
        field: str = names["Field"]
        for prop in entity.properties:
            annotation: str = names[python_type(prop.logical_type)]
            constraints: List[str] = _field_constraints(prop)
            if prop.nullable:
                annotation = f"{names['Optional']}[{annotation}]"
                if constraints:
                    value: str = f" = {field}(default=None, {', '.join(constraints)})"
                else:
                    value = " = None"
            elif constraints:
                value = f" = {field}(..., {', '.join(constraints)})"
            else:
                value = ""
            lines.append(f"{self._indent}{safe_identifier(prop.name)}: {annotation}{value}")
        lines.append("")
        return lines

    # ===================================================================
    # 2. View module
    # ===================================================================

    def generate_view(self, view: ViewDefinition) -> str:
        """
        Generate a read-only projection module for one view.

        Result columns become plain annotated fields of a frozen model; no
        identity or validation attributes.  Declared parameters, if any,
        get their own ``<View>Parameters`` model.
        """
        class_name: str = view_class_name(view)
        if not class_name.isidentifier():
            raise GenerationError(view.name, "view name does not form a valid class name.")
        if not view.result_columns:
            raise GenerationError(view.name, "view declares no result columns.")
        _check_unique(view.name, [(safe_identifier(c.name), c.name) for c in view.result_columns])
        _check_unique(view.name, [(safe_identifier(p.name), p.name) for p in view.parameters])

        annotations: List[str] = [python_type(c.logical_type) for c in view.result_columns]
        annotations += [python_type(p.logical_type) for p in view.parameters]
        imports: Dict[str, Set[str]] = {
            "typing": {"ClassVar"},
            "pydantic": {"BaseModel", "ConfigDict"},
        }
        if any(c.nullable for c in view.result_columns) or any(p.nullable for p in view.parameters):
            imports["typing"].add("Optional")
        needs_alias: bool = any(safe_identifier(c.name) != c.name for c in view.result_columns)
        if needs_alias or any(safe_identifier(p.name) != p.name for p in view.parameters):
            imports["pydantic"].add("Field")
        all_imports: Dict[str, Set[str]] = merge_import_dicts(imports, _python_imports(annotations))
        names: _ImportNames = _ImportNames(all_imports, [class_name, f"{class_name}Parameters"])

        lines: List[str] = []
        lines.append('"""')
        lines.append(f"Read-only projection for view {view.name}.")
        if view.description:
            lines.append("")
            lines.append(view.description.strip())
        lines.append("")
        lines.append(f"Backed by {view.sql_file}. Generated by ddlgen; do not edit by hand.")
        lines.append('"""')
        lines.append("")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append(names.import_block(all_imports))
        lines.append("")
        lines.append("")

        lines.append(f"class {class_name}({names['BaseModel']}):")
        if self._config.generate_docstrings:
            lines.append(
                make_docstring(
                    view.description.strip() or f"Row of view {view.name}.",
                    1,
                    self._config.indent_size,
                )
            )
            lines.append("")
        config_args: str = "frozen=True, from_attributes=True"
        if needs_alias:
            config_args += ", populate_by_name=True"
        lines.append(f"{self._indent}model_config = {names['ConfigDict']}({config_args})")
        lines.append("")
        class_var: str = names["ClassVar"]
        lines.append(f"{self._indent}__view_name__: {class_var}[str] = {wrap_in_quotes(view.name)}")
        lines.append(f"{self._indent}__sql_file__: {class_var}[str] = {wrap_in_quotes(view.sql_file)}")
        lines.append("")
        for column in view.result_columns:
            attr: str = safe_identifier(column.name)
            annotation: str = names[python_type(column.logical_type)]
            if column.nullable:
                annotation = f"{names['Optional']}[{annotation}]"
            if attr != column.name:
                default: str = "default=None, " if column.nullable else ""
                lines.append(
                    f"{self._indent}{attr}: {annotation} = "
                    f"{names['Field']}({default}alias={wrap_in_quotes(column.name)})"
                )
            elif column.nullable:
                lines.append(f"{self._indent}{attr}: {annotation} = None")
            else:
                lines.append(f"{self._indent}{attr}: {annotation}")
        lines.append("")

        if view.parameters:
            lines.extend(self._parameters_class(view, class_name, names))

        content: str = "\n".join(lines)
        logger.debug("Generated view module for '%s': %d lines.", view.name, content.count("\n") + 1)
        return content

    def _parameters_class(
        self, view: ViewDefinition, class_name: str, names: _ImportNames
    ) -> List[str]:
        lines: List[str] = ["", f"class {class_name}Parameters({names['BaseModel']}):"]
        if self._config.generate_docstrings:
            lines.append(
                make_docstring(f"Parameters of view {view.name}.", 1, self._config.indent_size)
            )
            lines.append("")
        lines.append(
            f"{self._indent}model_config = {names['ConfigDict']}(frozen=True, populate_by_name=True)"
        )
        lines.append("")
        for param in view.parameters:
            attr: str = safe_identifier(param.name)
            annotation: str = names[python_type(param.logical_type)]
            if param.nullable:
                annotation = f"{names['Optional']}[{annotation}]"
            default: Optional[str] = self._parameter_default(view, param, names)
            if attr != param.name:
                default_arg: str = f"default={default}, " if default is not None else ""
                lines.append(
                    f"{self._indent}{attr}: {annotation} = "
                    f"{names['Field']}({default_arg}alias={wrap_in_quotes(param.name)})"
                )
            elif default is not None:
                lines.append(f"{self._indent}{attr}: {annotation} = {default}")
            else:
                lines.append(f"{self._indent}{attr}: {annotation}")
        lines.append("")
        return lines

    @staticmethod
    def _parameter_default(
        view: ViewDefinition, param: ViewParameter, names: _ImportNames
    ) -> Optional[str]:
        """Python literal for a parameter default, ``None`` when there is none."""
        if param.default is None:
            return "None" if param.nullable else None
        raw: str = param.default.strip()
        if raw.upper() == "NULL":
            if not param.nullable:
                raise GenerationError(
                    view.name, f"parameter '{param.name}' is not nullable but defaults to NULL."
                )
            return "None"
        kind: LogicalKind = param.logical_type.kind
        try:
            if kind in _INTEGER_KINDS:
                return str(int(raw))
            if kind in (LogicalKind.DOUBLE, LogicalKind.SINGLE):
                return repr(float(raw))
            if kind == LogicalKind.DECIMAL:
                float(raw)
                return f"{names['Decimal']}({wrap_in_quotes(raw)})"
        except ValueError as exc:
            raise GenerationError(
                view.name, f"default {raw!r} of parameter '{param.name}' is not a number."
            ) from exc
        if kind == LogicalKind.BOOL:
            if raw.lower() in ("1", "true"):
                return "True"
            if raw.lower() in ("0", "false"):
                return "False"
            raise GenerationError(
                view.name, f"default {raw!r} of parameter '{param.name}' is not a boolean."
            )
        if kind == LogicalKind.STRING:
            return wrap_in_quotes(raw)
        raise GenerationError(
            view.name,
            f"parameter '{param.name}' of type {param.logical_type} cannot have a default.",
        )

    # ===================================================================
    # 3. Package scaffolding
    # ===================================================================

    def generate_base(self) -> str:
        """The declarative base every generated entity inherits from."""
        app = self._config.app_metadata()
        lines: List[str] = [
            '"""',
            f"Declarative base for {app.title}.",
            "Generated by ddlgen; do not edit by hand.",
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "from sqlalchemy.orm import DeclarativeBase",
            "",
            "",
            "class Base(DeclarativeBase):",
        ]
        if self._config.generate_docstrings:
            lines.append(make_docstring("Shared registry and metadata.", 1, self._config.indent_size))
        else:
            lines.append(f"{self._indent}pass")
        lines.append("")
        return "\n".join(lines)

    def generate_package_init(
        self,
        package_name: str,
        imports: Optional[Sequence[str]] = None,
        exports: Optional[Sequence[str]] = None,
    ) -> str:
        """Generate an ``__init__.py`` with optional re-exports."""
        lines: List[str] = []
        lines.append('"""')
        lines.append(f"{package_name} package.")
        lines.append("Generated by ddlgen; do not edit by hand.")
        lines.append('"""')
        lines.append("")
        if imports:
            lines.extend(imports)
            lines.append("")
        if exports:
            lines.append("__all__ = [")
            lines.extend(f"{self._indent}{wrap_in_quotes(name)}," for name in exports)
            lines.append("]")
            lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # 4. Manifest
    # ===================================================================

    def generate_manifest(
        self, document: IntermediateSchemaDocument, files: Dict[str, str]
    ) -> str:
        """
        ``manifest.json``: what was generated and where, for runtimes that
        enumerate entities instead of scanning a namespace.

        Only entities/views whose module is present in *files* are listed.
        Keys are sorted and file hashes are content digests, so the manifest
        is as deterministic as the files it describes.
        """
        package: str = self._config.package_name
        entities: List[Dict[str, Any]] = []
        for entity in document.entities:
            path: str = entity_module_path(entity)
            if path not in files:
                continue
            module: str = f"{package}.{path[:-3].replace('/', '.')}"
            entities.append({
                "name": entity.name,
                "schema": entity.schema_name,
                "table": entity.table,
                "module": module,
                "class": entity.name,
                "schemaClass": f"{entity.name}Schema",
                "manualExtension": self.manual_extension_name(
                    entity_to_module_name(entity.name)
                ),
            })
        views: List[Dict[str, Any]] = []
        for view in document.views:
            path = view_module_path(view)
            if path not in files:
                continue
            views.append({
                "name": view.name,
                "module": f"{package}.{path[:-3].replace('/', '.')}",
                "class": view_class_name(view),
                "sqlFile": view.sql_file,
                "parameters": [p.name for p in view.parameters],
            })
        manifest: Dict[str, Any] = {
            "app": document.app.model_dump(mode="json"),
            "documentVersion": document.version,
            "generator": document.generator,
            "package": package,
            "entities": entities,
            "views": views,
            "files": {path: sha256_hex(content) for path, content in files.items()},
        }
        return json.dumps(manifest, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BASE_MODULE",
    "MANIFEST_FILE",
    "VIEWS_PACKAGE",
    "TemplateGenerator",
    "entity_module_path",
    "python_type",
    "schema_package",
    "view_class_name",
    "view_module_path",
]

logger.debug("ddlgen.templates loaded.")

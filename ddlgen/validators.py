# File: ddlgen/validators.py
"""
ddlgen - Diagnostics & Cross-Table Validators
===============================================
Non-fatal findings (skipped constructs, duplicate tables, unresolved
references) are *data*, not exceptions: every stage appends ``Diagnostic``
records to a ``ValidationResult`` and the orchestrator logs each one once.

Pydantic handles per-record structural correctness.  This module adds the
semantic checks that need the whole table set: entity name collisions,
missing primary keys, foreign key type compatibility and configuration
sanity.

Usage by downstream modules:
    from ddlgen.validators import validate_full
    result = validate_full(tables, config)
    if result.has_errors:
        ...
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ddlgen.models import GenerationConfig, TableMetadata
from ddlgen.utils import matches_pattern, table_to_entity_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen.validators")

# ---------------------------------------------------------------------------
# Diagnostic codes
# ---------------------------------------------------------------------------

UNSUPPORTED_CONSTRUCT: str = "UNSUPPORTED_CONSTRUCT"
DUPLICATE_TABLE: str = "DUPLICATE_TABLE"
UNRESOLVED_FOREIGN_KEY: str = "UNRESOLVED_FOREIGN_KEY"
VIEW_COLUMN_NOT_IN_SELECT: str = "VIEW_COLUMN_NOT_IN_SELECT"
NO_PRIMARY_KEY: str = "NO_PRIMARY_KEY"
ENTITY_NAME_COLLISION: str = "ENTITY_NAME_COLLISION"
FK_TYPE_MISMATCH: str = "FK_TYPE_MISMATCH"
CONFIG_PATTERN_SUSPICIOUS: str = "CONFIG_PATTERN_SUSPICIOUS"
CONFIG_DOCUMENT_PROTECTED: str = "CONFIG_DOCUMENT_PROTECTED"

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class Diagnostic:
    """Lightweight finding descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def format_line(self) -> str:
        """Single-line rendering used for stderr / log output."""
        line: str = f"[{self.code}] {self.message}"
        if self.context:
            ctx: str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            line = f"{line} ({ctx})"
        return line

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``Diagnostic`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[Diagnostic] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(Diagnostic("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(Diagnostic("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(Diagnostic("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[Diagnostic]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [e for e in self._items if e.is_warning]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def by_code(self, code: str) -> List[Diagnostic]:
        return [e for e in self._items if e.code == code]

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Table-set validators
# ---------------------------------------------------------------------------


def validate_primary_keys(
    tables: Sequence[TableMetadata],
    already_reported: Sequence[str] = (),
) -> ValidationResult:
    """
    Warn for every table without a single-column primary key.

    Such tables still get an entity in the document, but their ORM class
    cannot be mapped and code generation for them fails.  Tables named in
    *already_reported* (their key was dropped with its own diagnostic) are
    skipped.
    """
    result: ValidationResult = ValidationResult()
    skip: Set[str] = {name.lower() for name in already_reported}
    for table in tables:
        if table.primary_key_column is None and table.qualified_name.lower() not in skip:
            result.add_warning(
                NO_PRIMARY_KEY,
                f"Table '{table.qualified_name}' has no single-column primary key.",
                {"table": table.qualified_name},
            )
    return result


def validate_entity_names(tables: Sequence[TableMetadata]) -> ValidationResult:
    """
    Two tables of one schema must not normalise to the same entity name
    (``Product`` and ``Products`` both become ``Product``).
    """
    result: ValidationResult = ValidationResult()
    seen: Dict[Tuple[str, str], str] = {}
    for table in tables:
        key: Tuple[str, str] = (
            table.schema_name.lower(),
            table_to_entity_name(table.name).lower(),
        )
        if key in seen:
            result.add_error(
                ENTITY_NAME_COLLISION,
                f"Tables '{seen[key]}' and '{table.qualified_name}' both map to "
                f"entity '{table_to_entity_name(table.name)}'.",
                {"table": table.qualified_name, "other": seen[key]},
            )
        else:
            seen[key] = table.qualified_name
    return result


def validate_foreign_key_types(tables: Sequence[TableMetadata]) -> ValidationResult:
    """
    Warn when an FK column and the column it references are declared with
    different SQL types.  Unresolvable references are the builder's concern.
    """
    result: ValidationResult = ValidationResult()
    by_name: Dict[Tuple[str, str], TableMetadata] = {
        (t.schema_name.lower(), t.name.lower()): t for t in tables
    }
    for table in tables:
        for fk in table.foreign_keys:
            local = table.get_column(fk.column_name)
            schema: str = (fk.referenced_schema or table.schema_name).lower()
            target = by_name.get((schema, fk.referenced_table.lower()))
            if local is None or target is None:
                continue
            remote = target.get_column(fk.referenced_column)
            if remote is None:
                continue
            if local.sql_type_name.lower() != remote.sql_type_name.lower():
                result.add_warning(
                    FK_TYPE_MISMATCH,
                    f"Foreign key column '{local.name}' ({local.sql_type_name}) "
                    f"references '{target.qualified_name}.{remote.name}' "
                    f"({remote.sql_type_name}).",
                    {"table": table.qualified_name, "column": local.name},
                )
    return result


def validate_generation_config(config: GenerationConfig) -> ValidationResult:
    """Configuration sanity checks that Pydantic field constraints cannot express."""
    result: ValidationResult = ValidationResult()
    pattern: str = config.manual_extension_pattern

    if not pattern.endswith(".py"):
        result.add_warning(
            CONFIG_PATTERN_SUSPICIOUS,
            f"Manual extension pattern '{pattern}' does not end in '.py'; "
            f"hand-written modules may not be protected.",
            {"pattern": pattern},
        )
    for generated in ("base.py", "__init__.py"):
        if matches_pattern(generated, pattern):
            result.add_error(
                CONFIG_PATTERN_SUSPICIOUS,
                f"Manual extension pattern '{pattern}' matches generated "
                f"module names such as '{generated}'.",
                {"pattern": pattern},
            )
            break
    if config.write_document and matches_pattern(config.document_filename, pattern):
        result.add_error(
            CONFIG_DOCUMENT_PROTECTED,
            f"Document file '{config.document_filename}' matches the manual "
            f"extension pattern '{pattern}'.",
            {"document": config.document_filename},
        )
    return result


def validate_tables(
    tables: Sequence[TableMetadata],
    unsupported_keys: Sequence[str] = (),
) -> ValidationResult:
    """Run every table-set validator."""
    result: ValidationResult = ValidationResult()
    result.merge(validate_entity_names(tables))
    result.merge(validate_primary_keys(tables, unsupported_keys))
    result.merge(validate_foreign_key_types(tables))
    return result


def validate_full(
    tables: Sequence[TableMetadata],
    config: GenerationConfig,
    unsupported_keys: Sequence[str] = (),
) -> ValidationResult:
    """
    **Master validation entry point.**

    Called by the orchestrator between the visit and build stages.
    *unsupported_keys* lists the tables whose primary key the visitor
    already reported as unsupported.
    """
    logger.info("Starting validation — %d tables", len(tables))

    result: ValidationResult = ValidationResult()
    result.merge(validate_tables(tables, unsupported_keys))
    result.merge(validate_generation_config(config))

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "UNSUPPORTED_CONSTRUCT",
    "DUPLICATE_TABLE",
    "UNRESOLVED_FOREIGN_KEY",
    "VIEW_COLUMN_NOT_IN_SELECT",
    "NO_PRIMARY_KEY",
    "ENTITY_NAME_COLLISION",
    "FK_TYPE_MISMATCH",
    "CONFIG_PATTERN_SUSPICIOUS",
    "CONFIG_DOCUMENT_PROTECTED",
    "Diagnostic",
    "ValidationResult",
    "validate_primary_keys",
    "validate_entity_names",
    "validate_foreign_key_types",
    "validate_generation_config",
    "validate_tables",
    "validate_full",
]

logger.debug("ddlgen.validators loaded — %d public symbols.", len(__all__))

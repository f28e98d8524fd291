# File: ddlgen/errors.py
"""
ddlgen - Exception Taxonomy
============================

Fatal conditions raise one of the exceptions below.  Non-fatal conditions
(skipped constructs, duplicate tables, unresolved references) are *not*
exceptions: they are collected as ``Diagnostic`` records in
``ddlgen.validators.ValidationResult`` and logged as warnings.

Propagation policy:
    - ``ParseError`` / ``UnknownTypeError`` / ``SerializationError`` abort the
      whole run before any file is written.
    - ``GenerationError`` is scoped to one entity or view; the orchestrator
      collects it and keeps going.
"""

from __future__ import annotations

from typing import List, Optional


class DdlGenError(Exception):
    """Base class for every error raised by ddlgen."""


class ParseError(DdlGenError):
    """Malformed DDL.  Always carries the 1-based source position."""

    def __init__(self, message: str, line: int, column: int) -> None:
        self.message: str = message
        self.line: int = line
        self.column: int = column
        super().__init__(f"Line {line}, column {column}: {message}")


class UnknownTypeError(DdlGenError):
    """A column uses a SQL type the type mapper does not know."""

    def __init__(
        self,
        sql_type: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
    ) -> None:
        self.sql_type: str = sql_type
        self.table: Optional[str] = table
        self.column: Optional[str] = column
        where: str = ""
        if table or column:
            where = f" (table '{table or '?'}', column '{column or '?'}')"
        super().__init__(f"Unknown SQL type '{sql_type}'{where}.")


class ForeignKeyResolutionError(DdlGenError):
    """A foreign key cannot be resolved against the parsed tables."""


class SerializationError(DdlGenError):
    """The intermediate document could not be written deterministically."""


class ViewRegistryError(DdlGenError):
    """The view registry or one of its SQL files is missing or invalid."""


class GenerationError(DdlGenError):
    """Code generation failed for a single entity or view."""

    def __init__(self, name: str, message: str) -> None:
        self.name: str = name
        self.message: str = message
        super().__init__(f"{name}: {message}")


class ManualFileProtectedError(GenerationError):
    """A write targeted a file owned by a human (manual extension pattern)."""


class GenerationFailures(DdlGenError):
    """Raised by callers that want the collected per-entity failures as one error."""

    def __init__(self, failures: List[GenerationError]) -> None:
        self.failures: List[GenerationError] = list(failures)
        lines: List[str] = [f"{len(self.failures)} generation failure(s):"]
        lines.extend(f"  - {f}" for f in self.failures)
        super().__init__("\n".join(lines))


__all__: List[str] = [
    "DdlGenError",
    "ParseError",
    "UnknownTypeError",
    "ForeignKeyResolutionError",
    "SerializationError",
    "ViewRegistryError",
    "GenerationError",
    "ManualFileProtectedError",
    "GenerationFailures",
]

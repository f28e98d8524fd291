# File: ddlgen/visitor.py
"""
ddlgen - Table Visitor
=======================
Walks the statement nodes produced by ``ddlgen.parser`` and extracts one
``TableMetadata`` per ``CREATE TABLE``.

Dispatch is an exhaustive ``isinstance`` chain over the statement union;
an unknown node type is a programming error, not a skipped construct.

Inline column constraints and table-level constraints are merged here.
Unsupported constructs (CHECK, UNIQUE, computed columns, composite keys)
are reported as ``UNSUPPORTED_CONSTRUCT`` warnings with table/column
context and are left out of the model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ddlgen.errors import ParseError
from ddlgen.models import ColumnMetadata, ForeignKeyMetadata, TableMetadata
from ddlgen.parser import (
    CheckConstraint,
    ColumnDefinition,
    CreateSchemaStatement,
    CreateTableStatement,
    DefaultConstraint,
    IdentityConstraint,
    IgnoredStatement,
    NullabilityConstraint,
    PrimaryKeyConstraint,
    ReferencesConstraint,
    Statement,
    TableCheck,
    TableForeignKey,
    TableIndex,
    TablePrimaryKey,
    TableUnique,
    UniqueConstraint,
    parse_statements,
)
from ddlgen.type_mapper import DECIMAL_TYPES, LENGTH_TYPES
from ddlgen.validators import DUPLICATE_TABLE, UNSUPPORTED_CONSTRUCT, ValidationResult

logger: logging.Logger = logging.getLogger("ddlgen.visitor")


@dataclass
class ParseResult:
    """Output of the Parse + Visit stages."""

    tables: List[TableMetadata] = field(default_factory=list)
    schemas: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    diagnostics: ValidationResult = field(default_factory=ValidationResult)
    # qualified names of tables whose primary key was reported as unsupported
    unsupported_keys: List[str] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return [d.format_line() for d in self.diagnostics.warnings]


class TableVisitor:
    """Accumulates tables across the statements of one document."""

    def __init__(self) -> None:
        self.result: ParseResult = ParseResult()
        # (schema, name) lower-cased → position in result.tables
        self._index: Dict[Tuple[str, str], int] = {}

    def visit_all(self, statements: List[Statement]) -> ParseResult:
        for statement in statements:
            self.visit(statement)
        logger.info(
            "Visited %d statements — %d tables, %d schemas, %d ignored",
            len(statements),
            len(self.result.tables),
            len(self.result.schemas),
            len(self.result.ignored),
        )
        return self.result

    def visit(self, statement: Statement) -> None:
        if isinstance(statement, CreateTableStatement):
            self._visit_create_table(statement)
        elif isinstance(statement, CreateSchemaStatement):
            if statement.name not in self.result.schemas:
                self.result.schemas.append(statement.name)
        elif isinstance(statement, IgnoredStatement):
            self.result.ignored.append(statement.kind)
            logger.debug("Ignored %s at line %d", statement.kind, statement.line)
        else:
            raise TypeError(f"Unhandled statement node: {type(statement).__name__}")

    # ------------------------------------------------------------------
    # CREATE TABLE
    # ------------------------------------------------------------------

    def _unsupported(self, message: str, table: str, column: Optional[str] = None) -> None:
        context: Dict[str, str] = {"table": table}
        if column is not None:
            context["column"] = column
        self.result.diagnostics.add_warning(UNSUPPORTED_CONSTRUCT, message, context)

    def _visit_create_table(self, node: CreateTableStatement) -> None:
        qualified: str = str(node.table)
        columns: List[ColumnMetadata] = []
        seen_columns: Dict[str, ColumnDefinition] = {}
        primary_keys: List[Tuple[str, int, int]] = []
        foreign_keys: List[ForeignKeyMetadata] = []
        key_reported: bool = False

        for col_def in node.columns:
            key: str = col_def.name.lower()
            if key in seen_columns:
                raise ParseError(
                    f"Column '{col_def.name}' is defined more than once in table '{qualified}'",
                    col_def.line,
                    col_def.column,
                )
            seen_columns[key] = col_def

            if col_def.is_computed:
                self._unsupported(
                    f"Computed column '{col_def.name}' is not supported and was skipped.",
                    qualified,
                    col_def.name,
                )
                continue

            column, pk_position, fk = self._extract_column(col_def, qualified)
            columns.append(column)
            if pk_position is not None:
                primary_keys.append((col_def.name, pk_position[0], pk_position[1]))
            if fk is not None:
                foreign_keys.append(fk)

        for constraint in node.constraints:
            if isinstance(constraint, TablePrimaryKey):
                if len(constraint.columns) > 1:
                    self._unsupported(
                        f"Composite primary key ({', '.join(constraint.columns)}) is not "
                        f"supported; table has no primary key in the model.",
                        qualified,
                    )
                    key_reported = True
                    primary_keys.append(("", constraint.line, constraint.column))
                else:
                    primary_keys.append(
                        (constraint.columns[0], constraint.line, constraint.column)
                    )
            elif isinstance(constraint, TableForeignKey):
                if len(constraint.columns) > 1:
                    self._unsupported(
                        f"Composite foreign key ({', '.join(constraint.columns)}) → "
                        f"{constraint.referenced_table} is not supported and was skipped.",
                        qualified,
                    )
                    continue
                foreign_keys.append(
                    ForeignKeyMetadata(
                        column_name=constraint.columns[0],
                        referenced_schema=constraint.referenced_table.schema,
                        referenced_table=constraint.referenced_table.name,
                        referenced_column=(
                            constraint.referenced_columns[0]
                            if constraint.referenced_columns
                            else "Id"
                        ),
                        constraint_name=constraint.name,
                    )
                )
            elif isinstance(constraint, TableUnique):
                self._unsupported(
                    f"UNIQUE constraint on ({', '.join(constraint.columns)}) is not "
                    f"supported and was skipped.",
                    qualified,
                )
            elif isinstance(constraint, TableCheck):
                self._unsupported(
                    f"CHECK constraint {constraint.expression} is not supported and was skipped.",
                    qualified,
                )
            elif isinstance(constraint, TableIndex):
                logger.debug("Ignoring inline index %s on %s", constraint.name, qualified)
            else:
                raise TypeError(f"Unhandled table constraint: {type(constraint).__name__}")

        primary_key: Optional[str] = None
        if len(primary_keys) > 1:
            _, line, col = primary_keys[1]
            raise ParseError(
                f"Table '{qualified}' declares more than one PRIMARY KEY", line, col
            )
        if primary_keys and primary_keys[0][0]:
            pk_name, line, col = primary_keys[0]
            pk_def: Optional[ColumnDefinition] = seen_columns.get(pk_name.lower())
            if pk_def is None:
                raise ParseError(
                    f"Primary key column '{pk_name}' is not defined in table '{qualified}'",
                    line,
                    col,
                )
            if pk_def.is_computed:
                self._unsupported(
                    f"Primary key on computed column '{pk_def.name}' is not supported.",
                    qualified,
                    pk_def.name,
                )
                key_reported = True
            else:
                primary_key = pk_def.name
                # keys are never null
                columns = [
                    c.model_copy(update={"is_nullable": False}) if c.name == primary_key else c
                    for c in columns
                ]

        table = TableMetadata(
            schema=node.table.schema,
            name=node.table.name,
            columns=tuple(columns),
            primary_key_column=primary_key,
            foreign_keys=tuple(foreign_keys),
            source_line=node.line,
        )
        self._store(table)
        if key_reported:
            self.result.unsupported_keys.append(table.qualified_name)
        elif table.qualified_name in self.result.unsupported_keys:
            self.result.unsupported_keys.remove(table.qualified_name)

    def _extract_column(
        self, col_def: ColumnDefinition, qualified: str
    ) -> Tuple[ColumnMetadata, Optional[Tuple[int, int]], Optional[ForeignKeyMetadata]]:
        if col_def.data_type is None:
            raise ParseError(
                f"Column '{col_def.name}' in table '{qualified}' has no data type",
                col_def.line,
                col_def.column,
            )
        type_name: str = col_def.data_type.name
        args: Tuple[str, ...] = col_def.data_type.args
        lower: str = type_name.lower()

        max_length: Optional[int] = None
        is_max: bool = False
        precision: Optional[int] = None
        scale: Optional[int] = None
        if args:
            if args[0] == "MAX":
                if lower not in LENGTH_TYPES:
                    raise ParseError(
                        f"MAX is not a valid length for type '{type_name}'",
                        col_def.line,
                        col_def.column,
                    )
                is_max = True
            elif lower in LENGTH_TYPES:
                max_length = int(args[0])
                if max_length < 1:
                    raise ParseError(
                        f"Length of column '{col_def.name}' must be at least 1",
                        col_def.line,
                        col_def.column,
                    )
            else:
                precision = int(args[0])
                scale = int(args[1]) if len(args) > 1 else None
                if lower in DECIMAL_TYPES and not (
                    1 <= precision <= 38 and (scale is None or scale <= precision)
                ):
                    raise ParseError(
                        f"Invalid precision/scale ({', '.join(args)}) for column '{col_def.name}'",
                        col_def.line,
                        col_def.column,
                    )

        nullable: bool = True
        identity: Optional[IdentityConstraint] = None
        default: Optional[str] = None
        pk_position: Optional[Tuple[int, int]] = None
        fk: Optional[ForeignKeyMetadata] = None

        for constraint in col_def.constraints:
            if isinstance(constraint, NullabilityConstraint):
                nullable = constraint.nullable
            elif isinstance(constraint, IdentityConstraint):
                identity = constraint
            elif isinstance(constraint, DefaultConstraint):
                default = constraint.expression
            elif isinstance(constraint, PrimaryKeyConstraint):
                pk_position = (constraint.line or col_def.line, constraint.column or col_def.column)
            elif isinstance(constraint, ReferencesConstraint):
                fk = ForeignKeyMetadata(
                    column_name=col_def.name,
                    referenced_schema=constraint.table.schema,
                    referenced_table=constraint.table.name,
                    referenced_column=constraint.column or "Id",
                    constraint_name=constraint.name,
                )
            elif isinstance(constraint, UniqueConstraint):
                self._unsupported(
                    f"UNIQUE constraint on column '{col_def.name}' is not supported and was skipped.",
                    qualified,
                    col_def.name,
                )
            elif isinstance(constraint, CheckConstraint):
                self._unsupported(
                    f"CHECK constraint {constraint.expression} on column '{col_def.name}' "
                    f"is not supported and was skipped.",
                    qualified,
                    col_def.name,
                )
            else:
                raise TypeError(f"Unhandled column constraint: {type(constraint).__name__}")

        if identity is not None or pk_position is not None:
            nullable = False

        column = ColumnMetadata(
            name=col_def.name,
            sql_type_name=type_name,
            is_nullable=nullable,
            is_identity=identity is not None,
            max_length=max_length,
            is_max_length=is_max,
            precision=precision,
            scale=scale,
            default_expression=default,
            identity_seed=identity.seed if identity else None,
            identity_increment=identity.increment if identity else None,
            source_line=col_def.line,
        )
        return column, pk_position, fk

    def _store(self, table: TableMetadata) -> None:
        key: Tuple[str, str] = (table.schema_name.lower(), table.name.lower())
        if key in self._index:
            previous: TableMetadata = self.result.tables[self._index[key]]
            self.result.diagnostics.add_warning(
                DUPLICATE_TABLE,
                f"Table '{table.qualified_name}' is defined more than once; the "
                f"definition at line {table.source_line} replaces the one at "
                f"line {previous.source_line}.",
                {"table": table.qualified_name},
            )
            self.result.tables[self._index[key]] = table
        else:
            self._index[key] = len(self.result.tables)
            self.result.tables.append(table)
        logger.debug("Collected %r", table)


def parse_ddl(sql_text: str) -> ParseResult:
    """
    Parse a SQL document into ``TableMetadata`` records.

    Raises ``ParseError`` on malformed input; non-fatal findings are in
    ``ParseResult.diagnostics``.  Empty input yields zero tables.
    """
    statements: List[Statement] = parse_statements(sql_text)
    return TableVisitor().visit_all(statements)


__all__: List[str] = ["ParseResult", "TableVisitor", "parse_ddl"]

# File: ddlgen/parser.py
"""
ddlgen - T-SQL DDL Parser
==========================
Recursive-descent parser that turns the token stream from ``ddlgen.lexer``
into a list of statement nodes.

The node set is a closed tagged union:

    Statement = CreateSchemaStatement | CreateTableStatement | IgnoredStatement

and, inside a table,

    ColumnConstraint = NullabilityConstraint | IdentityConstraint
                     | DefaultConstraint | PrimaryKeyConstraint
                     | ReferencesConstraint | UniqueConstraint | CheckConstraint

    TableConstraint  = TablePrimaryKey | TableForeignKey | TableUnique
                     | TableCheck | TableIndex

The parser keeps unsupported constructs (CHECK, UNIQUE, computed columns)
as nodes so that ``ddlgen.visitor`` can report them with full context.
Anything it cannot classify is a ``ParseError`` with line/column.

Statement boundaries (T-SQL rules): ``;``, a ``GO`` batch separator on its
own line, or the start of the next ``CREATE``.  Bodies of
``CREATE PROCEDURE | FUNCTION | TRIGGER | VIEW`` run to the next ``GO``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple, Union

from ddlgen.errors import ParseError
from ddlgen.lexer import Token, TokenKind, tokenize

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen.parser")


# ---------------------------------------------------------------------------
# Syntax tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class QualifiedName:
    schema: str
    name: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name


@dataclass(frozen=True, slots=True)
class TypeSpec:
    name: str
    args: Tuple[str, ...] = ()


# -- Column constraints ------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NullabilityConstraint:
    nullable: bool


@dataclass(frozen=True, slots=True)
class IdentityConstraint:
    seed: int = 1
    increment: int = 1


@dataclass(frozen=True, slots=True)
class DefaultConstraint:
    expression: str
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PrimaryKeyConstraint:
    name: Optional[str] = None
    line: int = 0
    column: int = 0


@dataclass(frozen=True, slots=True)
class ReferencesConstraint:
    table: QualifiedName
    column: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class UniqueConstraint:
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CheckConstraint:
    expression: str
    name: Optional[str] = None


ColumnConstraint = Union[
    NullabilityConstraint,
    IdentityConstraint,
    DefaultConstraint,
    PrimaryKeyConstraint,
    ReferencesConstraint,
    UniqueConstraint,
    CheckConstraint,
]


@dataclass(frozen=True, slots=True)
class ColumnDefinition:
    name: str
    data_type: Optional[TypeSpec]
    constraints: Tuple[ColumnConstraint, ...] = ()
    computed_expression: Optional[str] = None
    line: int = 0
    column: int = 0

    @property
    def is_computed(self) -> bool:
        return self.computed_expression is not None


# -- Table constraints -------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TablePrimaryKey:
    columns: Tuple[str, ...]
    name: Optional[str] = None
    line: int = 0
    column: int = 0


@dataclass(frozen=True, slots=True)
class TableForeignKey:
    columns: Tuple[str, ...]
    referenced_table: QualifiedName
    referenced_columns: Tuple[str, ...] = ()
    name: Optional[str] = None
    line: int = 0
    column: int = 0


@dataclass(frozen=True, slots=True)
class TableUnique:
    columns: Tuple[str, ...]
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TableCheck:
    expression: str
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TableIndex:
    name: str
    columns: Tuple[str, ...] = ()


TableConstraint = Union[TablePrimaryKey, TableForeignKey, TableUnique, TableCheck, TableIndex]


# -- Statements --------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CreateSchemaStatement:
    name: str
    line: int = 0
    column: int = 0


@dataclass(frozen=True, slots=True)
class CreateTableStatement:
    table: QualifiedName
    columns: Tuple[ColumnDefinition, ...] = ()
    constraints: Tuple[TableConstraint, ...] = ()
    line: int = 0
    column: int = 0


@dataclass(frozen=True, slots=True)
class IgnoredStatement:
    kind: str
    line: int = 0
    column: int = 0


Statement = Union[CreateSchemaStatement, CreateTableStatement, IgnoredStatement]


# ---------------------------------------------------------------------------
# Keyword tables
# ---------------------------------------------------------------------------

# Statement kinds recognised (and skipped) at the top level
_SKIPPABLE_STATEMENTS: FrozenSet[str] = frozenset({
    "ALTER", "BEGIN", "COMMIT", "DECLARE", "DELETE", "DENY", "DROP", "END",
    "EXEC", "EXECUTE", "GRANT", "IF", "INSERT", "MERGE", "PRINT", "RETURN",
    "REVOKE", "ROLLBACK", "SELECT", "SET", "TRUNCATE", "UPDATE", "USE", "WITH",
    "RAISERROR", "THROW", "WHILE", "DBCC", "CHECKPOINT", "SAVE",
})

# CREATE <kind> whose body runs to the next GO
_CREATE_BODY_KINDS: FrozenSet[str] = frozenset({
    "PROCEDURE", "PROC", "FUNCTION", "TRIGGER", "VIEW",
})

# CREATE <kind> skipped up to the next statement boundary
_CREATE_SKIPPED_KINDS: FrozenSet[str] = frozenset({
    "INDEX", "UNIQUE", "CLUSTERED", "NONCLUSTERED", "TYPE", "SEQUENCE",
    "SYNONYM", "LOGIN", "USER", "ROLE", "DATABASE", "STATISTICS", "FULLTEXT",
    "XML", "SPATIAL", "COLUMNSTORE", "ASSEMBLY", "DEFAULT", "RULE",
})

_TABLE_CONSTRAINT_STARTERS: FrozenSet[str] = frozenset({
    "CONSTRAINT", "PRIMARY", "FOREIGN", "UNIQUE", "CHECK", "INDEX",
})

_REFERENTIAL_ACTIONS: Tuple[Tuple[str, ...], ...] = (
    ("NO", "ACTION"),
    ("CASCADE",),
    ("SET", "NULL"),
    ("SET", "DEFAULT"),
)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


@dataclass
class Parser:
    """Recursive-descent parser over one tokenized SQL document."""

    source: str
    tokens: List[Token] = field(default_factory=list)
    index: int = 0

    def __post_init__(self) -> None:
        if not self.tokens:
            self.tokens = tokenize(self.source)

    # ------------------------------------------------------------------
    # Token cursor
    # ------------------------------------------------------------------

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _peek(self, offset: int = 1) -> Token:
        idx: int = min(self.index + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def _advance(self) -> Token:
        tok: Token = self.tokens[self.index]
        if tok.kind != TokenKind.EOF:
            self.index += 1
        return tok

    def _at_eof(self) -> bool:
        return self.current.kind == TokenKind.EOF

    def _at_keyword(self, *words: str) -> bool:
        return self.current.upper in words

    def _at_punct(self, value: str) -> bool:
        return self.current.kind == TokenKind.PUNCT and self.current.value == value

    def _accept_keyword(self, *words: str) -> bool:
        if self._at_keyword(*words):
            self._advance()
            return True
        return False

    def _accept_punct(self, value: str) -> bool:
        if self._at_punct(value):
            self._advance()
            return True
        return False

    def _error(self, message: str, tok: Optional[Token] = None) -> ParseError:
        tok = tok or self.current
        if tok.kind == TokenKind.EOF:
            message = f"{message} (found end of input)"
        else:
            message = f"{message} (found '{tok.value}')"
        return ParseError(message, tok.line, tok.column)

    def _expect_keyword(self, word: str) -> Token:
        if not self._at_keyword(word):
            raise self._error(f"Expected {word}")
        return self._advance()

    def _expect_punct(self, value: str) -> Token:
        if not self._at_punct(value):
            raise self._error(f"Expected '{value}'")
        return self._advance()

    def _expect_identifier(self, what: str = "identifier") -> Token:
        if not self.current.is_identifier:
            raise self._error(f"Expected {what}")
        return self._advance()

    def _expect_int(self, what: str = "integer") -> int:
        sign: int = 1
        if self._at_punct("-") or self._at_punct("+"):
            sign = -1 if self._advance().value == "-" else 1
        tok: Token = self.current
        if tok.kind != TokenKind.NUMBER or not tok.value.isdigit():
            raise self._error(f"Expected {what}")
        self._advance()
        return sign * int(tok.value)

    def _is_batch_separator(self, idx: Optional[int] = None) -> bool:
        """``GO`` counts only as the first token on its line."""
        idx = self.index if idx is None else idx
        tok: Token = self.tokens[idx]
        if tok.upper != "GO":
            return False
        return idx == 0 or self.tokens[idx - 1].line < tok.line

    def _at_statement_boundary(self) -> bool:
        return (
            self._at_eof()
            or self._at_punct(";")
            or self._is_batch_separator()
            or self._at_keyword("CREATE")
            or self._at_keyword(*_SKIPPABLE_STATEMENTS)
        )

    def _source_between(self, first: Token, last: Token) -> str:
        return self.source[first.start : last.end]

    # ------------------------------------------------------------------
    # Document level
    # ------------------------------------------------------------------

    def parse(self) -> List[Statement]:
        statements: List[Statement] = []
        while not self._at_eof():
            if self._accept_punct(";"):
                continue
            if self._is_batch_separator():
                go: Token = self._advance()
                # GO <count>
                if self.current.kind == TokenKind.NUMBER and self.current.line == go.line:
                    self._advance()
                continue
            if self._at_keyword("CREATE"):
                statements.append(self._parse_create())
            elif self._at_keyword(*_SKIPPABLE_STATEMENTS):
                statements.append(self._skip_statement(self.current))
            else:
                raise self._error("Unexpected token at start of statement")
        return statements

    def _skip_statement(self, start: Token) -> IgnoredStatement:
        kind_parts: List[str] = [self._advance().upper]
        if self.current.kind == TokenKind.WORD and self.current.line == start.line:
            kind_parts.append(self.current.upper)
        depth: int = 0
        while not self._at_eof():
            if depth == 0 and (
                self._at_punct(";") or self._is_batch_separator() or self._at_keyword("CREATE")
            ):
                break
            if self._at_punct("("):
                depth += 1
            elif self._at_punct(")"):
                depth = max(depth - 1, 0)
            self._advance()
        kind: str = " ".join(kind_parts)
        logger.debug("Skipping %s statement at line %d", kind, start.line)
        return IgnoredStatement(kind=kind, line=start.line, column=start.column)

    def _skip_to_batch_end(self, start: Token, kind: str) -> IgnoredStatement:
        while not self._at_eof() and not self._is_batch_separator():
            self._advance()
        logger.debug("Skipping %s body at line %d", kind, start.line)
        return IgnoredStatement(kind=kind, line=start.line, column=start.column)

    def _parse_create(self) -> Statement:
        start: Token = self._expect_keyword("CREATE")
        if self._at_keyword("OR") and self._peek().upper == "ALTER":
            self._advance()
            self._advance()

        kind_tok: Token = self.current
        kind: str = kind_tok.upper
        if kind == "TABLE":
            self._advance()
            return self._parse_create_table(start)
        if kind == "SCHEMA":
            self._advance()
            return self._parse_create_schema(start)
        if kind in _CREATE_BODY_KINDS:
            self._advance()
            return self._skip_to_batch_end(start, f"CREATE {kind}")
        if kind in _CREATE_SKIPPED_KINDS:
            self.index -= 1
            return self._skip_statement(start)
        raise self._error("Unsupported CREATE statement", kind_tok)

    def _parse_create_schema(self, start: Token) -> CreateSchemaStatement:
        name: Token = self._expect_identifier("schema name")
        if self._accept_keyword("AUTHORIZATION"):
            self._expect_identifier("owner name")
        self._end_statement("CREATE SCHEMA")
        return CreateSchemaStatement(name=name.value, line=start.line, column=start.column)

    def _end_statement(self, what: str) -> None:
        if self._accept_punct(";"):
            return
        if not self._at_statement_boundary():
            raise self._error(f"Unexpected token after {what}")

    # ------------------------------------------------------------------
    # Names & types
    # ------------------------------------------------------------------

    def _parse_qualified_name(self, what: str) -> QualifiedName:
        first: Token = self._expect_identifier(what)
        parts: List[str] = [first.value]
        while self._at_punct("."):
            self._advance()
            parts.append(self._expect_identifier(what).value)
        if len(parts) > 3:
            raise ParseError(f"Too many name parts in {what}", first.line, first.column)
        schema: str = parts[-2] if len(parts) >= 2 else ""
        return QualifiedName(schema=schema, name=parts[-1], line=first.line, column=first.column)

    def _parse_type(self) -> TypeSpec:
        name_tok: Token = self._expect_identifier("data type")
        name: str = name_tok.value
        # Schema-qualified user types (dbo.Flag) keep their last part
        while self._at_punct("."):
            self._advance()
            name = self._expect_identifier("data type").value
        args: List[str] = []
        if self._accept_punct("("):
            while True:
                if self._at_keyword("MAX"):
                    args.append(self._advance().value.upper())
                elif self.current.kind == TokenKind.NUMBER and self.current.value.isdigit():
                    args.append(self._advance().value)
                else:
                    raise self._error(f"Invalid argument for type '{name}'")
                if self._accept_punct(")"):
                    break
                self._expect_punct(",")
        return TypeSpec(name=name, args=tuple(args))

    def _parse_column_list(self, what: str) -> Tuple[str, ...]:
        self._expect_punct("(")
        names: List[str] = []
        while True:
            names.append(self._expect_identifier(what).value)
            self._accept_keyword("ASC", "DESC")
            if self._accept_punct(")"):
                break
            self._expect_punct(",")
        return tuple(names)

    def _read_balanced(self) -> str:
        """Consume a parenthesised group and return its source text."""
        first: Token = self._expect_punct("(")
        depth: int = 1
        last: Token = first
        while depth:
            if self._at_eof():
                raise ParseError("Unbalanced parentheses", first.line, first.column)
            last = self._advance()
            if last.kind == TokenKind.PUNCT and last.value == "(":
                depth += 1
            elif last.kind == TokenKind.PUNCT and last.value == ")":
                depth -= 1
        return self._source_between(first, last)

    def _read_default_expression(self) -> str:
        first: Token = self.current
        if self._at_punct("("):
            text: str = self._read_balanced()
            return _strip_outer_parens(text)
        if self._at_punct("-") or self._at_punct("+"):
            self._advance()
            if self.current.kind != TokenKind.NUMBER:
                raise self._error("Expected number after sign in DEFAULT")
            last: Token = self._advance()
            return self._source_between(first, last)
        if self.current.kind in (TokenKind.STRING, TokenKind.NUMBER):
            last = self._advance()
            return self._source_between(first, last)
        if self.current.kind == TokenKind.WORD:
            last = self._advance()
            if self._at_punct("("):
                self._read_balanced()
                last = self.tokens[self.index - 1]
            return self._source_between(first, last)
        raise self._error("Expected DEFAULT expression")

    def _skip_index_options(self) -> None:
        """``WITH (...)`` / ``ON filegroup`` after a key or index definition."""
        while True:
            if self._at_keyword("WITH") and self._peek().kind == TokenKind.PUNCT and self._peek().value == "(":
                self._advance()
                self._read_balanced()
            elif self._at_keyword("ON") and self._peek().upper not in ("DELETE", "UPDATE"):
                self._advance()
                self._expect_identifier("filegroup")
                if self._at_punct("("):
                    self._read_balanced()
            else:
                return

    def _parse_referential_actions(self) -> None:
        while self._at_keyword("ON") and self._peek().upper in ("DELETE", "UPDATE"):
            self._advance()
            self._advance()
            for action in _REFERENTIAL_ACTIONS:
                if self.current.upper == action[0] and (
                    len(action) == 1 or self._peek().upper == action[1]
                ):
                    for _ in action:
                        self._advance()
                    break
            else:
                raise self._error("Expected referential action")
        if self._at_keyword("NOT") and self._peek().upper == "FOR":
            self._advance()
            self._advance()
            self._expect_keyword("REPLICATION")

    def _parse_references(self) -> Tuple[QualifiedName, Tuple[str, ...]]:
        self._expect_keyword("REFERENCES")
        table: QualifiedName = self._parse_qualified_name("referenced table")
        columns: Tuple[str, ...] = ()
        if self._at_punct("("):
            columns = self._parse_column_list("referenced column")
        self._parse_referential_actions()
        return table, columns

    # ------------------------------------------------------------------
    # CREATE TABLE
    # ------------------------------------------------------------------

    def _parse_create_table(self, start: Token) -> CreateTableStatement:
        table: QualifiedName = self._parse_qualified_name("table name")
        self._expect_punct("(")

        columns: List[ColumnDefinition] = []
        constraints: List[TableConstraint] = []
        while True:
            if self._at_keyword(*_TABLE_CONSTRAINT_STARTERS):
                constraints.append(self._parse_table_constraint())
            else:
                columns.append(self._parse_column())
            if self._accept_punct(")"):
                break
            if not self._accept_punct(","):
                raise self._error(f"Expected ',' or ')' in table '{table}'")
            # SQL Server tolerates a trailing comma before ')'
            if self._accept_punct(")"):
                break

        self._parse_table_options()
        self._end_statement(f"CREATE TABLE {table}")
        return CreateTableStatement(
            table=table,
            columns=tuple(columns),
            constraints=tuple(constraints),
            line=start.line,
            column=start.column,
        )

    def _parse_table_options(self) -> None:
        while True:
            if self._accept_keyword("ON", "TEXTIMAGE_ON", "FILESTREAM_ON"):
                self._expect_identifier("filegroup")
                if self._at_punct("("):
                    self._read_balanced()
            elif self._at_keyword("WITH") and self._peek().value == "(":
                self._advance()
                self._read_balanced()
            else:
                return

    def _parse_column(self) -> ColumnDefinition:
        name_tok: Token = self._expect_identifier("column name")
        if self._accept_keyword("AS"):
            return self._parse_computed_column(name_tok)

        type_spec: TypeSpec = self._parse_type()
        constraints: List[ColumnConstraint] = []
        while not (self._at_punct(",") or self._at_punct(")")):
            constraint = self._parse_column_constraint(name_tok.value)
            if constraint is not None:
                constraints.append(constraint)
        return ColumnDefinition(
            name=name_tok.value,
            data_type=type_spec,
            constraints=tuple(constraints),
            line=name_tok.line,
            column=name_tok.column,
        )

    def _parse_computed_column(self, name_tok: Token) -> ColumnDefinition:
        first: Token = self.current
        last: Optional[Token] = None
        depth: int = 0
        while not self._at_eof():
            if depth == 0 and (self._at_punct(",") or self._at_punct(")")):
                break
            if depth == 0 and self._at_keyword("PERSISTED"):
                self._advance()
                if self._at_keyword("NOT") and self._peek().upper == "NULL":
                    self._advance()
                    self._advance()
                continue
            if self._at_punct("("):
                depth += 1
            elif self._at_punct(")"):
                depth -= 1
            last = self._advance()
        if last is None:
            raise self._error(f"Expected expression for computed column '{name_tok.value}'")
        return ColumnDefinition(
            name=name_tok.value,
            data_type=None,
            computed_expression=self._source_between(first, last),
            line=name_tok.line,
            column=name_tok.column,
        )

    def _parse_column_constraint(self, column_name: str) -> Optional[ColumnConstraint]:
        tok: Token = self.current
        constraint_name: Optional[str] = None
        if self._accept_keyword("CONSTRAINT"):
            constraint_name = self._expect_identifier("constraint name").value
            if not self._at_keyword("PRIMARY", "UNIQUE", "CHECK", "FOREIGN", "REFERENCES", "DEFAULT"):
                raise self._error(f"Expected constraint after CONSTRAINT {constraint_name}")
            tok = self.current

        word: str = tok.upper
        if word == "NULL":
            self._advance()
            return NullabilityConstraint(nullable=True)
        if word == "NOT":
            self._advance()
            if self._accept_keyword("NULL"):
                return NullabilityConstraint(nullable=False)
            if self._accept_keyword("FOR"):
                self._expect_keyword("REPLICATION")
                return None
            raise self._error("Expected NULL after NOT")
        if word == "IDENTITY":
            self._advance()
            seed, increment = 1, 1
            if self._accept_punct("("):
                seed = self._expect_int("identity seed")
                self._expect_punct(",")
                increment = self._expect_int("identity increment")
                self._expect_punct(")")
            return IdentityConstraint(seed=seed, increment=increment)
        if word == "DEFAULT":
            self._advance()
            return DefaultConstraint(expression=self._read_default_expression(), name=constraint_name)
        if word == "PRIMARY":
            self._advance()
            self._expect_keyword("KEY")
            self._accept_keyword("CLUSTERED", "NONCLUSTERED")
            self._skip_index_options()
            return PrimaryKeyConstraint(name=constraint_name, line=tok.line, column=tok.column)
        if word == "UNIQUE":
            self._advance()
            self._accept_keyword("CLUSTERED", "NONCLUSTERED")
            self._skip_index_options()
            return UniqueConstraint(name=constraint_name)
        if word == "CHECK":
            self._advance()
            if self._at_keyword("NOT"):
                self._advance()
                self._expect_keyword("FOR")
                self._expect_keyword("REPLICATION")
            return CheckConstraint(expression=self._read_balanced(), name=constraint_name)
        if word in ("FOREIGN", "REFERENCES"):
            if self._accept_keyword("FOREIGN"):
                self._expect_keyword("KEY")
            table, columns = self._parse_references()
            if len(columns) > 1:
                raise self._error(
                    f"Column-level foreign key on '{column_name}' lists {len(columns)} columns"
                )
            return ReferencesConstraint(
                table=table, column=columns[0] if columns else None, name=constraint_name
            )
        if word == "COLLATE":
            self._advance()
            self._expect_identifier("collation name")
            return None
        if word in ("ROWGUIDCOL", "SPARSE", "FILESTREAM", "HIDDEN"):
            self._advance()
            return None
        raise self._error(f"Unexpected token in definition of column '{column_name}'")

    def _parse_table_constraint(self) -> TableConstraint:
        tok: Token = self.current
        name: Optional[str] = None
        if self._accept_keyword("CONSTRAINT"):
            name = self._expect_identifier("constraint name").value

        if self._accept_keyword("PRIMARY"):
            self._expect_keyword("KEY")
            self._accept_keyword("CLUSTERED", "NONCLUSTERED")
            columns = self._parse_column_list("primary key column")
            self._skip_index_options()
            return TablePrimaryKey(columns=columns, name=name, line=tok.line, column=tok.column)
        if self._accept_keyword("FOREIGN"):
            self._expect_keyword("KEY")
            columns = self._parse_column_list("foreign key column")
            ref_table, ref_columns = self._parse_references()
            if ref_columns and len(ref_columns) != len(columns):
                raise ParseError(
                    "Foreign key column count does not match referenced column count",
                    tok.line,
                    tok.column,
                )
            return TableForeignKey(
                columns=columns,
                referenced_table=ref_table,
                referenced_columns=ref_columns,
                name=name,
                line=tok.line,
                column=tok.column,
            )
        if self._accept_keyword("UNIQUE"):
            self._accept_keyword("CLUSTERED", "NONCLUSTERED")
            columns = self._parse_column_list("unique column")
            self._skip_index_options()
            return TableUnique(columns=columns, name=name)
        if self._accept_keyword("CHECK"):
            if self._at_keyword("NOT"):
                self._advance()
                self._expect_keyword("FOR")
                self._expect_keyword("REPLICATION")
            return TableCheck(expression=self._read_balanced(), name=name)
        if name is None and self._accept_keyword("INDEX"):
            index_name: str = self._expect_identifier("index name").value
            self._accept_keyword("UNIQUE")
            self._accept_keyword("CLUSTERED", "NONCLUSTERED")
            columns = self._parse_column_list("index column")
            self._skip_index_options()
            return TableIndex(name=index_name, columns=columns)
        raise self._error("Expected table constraint")


def _strip_outer_parens(text: str) -> str:
    """``((0))`` → ``0``; ``(a) + (b)`` is left alone."""
    while text.startswith("(") and text.endswith(")"):
        depth: int = 0
        for i, ch in enumerate(text):
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            if depth == 0 and i < len(text) - 1:
                return text
        text = text[1:-1].strip()
    return text


def parse_statements(sql_text: str) -> List[Statement]:
    """Parse *sql_text* into statement nodes; raises ``ParseError``."""
    statements: List[Statement] = Parser(sql_text).parse()
    logger.debug("Parsed %d statements", len(statements))
    return statements


__all__: List[str] = [
    "QualifiedName",
    "TypeSpec",
    "NullabilityConstraint",
    "IdentityConstraint",
    "DefaultConstraint",
    "PrimaryKeyConstraint",
    "ReferencesConstraint",
    "UniqueConstraint",
    "CheckConstraint",
    "ColumnConstraint",
    "ColumnDefinition",
    "TablePrimaryKey",
    "TableForeignKey",
    "TableUnique",
    "TableCheck",
    "TableIndex",
    "TableConstraint",
    "CreateSchemaStatement",
    "CreateTableStatement",
    "IgnoredStatement",
    "Statement",
    "Parser",
    "parse_statements",
]

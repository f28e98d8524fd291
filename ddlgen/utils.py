# File: ddlgen/utils.py
"""
ddlgen - Utility Functions & Helpers
======================================
String transformation, naming convention, file I/O and code-formatting
utilities shared by every pipeline stage.

Naming strategy:
- ALL string-conversion functions are decorated with ``@lru_cache(maxsize=None)``
  so the same table / column name is normalised once per process.
- Entity name = singular of the table name; the table name is recoverable
  through ``to_plural``.  Both the builder and the code generator use these
  helpers, never their own variants.
- File writes go through a temp file + ``os.replace`` so an interrupted run
  never leaves a half-written module behind.
"""

from __future__ import annotations

import fnmatch
import functools
import hashlib
import keyword
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_LAST_WORD_RE: re.Pattern[str] = re.compile(r"([A-Z]?[a-z]+)$")

# Attribute names that clash with SQLAlchemy declarative or Pydantic internals
_RESERVED_ATTRIBUTES: FrozenSet[str] = frozenset({
    "metadata", "registry", "query", "schema", "json", "dict", "copy",
    "validate", "construct", "fields", "model_config", "model_fields",
})

# Irregular forms common in database schemas (lower-case, singular → plural)
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
    "leaf": "leaves",
    "half": "halves",
    "life": "lives",
    "wife": "wives",
    "knife": "knives",
    "hero": "heroes",
    "potato": "potatoes",
    "movie": "movies",
}
_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}

# Words whose trailing "s" is not a plural marker
_UNCOUNTABLE_ENDINGS: Tuple[str, ...] = ("ss", "us", "is", "news", "series", "species")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("CategoryId")
        'category_id'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert any string to PascalCase.

    Examples:
        >>> to_pascal_case("order_item")
        'OrderItem'
        >>> to_pascal_case("OrderItem")
        'OrderItem'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "".join(word.capitalize() for word in words)


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """Extract lower-case words from any casing style (hashable for the cache)."""
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


def _match_case(template: str, word: str) -> str:
    if template[:1].isupper():
        return word[:1].upper() + word[1:]
    return word


def _split_last_word(name: str) -> Tuple[str, str]:
    match = _LAST_WORD_RE.search(name)
    if not match:
        return "", name
    return name[: match.start()], match.group(1)


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation sufficient for code generation.

    Only the last word of a compound name is inflected
    (``OrderItem`` → ``OrderItems``).  Names that already look plural are
    returned unchanged.
    """
    if not name:
        return ""

    head, word = _split_last_word(name)
    lower: str = word.lower()

    if lower in _IRREGULAR_PLURALS:
        return head + _match_case(word, _IRREGULAR_PLURALS[lower])
    if lower in _IRREGULAR_SINGULARS:
        return name

    if lower.endswith(("sh", "ch", "x", "z", "ss", "us", "is")):
        return name + "es"
    if lower.endswith("s"):
        return name
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    return name + "s"


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    Naive English singularisation (reverse of ``to_plural``).

    Examples:
        >>> to_singular("Categories")
        'Category'
        >>> to_singular("OrderItems")
        'OrderItem'
        >>> to_singular("Status")
        'Status'
    """
    if not name:
        return ""

    head, word = _split_last_word(name)
    lower: str = word.lower()

    if lower in _IRREGULAR_SINGULARS:
        return head + _match_case(word, _IRREGULAR_SINGULARS[lower])
    if lower in _IRREGULAR_PLURALS or lower.endswith(_UNCOUNTABLE_ENDINGS):
        return name

    if lower.endswith("ies") and len(lower) > 3:
        return name[:-3] + "y"
    if lower.endswith(("sses", "xes", "zes", "ches", "shes")):
        return name[:-2]
    if lower.endswith("s"):
        return name[:-1]
    return name


@functools.lru_cache(maxsize=None)
def safe_identifier(name: str) -> str:
    """
    Ensure a string is a safe Python attribute / module identifier.

    - Converts to snake_case
    - Prefixes with underscore if it starts with a digit
    - Appends underscore on a keyword or a reserved ORM / Pydantic attribute
    """
    result: str = to_snake_case(name)
    if not result:
        return "_unnamed"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result) or result in _RESERVED_ATTRIBUTES:
        result = f"{result}_"
    return result


@functools.lru_cache(maxsize=None)
def table_to_entity_name(table_name: str) -> str:
    """``Products`` → ``Product``, ``order_items`` → ``OrderItem``."""
    return to_pascal_case(to_singular(to_pascal_case(table_name)))


@functools.lru_cache(maxsize=None)
def entity_to_module_name(entity_name: str) -> str:
    """``OrderItem`` → ``order_item``."""
    return safe_identifier(entity_name)


# ---------------------------------------------------------------------------
# Indentation & code formatting helpers
# ---------------------------------------------------------------------------


def make_docstring(text: str, indent_level: int = 1, size: int = 4) -> str:
    """
    Create a properly formatted Python docstring.

    Single-line docstrings stay on one line; multi-line use triple-quote blocks.
    """
    prefix: str = " " * (indent_level * size)
    stripped: str = text.strip().replace('"""', '\\"\\"\\"')

    if "\n" not in stripped and len(stripped) + len(prefix) + 6 <= 88:
        return f'{prefix}"""{stripped}"""'

    doc_lines: List[str] = stripped.split("\n")
    parts: List[str] = [f'{prefix}"""']
    parts.extend(f"{prefix}{line}" if line.strip() else "" for line in doc_lines)
    parts.append(f'{prefix}"""')
    return "\n".join(parts)


def wrap_in_quotes(value: str) -> str:
    """Wrap a string value in double quotes, escaping internals."""
    escaped: str = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path* as UTF-8 with ``\\n`` line endings.

    When *atomic* is True, writes to a temporary file in the same directory
    first, then ``os.replace``s it over the target.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")

    if atomic:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(encoded)
            os.replace(tmp_path, str(path))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    """Read a UTF-8 text file (a leading BOM is dropped)."""
    return path.read_text(encoding="utf-8-sig")


def matches_pattern(relative_path: str, pattern: str) -> bool:
    """
    File-name ownership test.

    Only the name is inspected, never the contents.  *pattern* is matched
    against the basename and, when it contains a ``/``, against the whole
    POSIX relative path.
    """
    posix: str = relative_path.replace(os.sep, "/")
    if "/" in pattern:
        return fnmatch.fnmatchcase(posix, pattern)
    return fnmatch.fnmatchcase(posix.rsplit("/", 1)[-1], pattern)


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline stages.

    Usage:
        with Timer("parse") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Import statement builder
# ---------------------------------------------------------------------------


def build_import_block(imports: Dict[str, Set[str]]) -> str:
    """
    Build a sorted, de-duplicated import block from a mapping of
    module → set of names.

    Standard-library modules come first, then third-party ones, separated
    by a blank line.

    Example:
        >>> build_import_block({"typing": {"List", "Optional"}, "datetime": {"datetime"}})
        'from datetime import datetime\\nfrom typing import List, Optional'
    """
    stdlib: List[str] = []
    third_party: List[str] = []
    for module in sorted(imports.keys()):
        names: List[str] = sorted(imports[module])
        line: str = (
            f"from {module} import {', '.join(names)}" if names else f"import {module}"
        )
        if module.split(".")[0] in _STDLIB_MODULES:
            stdlib.append(line)
        else:
            third_party.append(line)
    if stdlib and third_party:
        return "\n".join(stdlib) + "\n\n" + "\n".join(third_party)
    return "\n".join(stdlib or third_party)


_STDLIB_MODULES: FrozenSet[str] = frozenset({
    "__future__", "datetime", "decimal", "typing", "uuid",
})


def merge_import_dicts(
    *dicts: Dict[str, Set[str]],
) -> Dict[str, Set[str]]:
    """Merge multiple import dictionaries into one, unifying sets."""
    result: Dict[str, Set[str]] = {}
    for d in dicts:
        for module, names in d.items():
            if module in result:
                result[module] |= names
            else:
                result[module] = set(names)
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_pascal_case",
    "to_plural",
    "to_singular",
    "safe_identifier",
    "table_to_entity_name",
    "entity_to_module_name",
    "make_docstring",
    "wrap_in_quotes",
    "ensure_directory",
    "write_file",
    "read_file",
    "matches_pattern",
    "sha256_hex",
    "count_lines",
    "Timer",
    "build_import_block",
    "merge_import_dicts",
]

logger.debug("ddlgen.utils loaded — %d public symbols.", len(__all__))

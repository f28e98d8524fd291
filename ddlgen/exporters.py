# File: ddlgen/exporters.py
"""
ddlgen - Project Exporter (File-System Manager)
================================================

Responsible for:
    1. Writing generated files atomically (write-to-temp then rename).
    2. Never touching files owned by a human: any path matching the manual
       extension pattern (``*_ext.py`` by default) is refused.
    3. Writing independent files in parallel (``max_workers``; 1 = sequential).
    4. Idempotent operation: a file whose content is unchanged is not
       rewritten, so re-running on the same tree is always safe.

If a write fails mid-batch, previously written files remain intact; each
individual file is atomic.  Refused and failed paths are reported in the
``ExportResult``, never raised.

Complexity: O(F) where F = total number of output files.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Tuple

from ddlgen.errors import ManualFileProtectedError
from ddlgen.models import GenerationConfig
from ddlgen.utils import Timer, count_lines, matches_pattern, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen.exporters")


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    size_bytes: int
    line_count: int
    sha256: str
    written: bool  # False when unchanged on disk or in dry-run mode


@dataclass(frozen=True, slots=True)
class ExportResult:
    """
    Final result returned by ``ProjectExporter.export()``.

    ``protected`` lists refusals caused by the manual extension pattern;
    ``errors`` lists paths that could not be written.
    """

    files: Tuple[FileRecord, ...]
    protected: Tuple[ManualFileProtectedError, ...]
    errors: Tuple[str, ...]
    elapsed_seconds: float
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return not self.errors and not self.protected

    @property
    def written_count(self) -> int:
        return sum(1 for f in self.files if f.written)

    @property
    def unchanged_count(self) -> int:
        return sum(1 for f in self.files if not f.written)

    @property
    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)


@dataclass(slots=True)
class _ExportPlan:
    """Paths accepted for writing, after ownership and safety checks."""

    accepted: List[Tuple[str, str]] = field(default_factory=list)
    protected: List[ManualFileProtectedError] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# ProjectExporter class
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    Writes a ``relative_path → content`` mapping under one output root.

    Usage::

        exporter = ProjectExporter(config, output_dir=Path("./generated"))
        result = exporter.export(files)
        if not result.success:
            ...

    Thread-safety: one exporter per output directory; the worker pool only
    ever writes disjoint paths.
    """

    def __init__(
        self,
        config: GenerationConfig,
        output_dir: Path,
        *,
        dry_run: bool = False,
    ) -> None:
        self._config: GenerationConfig = config
        self._output_dir: Path = Path(output_dir).resolve()
        self._dry_run: bool = dry_run
        logger.debug(
            "ProjectExporter initialised: output_dir=%s, atomic=%s, workers=%d, dry_run=%s.",
            self._output_dir,
            config.atomic_writes,
            config.max_workers,
            dry_run,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def is_protected(self, relative_path: str) -> bool:
        """True when *relative_path* belongs to a human (manual extension)."""
        return matches_pattern(relative_path, self._config.manual_extension_pattern)

    def export(self, files: Dict[str, str]) -> ExportResult:
        """
        Write every file of *files* (relative POSIX path → content).

        Files are processed in sorted path order; with ``max_workers > 1``
        the writes themselves run in a thread pool.
        """
        with Timer("export") as timer:
            plan: _ExportPlan = self._plan(files)
            records: List[FileRecord] = []
            errors: List[str] = list(plan.errors)

            if self._config.max_workers > 1 and len(plan.accepted) > 1 and not self._dry_run:
                with ThreadPoolExecutor(
                    max_workers=self._config.max_workers,
                    thread_name_prefix="ddlgen-export",
                ) as pool:
                    outcomes = list(pool.map(self._write_one, plan.accepted))
            else:
                outcomes = [self._write_one(item) for item in plan.accepted]

            for record, error in outcomes:
                if record is not None:
                    records.append(record)
                if error is not None:
                    errors.append(error)

        result = ExportResult(
            files=tuple(records),
            protected=tuple(plan.protected),
            errors=tuple(errors),
            elapsed_seconds=timer.elapsed,
            dry_run=self._dry_run,
        )
        if result.success:
            logger.info(
                "Export %s: %d file(s), %d written, %d unchanged, %d bytes, %.3fs.",
                "planned (dry run)" if self._dry_run else "completed",
                len(result.files),
                result.written_count,
                result.unchanged_count,
                result.total_bytes,
                timer.elapsed,
            )
        else:
            logger.error(
                "Export finished with %d error(s) and %d protected path(s) in %.3fs.",
                len(result.errors),
                len(result.protected),
                timer.elapsed,
            )
        return result

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _plan(self, files: Dict[str, str]) -> _ExportPlan:
        plan = _ExportPlan()
        for rel_path in sorted(files):
            posix = PurePosixPath(rel_path.replace("\\", "/"))
            if posix.is_absolute() or ".." in posix.parts or not posix.parts:
                plan.errors.append(f"Refusing to write outside the output directory: {rel_path}")
                continue
            if self.is_protected(str(posix)):
                refusal = ManualFileProtectedError(
                    str(posix),
                    f"matches the manual extension pattern "
                    f"'{self._config.manual_extension_pattern}' and is never written.",
                )
                logger.error("%s", refusal)
                plan.protected.append(refusal)
                continue
            plan.accepted.append((str(posix), files[rel_path]))
        return plan

    def _write_one(self, item: Tuple[str, str]) -> Tuple[Optional[FileRecord], Optional[str]]:
        rel_path, content = item
        target: Path = self._output_dir.joinpath(*PurePosixPath(rel_path).parts)
        encoded: bytes = content.encode("utf-8")

        written: bool = False
        if not self._dry_run:
            try:
                if not (target.is_file() and target.read_bytes() == encoded):
                    write_file(target, content, atomic=self._config.atomic_writes)
                    written = True
            except OSError as exc:
                error_msg: str = f"Failed to write {rel_path}: {type(exc).__name__}: {exc}"
                logger.error(error_msg)
                return None, error_msg

        logger.debug(
            "%s file: %s (%d bytes).",
            "Wrote" if written else "Kept",
            rel_path,
            len(encoded),
        )
        return (
            FileRecord(
                relative_path=rel_path,
                size_bytes=len(encoded),
                line_count=count_lines(content),
                sha256=sha256_hex(content),
                written=written,
            ),
            None,
        )


def protected_paths(result: ExportResult) -> List[str]:
    """Paths the exporter refused to write."""
    return [p.name for p in result.protected]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ProjectExporter",
    "ExportResult",
    "FileRecord",
    "protected_paths",
]

logger.debug("ddlgen.exporters loaded.")

# File: ddlgen/generator.py
"""
ddlgen - Master Generation Pipeline (Orchestrator)
===================================================

Connects every stage together::

    Parse → Visit → Validate → Build → Serialize → Generate → Export
                     (views: Load registry ─┘)

The ``DdlGenerator`` class provides both a programmatic API and the
backend for the CLI.

Error handling strategy:
    - Parse, type, foreign-key, registry and serialization errors are
      fatal: the run stops before a single file is written.
    - Generation errors are isolated per entity/view: the failing module
      is left out, everything else is still written, and the error is
      listed in the report.
    - Warnings are collected as diagnostics and logged exactly once here.
      ``fail_on_warnings`` turns them into a fatal validation failure.
    - The final report gives a clear pass/fail verdict.

Complexity: O(T × (C + R)) where T = tables, C = columns, R = relationships.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ddlgen.builder import MetadataBuilder, serialize
from ddlgen.errors import (
    DdlGenError,
    GenerationError,
    GenerationFailures,
    ParseError,
)
from ddlgen.exporters import ExportResult, ProjectExporter
from ddlgen.models import (
    EntityDefinition,
    GenerationConfig,
    IntermediateSchemaDocument,
    TableMetadata,
    ViewDefinition,
)
from ddlgen.templates import (
    BASE_MODULE,
    MANIFEST_FILE,
    VIEWS_PACKAGE,
    TemplateGenerator,
    entity_module_path,
    schema_package,
    view_class_name,
    view_module_path,
)
from ddlgen.utils import Timer, count_lines, entity_to_module_name, read_file
from ddlgen.validators import ValidationResult, validate_full
from ddlgen.views import load_view_registry
from ddlgen.visitor import ParseResult, parse_ddl

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen.generator")


class GenerationMode(str, Enum):
    """Which half of the tool runs."""

    ENTITIES = "entities"
    VIEWS = "views"
    ALL = "all"

    @property
    def includes_entities(self) -> bool:
        return self in (GenerationMode.ENTITIES, GenerationMode.ALL)

    @property
    def includes_views(self) -> bool:
        return self in (GenerationMode.VIEWS, GenerationMode.ALL)


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``DdlGenerator``.

    ``fatal_error`` is set when a stage aborted the run; in that case no
    file was written.
    """

    success: bool = False
    app_name: str = ""
    mode: str = GenerationMode.ALL.value
    output_directory: str = ""
    dry_run: bool = False

    # Metrics
    tables_parsed: int = 0
    entities_built: int = 0
    entities_generated: int = 0
    views_generated: int = 0
    total_files: int = 0
    files_written: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    generation_errors: List[GenerationError] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    fatal_error: Optional[DdlGenError] = None

    # Artefacts
    document: Optional[IntermediateSchemaDocument] = None
    document_text: str = ""
    planned_files: List[str] = field(default_factory=list)
    export: Optional[ExportResult] = None

    def raise_for_failures(self) -> None:
        """Raise ``GenerationFailures`` when any entity or view failed."""
        if self.generation_errors:
            raise GenerationFailures(self.generation_errors)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  ddlgen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:             {status}")
        lines.append(f"  Application:        {self.app_name}")
        lines.append(f"  Mode:               {self.mode}{' (dry run)' if self.dry_run else ''}")
        if self.output_directory:
            lines.append(f"  Output:             {self.output_directory}")
        lines.append(f"  Tables parsed:      {self.tables_parsed}")
        lines.append(f"  Entities generated: {self.entities_generated}/{self.entities_built}")
        lines.append(f"  Views generated:    {self.views_generated}")
        lines.append(f"  Files:              {self.total_files} ({self.files_written} written)")
        lines.append(f"  Total lines:        {self.total_lines:,}")
        lines.append(f"  Total bytes:        {self.total_bytes:,}")
        lines.append(f"  Total time:         {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<24s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections: List[Tuple[str, str, Sequence[object]]] = [
            ("Input Errors", "✗", self.input_errors),
            ("Validation Errors", "✗", self.validation_errors),
            ("Warnings", "⚠", self.warnings),
            ("Generation Errors", "✗", self.generation_errors),
            ("Export Errors", "✗", self.export_errors),
        ]
        for title, icon, items in sections:
            if not items:
                continue
            lines.append(f"{'─'*60}")
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        if self.fatal_error is not None:
            lines.append(f"{'─'*60}")
            lines.append(f"  Aborted: {type(self.fatal_error).__name__}: {self.fatal_error}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


class _PipelineAbort(Exception):
    """Internal signal: a fatal stage failure has been recorded in the report."""


# ---------------------------------------------------------------------------
# DdlGenerator: master orchestrator
# ---------------------------------------------------------------------------


class DdlGenerator:
    """
    Master pipeline orchestrator.

    Usage::

        generator = DdlGenerator(GenerationConfig(app_name="shop"))
        report = generator.generate_from_files(
            sql_path=Path("schema.sql"),
            output_dir=Path("./generated_models"),
            views_path=Path("views.yaml"),
        )
        print(report.summary())

    The generator is reusable — create once, call generate() many times.
    Nothing is cached between runs.
    """

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        *,
        mode: GenerationMode = GenerationMode.ALL,
        dry_run: bool = False,
        validate_only: bool = False,
    ) -> None:
        self._config: GenerationConfig = config or GenerationConfig()
        self._mode: GenerationMode = GenerationMode(mode)
        self._dry_run: bool = dry_run
        self._validate_only: bool = validate_only
        logger.debug(
            "DdlGenerator initialised: mode=%s, dry_run=%s, validate_only=%s, strict_fks=%s.",
            self._mode.value,
            dry_run,
            validate_only,
            self._config.strict_foreign_keys,
        )

    @property
    def config(self) -> GenerationConfig:
        return self._config

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def generate_from_files(
        self,
        sql_path: Optional[Path],
        output_dir: Optional[Path],
        *,
        views_path: Optional[Path] = None,
    ) -> GenerationReport:
        """Full pipeline reading the DDL from *sql_path*."""
        sql_text: str = ""
        if sql_path is not None and self._mode.includes_entities:
            try:
                sql_text = read_file(Path(sql_path))
                logger.info("Loaded DDL file: %s (%d lines).", sql_path, count_lines(sql_text))
            except (OSError, UnicodeDecodeError) as exc:
                report = self._new_report(output_dir)
                report.input_errors.append(f"Cannot read DDL file {sql_path}: {exc}")
                logger.error("%s", report.input_errors[-1])
                return self._finalise_report(report, 0.0)
        return self.generate(sql_text, output_dir, views_path=views_path)

    def generate(
        self,
        sql_text: str,
        output_dir: Optional[Path],
        *,
        views_path: Optional[Path] = None,
    ) -> GenerationReport:
        """
        Full pipeline from DDL text already in memory.

        *output_dir* may be ``None`` only for validate-only runs.
        """
        report: GenerationReport = self._new_report(output_dir)
        start: float = time.perf_counter()
        try:
            self._run_pipeline(sql_text, output_dir, views_path, report)
        except _PipelineAbort:
            logger.error("Pipeline aborted: %s", report.fatal_error)
        return self._finalise_report(report, time.perf_counter() - start)

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _new_report(self, output_dir: Optional[Path]) -> GenerationReport:
        return GenerationReport(
            app_name=self._config.app_name,
            mode=self._mode.value,
            output_directory=str(Path(output_dir).resolve()) if output_dir else "",
            dry_run=self._dry_run,
        )

    def _run_pipeline(
        self,
        sql_text: str,
        output_dir: Optional[Path],
        views_path: Optional[Path],
        report: GenerationReport,
    ) -> None:
        diagnostics: ValidationResult = ValidationResult()

        tables: List[TableMetadata] = []
        unsupported_keys: List[str] = []
        if self._mode.includes_entities:
            parsed: ParseResult = self._step_parse(sql_text, report)
            diagnostics.merge(parsed.diagnostics)
            tables = parsed.tables
            unsupported_keys = parsed.unsupported_keys

        self._step_validate(tables, unsupported_keys, diagnostics, report)

        views: List[ViewDefinition] = []
        if self._mode.includes_views and views_path is not None:
            views = self._step_load_views(Path(views_path), diagnostics, report)
        elif self._mode == GenerationMode.VIEWS:
            logger.warning("Mode 'views' selected but no view registry was given.")

        document: IntermediateSchemaDocument = self._step_build(tables, views, diagnostics, report)
        self._step_serialize(document, report)
        self._report_warnings(diagnostics, report)

        if self._validate_only:
            logger.info("Validate-only run: stopping before code generation.")
            return

        files: Dict[str, str] = self._step_generate(document, report)
        if output_dir is None:
            raise ValueError("output_dir is required unless validate_only is set")
        self._step_export(files, Path(output_dir), report)

    def _abort(self, report: GenerationReport, step: str, exc: DdlGenError, timer: Timer) -> None:
        report.fatal_error = exc
        report.step_metrics.append(GenerationStepMetric(
            step_name=step,
            success=False,
            elapsed_seconds=timer.elapsed,
            detail=str(exc),
        ))
        raise _PipelineAbort() from exc

    # -----------------------------------------------------------------
    # Pipeline step: Parse + Visit
    # -----------------------------------------------------------------

    def _step_parse(self, sql_text: str, report: GenerationReport) -> ParseResult:
        with Timer("parse") as t:
            try:
                parsed: ParseResult = parse_ddl(sql_text)
            except ParseError as exc:
                error: Optional[ParseError] = exc
            else:
                error = None
        if error is not None:
            self._abort(report, "Parse DDL", error, t)

        report.tables_parsed = len(parsed.tables)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Parse DDL",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{len(parsed.tables)} tables, {len(parsed.ignored)} ignored statements"
            ),
        ))
        return parsed

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(
        self,
        tables: List[TableMetadata],
        unsupported_keys: List[str],
        diagnostics: ValidationResult,
        report: GenerationReport,
    ) -> None:
        with Timer("validation") as t:
            result: ValidationResult = validate_full(tables, self._config, unsupported_keys)
        diagnostics.merge(result)

        report.validation_errors.extend(d.format_line() for d in result.errors)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{result.error_count} error(s)" if result.has_errors
                else f"{result.warning_count} warning(s)"
            ),
        ))
        if result.has_errors:
            for item in result.errors:
                logger.error("%s", item.format_line())
            report.fatal_error = DdlGenError(result.summary())
            raise _PipelineAbort()

    # -----------------------------------------------------------------
    # Pipeline step: View registry
    # -----------------------------------------------------------------

    def _step_load_views(
        self,
        views_path: Path,
        diagnostics: ValidationResult,
        report: GenerationReport,
    ) -> List[ViewDefinition]:
        with Timer("views") as t:
            try:
                views: List[ViewDefinition] = load_view_registry(views_path, diagnostics)
            except DdlGenError as exc:
                error: Optional[DdlGenError] = exc
            else:
                error = None
        if error is not None:
            self._abort(report, "Load Views", error, t)

        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Views",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(views)} views from {views_path.name}",
        ))
        return views

    # -----------------------------------------------------------------
    # Pipeline step: Build + Serialize
    # -----------------------------------------------------------------

    def _step_build(
        self,
        tables: List[TableMetadata],
        views: List[ViewDefinition],
        diagnostics: ValidationResult,
        report: GenerationReport,
    ) -> IntermediateSchemaDocument:
        with Timer("build") as t:
            try:
                builder = MetadataBuilder(
                    tables,
                    app=self._config.app_metadata(),
                    views=views,
                    strict_foreign_keys=self._config.strict_foreign_keys,
                )
                document: IntermediateSchemaDocument = builder.build()
            except DdlGenError as exc:
                error: Optional[DdlGenError] = exc
            else:
                error = None
        if error is not None:
            self._abort(report, "Build Document", error, t)

        diagnostics.merge(builder.diagnostics)
        report.document = document
        report.entities_built = len(document.entities)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Build Document",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{len(document.entities)} entities, "
                f"{sum(len(e.relationships) for e in document.entities)} relationships, "
                f"{len(document.views)} views"
            ),
        ))
        return document

    def _step_serialize(self, document: IntermediateSchemaDocument, report: GenerationReport) -> None:
        with Timer("serialize") as t:
            try:
                text: str = serialize(document)
            except DdlGenError as exc:
                error: Optional[DdlGenError] = exc
            else:
                error = None
        if error is not None:
            self._abort(report, "Serialize Document", error, t)

        report.document_text = text
        report.step_metrics.append(GenerationStepMetric(
            step_name="Serialize Document",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{count_lines(text)} lines of YAML",
        ))

    def _report_warnings(self, diagnostics: ValidationResult, report: GenerationReport) -> None:
        """Log every warning exactly once and apply ``fail_on_warnings``."""
        for item in diagnostics.warnings:
            line: str = item.format_line()
            report.warnings.append(line)
            logger.warning("%s", line)
        if diagnostics.has_warnings and self._config.fail_on_warnings:
            message: str = (
                f"{diagnostics.warning_count} warning(s) and fail_on_warnings is set."
            )
            report.validation_errors.append(message)
            report.fatal_error = DdlGenError(message)
            raise _PipelineAbort()

    # -----------------------------------------------------------------
    # Pipeline step: Code generation
    # -----------------------------------------------------------------

    def _step_generate(
        self, document: IntermediateSchemaDocument, report: GenerationReport
    ) -> Dict[str, str]:
        """
        Render every module.  A ``GenerationError`` drops only the module it
        was raised for.
        """
        templates: TemplateGenerator = TemplateGenerator(self._config)
        files: Dict[str, str] = {}
        reserved: Set[str] = {BASE_MODULE, "__init__.py", MANIFEST_FILE, self._config.document_filename}

        with Timer("code_generation") as t:
            generated_entities: List[EntityDefinition] = []
            if self._mode.includes_entities:
                files[BASE_MODULE] = templates.generate_base()
                for entity in document.entities:
                    path: str = entity_module_path(entity)
                    try:
                        if path in files or path in reserved or path.startswith(f"{VIEWS_PACKAGE}/"):
                            raise GenerationError(
                                entity.qualified_name,
                                f"module path '{path}' collides with another generated file.",
                            )
                        files[path] = templates.generate_entity(entity, document)
                    except GenerationError as exc:
                        self._record_failure(report, exc)
                        continue
                    generated_entities.append(entity)
                if len(generated_entities) < len(document.entities):
                    # Drop relationships into modules that were not written
                    available: Set[str] = {e.qualified_name for e in generated_entities}
                    for entity in generated_entities:
                        files[entity_module_path(entity)] = templates.generate_entity(
                            entity, document, available
                        )
                files.update(self._entity_packages(templates, generated_entities))

            generated_views: List[ViewDefinition] = []
            if self._mode.includes_views and document.views:
                for view in document.views:
                    path = view_module_path(view)
                    try:
                        if path in files:
                            raise GenerationError(
                                view.name, f"module path '{path}' collides with another view."
                            )
                        files[path] = templates.generate_view(view)
                    except GenerationError as exc:
                        self._record_failure(report, exc)
                        continue
                    generated_views.append(view)
                files[f"{VIEWS_PACKAGE}/__init__.py"] = templates.generate_package_init(
                    VIEWS_PACKAGE,
                    [
                        f"from .{entity_to_module_name(v.name)} import {view_class_name(v)}"
                        for v in generated_views
                    ],
                    [view_class_name(v) for v in generated_views],
                )

            if self._mode.includes_entities:
                if self._config.write_document:
                    files[self._config.document_filename] = report.document_text
                files[MANIFEST_FILE] = templates.generate_manifest(document, files)

        report.entities_generated = len(generated_entities)
        report.views_generated = len(generated_views)
        report.planned_files = sorted(files)
        report.total_lines = sum(count_lines(c) for c in files.values())

        detail: str = (
            f"{len(files)} files, {len(generated_entities)} entities, "
            f"{len(generated_views)} views, {len(report.generation_errors)} failure(s)"
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Code Generation",
            success=not report.generation_errors,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))
        logger.info("Code generation complete: %s in %.3fs.", detail, t.elapsed)
        return files

    @staticmethod
    def _record_failure(report: GenerationReport, exc: GenerationError) -> None:
        report.generation_errors.append(exc)
        logger.error("Generation failed for %s", exc)

    def _entity_packages(
        self, templates: TemplateGenerator, entities: List[EntityDefinition]
    ) -> Dict[str, str]:
        """Root ``__init__.py`` plus one ``__init__.py`` per schema sub-package."""
        files: Dict[str, str] = {}
        root_imports: List[str] = ["from .base import Base"]
        root_exports: List[str] = ["Base"]
        by_package: Dict[str, List[EntityDefinition]] = {}
        for entity in entities:
            package: str = schema_package(entity.schema_name)
            if package:
                by_package.setdefault(package, []).append(entity)
                continue
            root_imports.append(
                f"from .{entity_to_module_name(entity.name)} import "
                f"{entity.name}, {entity.name}Schema"
            )
            root_exports.extend([entity.name, f"{entity.name}Schema"])

        for package in sorted(by_package):
            members: List[EntityDefinition] = by_package[package]
            files[f"{package}/__init__.py"] = templates.generate_package_init(
                package,
                [
                    f"from .{entity_to_module_name(e.name)} import {e.name}, {e.name}Schema"
                    for e in members
                ],
                [name for e in members for name in (e.name, f"{e.name}Schema")],
            )
            root_imports.append(f"from . import {package}")
            root_exports.append(package)

        files["__init__.py"] = templates.generate_package_init(
            self._config.package_name, root_imports, root_exports
        )
        return files

    # -----------------------------------------------------------------
    # Pipeline step: Export
    # -----------------------------------------------------------------

    def _step_export(
        self,
        files: Dict[str, str],
        output_dir: Path,
        report: GenerationReport,
    ) -> None:
        """Write all generated files to the filesystem."""
        with Timer("export") as t:
            exporter: ProjectExporter = ProjectExporter(
                self._config, output_dir, dry_run=self._dry_run
            )
            result: ExportResult = exporter.export(files)

        report.export = result
        report.total_files = len(result.files)
        report.files_written = result.written_count
        report.total_bytes = result.total_bytes
        report.export_errors.extend(result.errors)
        report.generation_errors.extend(result.protected)

        report.step_metrics.append(GenerationStepMetric(
            step_name="Export to Filesystem",
            success=result.success,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{len(result.files)} files, {result.written_count} written, "
                f"{result.total_bytes:,} bytes"
            ),
        ))

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    @staticmethod
    def _finalise_report(report: GenerationReport, total_elapsed: float) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = not (
            report.fatal_error is not None
            or report.input_errors
            or report.validation_errors
            or report.generation_errors
            or report.export_errors
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DdlGenerator",
    "GenerationMode",
    "GenerationReport",
    "GenerationStepMetric",
]

logger.debug("ddlgen.generator loaded.")

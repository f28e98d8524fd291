# File: ddlgen/cli.py
"""
ddlgen - Command-Line Interface
================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Entities (and views, when a registry is given)
    python -m ddlgen -s schema.sql -o ./generated_models --views views.yaml

    # Views only
    python -m ddlgen --mode views --views views.yaml -o ./generated_models

    # Settings from a YAML file, overridden on the command line
    python -m ddlgen -s schema.sql -o ./out --config ddlgen.yaml --strict-fks

    # Parse, validate and build the document without generating code
    python -m ddlgen -s schema.sql --validate-only

    # Show version
    python -m ddlgen --version

Exit codes:
    0 — success
    1 — parse / type / validation error
    2 — generation error(s) (all other files were still written)
    3 — export error
    4 — input/argument error
    5 — serialization error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

import yaml
from pydantic import ValidationError

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("ddlgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4
EXIT_SERIALIZATION_ERROR: int = 5


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root ddlgen logger based on verbosity level.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt=datefmt)
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("ddlgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Prevent propagation to root logger
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from ddlgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="ddlgen",
        description=(
            "ddlgen — SQL Server DDL to Python model generator.\n\n"
            "Parses CREATE SCHEMA / CREATE TABLE scripts into an intermediate "
            "YAML schema document and generates SQLAlchemy 2.0 models with "
            "Pydantic V2 schemas, plus read-only projections for registered views."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.sql -o ./generated_models\n"
            "  %(prog)s -s schema.sql -o ./out --views views.yaml -v\n"
            "  %(prog)s --mode views --views views.yaml -o ./out\n"
            "  %(prog)s -s schema.sql --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ddlgen v{__version__}",
    )

    # --- Inputs ---
    input_group = parser.add_argument_group("inputs")
    input_group.add_argument(
        "-s", "--schema",
        type=str,
        default=None,
        metavar="PATH",
        help="SQL file with CREATE SCHEMA / CREATE TABLE statements.",
    )
    input_group.add_argument(
        "--views",
        type=str,
        default=None,
        metavar="PATH",
        help="View registry (YAML) pointing at hand-written SELECT files.",
    )
    input_group.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="YAML file with generation settings.",
    )

    # --- Output ---
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Root of the generated package. Required unless --validate-only is set.",
    )
    parser.add_argument(
        "--document",
        type=str,
        default=None,
        metavar="NAME",
        help="File name of the intermediate document inside the output (default: data.yaml).",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--mode",
        type=str,
        default="all",
        choices=["entities", "views", "all"],
        help="Generate entities, views, or both (default: all).",
    )
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Parse, validate and build the document without generating code.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--strict-fks",
        action="store_true",
        default=None,
        help="Treat foreign keys to tables missing from the input as fatal.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=None,
        help="Treat warnings as errors.",
    )
    behaviour_group.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="N",
        help="Parallel file writers (1 = sequential).",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, object] = {}

    if args.strict_fks:
        overrides["strict_foreign_keys"] = True

    if args.fail_on_warnings:
        overrides["fail_on_warnings"] = True

    if args.workers is not None:
        overrides["max_workers"] = args.workers

    if args.document is not None:
        overrides["document_filename"] = args.document

    return overrides


def load_config(
    config_path: Optional[Path],
    overrides: Optional[Dict[str, object]] = None,
) -> Any:
    """
    Load ``GenerationConfig`` from an optional YAML file, then apply
    *overrides*.

    Raises:
        ValueError: If the file cannot be read or the settings are invalid.
    """
    from ddlgen.models import GenerationConfig

    data: Dict[str, Any] = {}
    if config_path is not None:
        try:
            raw: Any = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ValueError(f"Cannot read config file {config_path}: {exc}") from exc
        if raw is not None and not isinstance(raw, dict):
            raise ValueError(
                f"Expected a YAML mapping at top level of {config_path}, "
                f"got {type(raw).__name__}."
            )
        data.update(raw or {})
    data.update(overrides or {})

    try:
        return GenerationConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Exit code mapping
# ---------------------------------------------------------------------------


def exit_code_for(report: Any) -> int:
    """Map a ``GenerationReport`` to the process exit code."""
    from ddlgen.errors import SerializationError, ViewRegistryError

    if report.success:
        return EXIT_SUCCESS
    if report.input_errors or isinstance(report.fatal_error, ViewRegistryError):
        return EXIT_INPUT_ERROR
    if isinstance(report.fatal_error, SerializationError):
        return EXIT_SERIALIZATION_ERROR
    if report.fatal_error is not None or report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.export_errors:
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def _resolve_input(path_text: Optional[str], label: str) -> Optional[Path]:
    if path_text is None:
        return None
    path: Path = Path(path_text).resolve()
    if not path.is_file():
        raise FileNotFoundError(f"{label} not found: {path}")
    return path


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, run the pipeline and return the exit code."""
    parser: argparse.ArgumentParser = _build_parser()
    try:
        args: argparse.Namespace = parser.parse_args(argv)
    except SystemExit as exc:
        # --help / --version exit 0; usage errors map to the input error code
        return EXIT_SUCCESS if exc.code in (0, None) else EXIT_INPUT_ERROR

    _setup_logging(-1 if args.quiet else args.verbose)

    from ddlgen.generator import DdlGenerator, GenerationMode, GenerationReport

    mode: GenerationMode = GenerationMode(args.mode)

    # --- Inputs ---
    try:
        schema_path: Optional[Path] = _resolve_input(args.schema, "Schema file")
        views_path: Optional[Path] = _resolve_input(args.views, "View registry")
        config_path: Optional[Path] = _resolve_input(args.config, "Config file")
        config = load_config(config_path, _build_config_overrides(args))
    except (FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    if mode.includes_entities and schema_path is None:
        logger.error("A schema file is required for mode '%s'. Use -s/--schema.", mode.value)
        parser.print_usage(sys.stderr)
        return EXIT_INPUT_ERROR
    if mode == GenerationMode.VIEWS and views_path is None:
        logger.error("Mode 'views' requires --views.")
        return EXIT_INPUT_ERROR

    output_dir: Optional[Path] = None
    if not args.validate_only:
        if args.output is None:
            logger.error(
                "Output directory is required for generation. "
                "Use -o/--output or --validate-only."
            )
            parser.print_usage(sys.stderr)
            return EXIT_INPUT_ERROR
        output_dir = Path(args.output).resolve()

    logger.info("Schema:  %s", schema_path)
    logger.info("Views:   %s", views_path)
    logger.info("Output:  %s", output_dir)
    logger.info("Mode:    %s", mode.value)

    # --- Run generation ---
    generator: DdlGenerator = DdlGenerator(
        config,
        mode=mode,
        dry_run=args.dry_run,
        validate_only=args.validate_only,
    )
    report: GenerationReport = generator.generate_from_files(
        schema_path, output_dir, views_path=views_path
    )

    if not args.quiet:
        print(report.summary())

    exit_code: int = exit_code_for(report)
    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)
    return exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    sys.exit(run(argv))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "run",
    "load_config",
    "exit_code_for",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
    "EXIT_SERIALIZATION_ERROR",
]

logger.debug("ddlgen.cli loaded.")

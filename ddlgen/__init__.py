# File: ddlgen/__init__.py
"""
ddlgen — SQL Server DDL to Python Model Generator
==================================================

Turns ``CREATE SCHEMA`` / ``CREATE TABLE`` scripts into a versioned
intermediate YAML document and, from it, one Python module per entity
(SQLAlchemy 2.0 ORM class + Pydantic V2 schema).  A parallel pipeline turns
a registry of hand-written ``SELECT`` files into read-only projections.

Architecture overview::

    ┌──────────────┐     ┌───────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│  DdlGenerator  │────▶│ TemplateGenerator│
    │   (cli.py)   │     │ (generator.py) │     │  (templates.py)  │
    └──────────────┘     └───────┬───────┘     └──────────────────┘
                                 │
          ┌──────────┬───────────┼───────────┬───────────┐
          ▼          ▼           ▼           ▼           ▼
     ┌────────┐ ┌─────────┐ ┌─────────┐ ┌─────────┐ ┌───────────┐
     │ parser │ │ visitor │ │ builder │ │  views  │ │ exporters │
     └────────┘ └─────────┘ └─────────┘ └─────────┘ └───────────┘

Usage::

    # As a library
    from ddlgen import DdlGenerator, GenerationConfig
    report = DdlGenerator(GenerationConfig()).generate_from_files(
        Path("schema.sql"), Path("./generated_models")
    )

    # From the command line
    python -m ddlgen --schema schema.sql --output ./generated_models -v
"""

from __future__ import annotations

__version__: str = "0.1.0"

from ddlgen.errors import (
    DdlGenError,
    ForeignKeyResolutionError,
    GenerationError,
    GenerationFailures,
    ManualFileProtectedError,
    ParseError,
    SerializationError,
    UnknownTypeError,
    ViewRegistryError,
)
from ddlgen.models import (
    EntityDefinition,
    GenerationConfig,
    IntermediateSchemaDocument,
    LogicalKind,
    LogicalType,
    TableMetadata,
    ViewDefinition,
)
from ddlgen.validators import Diagnostic, ValidationResult
from ddlgen.visitor import ParseResult, parse_ddl
from ddlgen.type_mapper import map_type
from ddlgen.builder import MetadataBuilder, build, deserialize, serialize
from ddlgen.views import load_view_registry
from ddlgen.templates import TemplateGenerator
from ddlgen.exporters import ExportResult, ProjectExporter
from ddlgen.generator import DdlGenerator, GenerationMode, GenerationReport

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    # Core orchestrator
    "DdlGenerator",
    "GenerationMode",
    "GenerationReport",
    # Pipeline stages
    "parse_ddl",
    "ParseResult",
    "map_type",
    "MetadataBuilder",
    "build",
    "serialize",
    "deserialize",
    "load_view_registry",
    "TemplateGenerator",
    "ProjectExporter",
    "ExportResult",
    # Models
    "EntityDefinition",
    "GenerationConfig",
    "IntermediateSchemaDocument",
    "LogicalKind",
    "LogicalType",
    "TableMetadata",
    "ViewDefinition",
    # Diagnostics
    "Diagnostic",
    "ValidationResult",
    # Errors
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

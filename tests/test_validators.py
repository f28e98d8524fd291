"""
tests/test_validators.py
Unit tests for ddlgen.validators.

Tests cover:
- Diagnostic formatting and the ValidationResult container
- Primary key existence checks
- Entity name collisions after singularisation
- Foreign key type compatibility
- Configuration sanity checks
- Full validation pipeline (validate_full)
"""

from __future__ import annotations

from typing import List

import pytest

from ddlgen.models import GenerationConfig, TableMetadata
from ddlgen.validators import (
    CONFIG_DOCUMENT_PROTECTED,
    CONFIG_PATTERN_SUSPICIOUS,
    ENTITY_NAME_COLLISION,
    FK_TYPE_MISMATCH,
    NO_PRIMARY_KEY,
    UNSUPPORTED_CONSTRUCT,
    Diagnostic,
    ValidationResult,
    validate_entity_names,
    validate_foreign_key_types,
    validate_full,
    validate_generation_config,
    validate_primary_keys,
)
from ddlgen.visitor import parse_ddl


def _tables(sql: str) -> List[TableMetadata]:
    return parse_ddl(sql).tables


# ===========================================================================
# Container
# ===========================================================================


class TestValidationResult:
    """Accumulation and querying of diagnostics."""

    def test_empty_result_is_valid(self) -> None:
        result = ValidationResult()
        assert result.is_valid
        assert bool(result) is True
        assert len(result) == 0

    def test_errors_make_it_invalid(self) -> None:
        result = ValidationResult()
        result.add_warning("W", "careful")
        assert result.is_valid
        result.add_error("E", "broken")
        assert not result.is_valid
        assert result.error_count == 1
        assert result.warning_count == 1
        assert "1 error(s), 1 warning(s)" in result.summary()

    def test_merge_and_by_code(self) -> None:
        first = ValidationResult()
        first.add_warning("A", "one")
        second = ValidationResult()
        second.add_warning("B", "two")
        second.add_info("A", "three")
        first.merge(second)
        assert len(first) == 3
        assert [d.message for d in first.by_code("A")] == ["one", "three"]
        assert len(first.warnings) == 2

    def test_format_line(self) -> None:
        diagnostic = Diagnostic("warning", "X", "Something odd", {"table": "A", "column": "B"})
        assert diagnostic.format_line() == "[X] Something odd (table=A, column=B)"
        assert Diagnostic("error", "Y", "Plain").format_line() == "[Y] Plain"

    def test_format_report_hides_info(self) -> None:
        result = ValidationResult()
        result.add_info("I", "note")
        result.add_error("E", "bad")
        report = result.format_report()
        assert "[E] bad" in report
        assert "[I] note" not in report
        assert "[I] note" in result.format_report(include_info=True)


# ===========================================================================
# Table-set validators
# ===========================================================================


class TestTableValidators:
    """Semantic checks over the whole table set."""

    def test_missing_primary_key(self) -> None:
        result = validate_primary_keys(_tables("CREATE TABLE Logs (Message NVARCHAR(100))"))
        assert result.is_valid
        assert [d.code for d in result.warnings] == [NO_PRIMARY_KEY]
        assert result.warnings[0].context == {"table": "Logs"}

    def test_already_reported_key_is_skipped(self) -> None:
        tables = _tables(
            "CREATE TABLE Links (A INT NOT NULL, B INT NOT NULL, PRIMARY KEY (A, B));"
            "CREATE TABLE Logs (Message NVARCHAR(100))"
        )
        result = validate_primary_keys(tables, already_reported=["links"])
        assert [d.context for d in result.warnings] == [{"table": "Logs"}]

    def test_primary_key_present(self, shop_ddl: str) -> None:
        assert len(validate_primary_keys(_tables(shop_ddl))) == 0

    def test_entity_name_collision(self) -> None:
        result = validate_entity_names(
            _tables("CREATE TABLE Product (Id INT PRIMARY KEY); CREATE TABLE Products (Id INT PRIMARY KEY)")
        )
        assert not result.is_valid
        assert result.errors[0].code == ENTITY_NAME_COLLISION

    def test_same_name_in_different_schemas(self) -> None:
        result = validate_entity_names(
            _tables(
                "CREATE TABLE sales.Items (Id INT PRIMARY KEY);"
                "CREATE TABLE stock.Items (Id INT PRIMARY KEY)"
            )
        )
        assert result.is_valid

    def test_foreign_key_type_mismatch(self) -> None:
        result = validate_foreign_key_types(
            _tables(
                "CREATE TABLE B (Id BIGINT PRIMARY KEY);"
                "CREATE TABLE A (Id INT PRIMARY KEY, BId INT REFERENCES B(Id))"
            )
        )
        assert [d.code for d in result.warnings] == [FK_TYPE_MISMATCH]
        assert result.warnings[0].context == {"table": "A", "column": "BId"}

    def test_matching_foreign_key_types(self, sales_ddl: str) -> None:
        assert len(validate_foreign_key_types(_tables(sales_ddl))) == 0

    def test_unresolvable_reference_is_not_checked_here(self) -> None:
        result = validate_foreign_key_types(
            _tables("CREATE TABLE A (Id INT PRIMARY KEY, BId INT REFERENCES B(Id))")
        )
        assert len(result) == 0


# ===========================================================================
# Configuration
# ===========================================================================


class TestConfigValidation:
    """Checks that GenerationConfig field constraints cannot express."""

    def test_default_config_is_clean(self) -> None:
        assert len(validate_generation_config(GenerationConfig())) == 0

    def test_pattern_without_py_suffix(self) -> None:
        result = validate_generation_config(GenerationConfig(manual_extension_pattern="*_ext"))
        assert result.is_valid
        assert result.warnings[0].code == CONFIG_PATTERN_SUSPICIOUS

    @pytest.mark.parametrize("pattern", ["*.py", "base*.py", "__init__.py"])
    def test_pattern_matching_generated_modules(self, pattern: str) -> None:
        result = validate_generation_config(GenerationConfig(manual_extension_pattern=pattern))
        assert not result.is_valid
        assert result.errors[0].code == CONFIG_PATTERN_SUSPICIOUS

    def test_document_matching_pattern(self) -> None:
        config = GenerationConfig(manual_extension_pattern="*.yaml", document_filename="data.yaml")
        result = validate_generation_config(config)
        assert [d.code for d in result.errors] == [CONFIG_DOCUMENT_PROTECTED]

    def test_document_not_written(self) -> None:
        config = GenerationConfig(
            manual_extension_pattern="*.yaml", document_filename="data.yaml", write_document=False
        )
        assert not validate_generation_config(config).has_errors


# ===========================================================================
# Full pipeline
# ===========================================================================


class TestValidateFull:
    """``validate_full`` merges every check."""

    def test_clean_input(self, shop_ddl: str, config: GenerationConfig) -> None:
        result = validate_full(_tables(shop_ddl), config)
        assert result.is_valid
        assert len(result) == 0

    def test_collects_from_every_check(self, config: GenerationConfig) -> None:
        sql = (
            "CREATE TABLE Logs (Message NVARCHAR(100));"
            "CREATE TABLE B (Id BIGINT PRIMARY KEY);"
            "CREATE TABLE A (Id INT PRIMARY KEY, BId INT REFERENCES B(Id))"
        )
        result = validate_full(_tables(sql), config)
        assert result.is_valid
        assert {d.code for d in result.warnings} == {NO_PRIMARY_KEY, FK_TYPE_MISMATCH}

    def test_composite_key_reported_once(self, config: GenerationConfig) -> None:
        parsed = parse_ddl("CREATE TABLE Links (A INT NOT NULL, B INT NOT NULL, PRIMARY KEY (A, B))")
        result = validate_full(parsed.tables, config, parsed.unsupported_keys)
        assert len(result) == 0
        assert len(parsed.diagnostics.by_code(UNSUPPORTED_CONSTRUCT)) == 1

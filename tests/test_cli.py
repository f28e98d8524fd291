"""
tests/test_cli.py
Tests for ddlgen.cli: argument handling, config loading and exit codes.
"""

from __future__ import annotations

import pathlib

import pytest

from ddlgen.cli import (
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
    load_config,
    run,
)


def _write(path: pathlib.Path, text: str) -> pathlib.Path:
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Successful runs
# ---------------------------------------------------------------------------


class TestRun:
    """End-to-end invocations of ``run``."""

    def test_generates_tree(
        self, shop_sql_path: pathlib.Path, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        out = tmp_path / "out"
        code = run(["-s", str(shop_sql_path), "-o", str(out)])
        assert code == EXIT_SUCCESS
        assert (out / "product.py").is_file()
        assert "SUCCESS" in capsys.readouterr().out

    def test_quiet_prints_nothing(
        self, shop_sql_path: pathlib.Path, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        code = run(["-q", "-s", str(shop_sql_path), "-o", str(tmp_path / "out")])
        assert code == EXIT_SUCCESS
        assert capsys.readouterr().out == ""

    def test_validate_only_needs_no_output(
        self, shop_sql_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        assert run(["-q", "-s", str(shop_sql_path), "--validate-only"]) == EXIT_SUCCESS
        assert list(tmp_path.iterdir()) == [shop_sql_path]

    def test_views_mode(self, views_registry_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        code = run(["-q", "--mode", "views", "--views", str(views_registry_path), "-o", str(out)])
        assert code == EXIT_SUCCESS
        assert (out / "views" / "product_sales_view.py").is_file()
        assert not (out / "base.py").exists()

    def test_document_option(self, shop_sql_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        code = run(["-q", "-s", str(shop_sql_path), "-o", str(out), "--document", "model.yaml"])
        assert code == EXIT_SUCCESS
        assert (out / "model.yaml").is_file()

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        assert run(["--version"]) == EXIT_SUCCESS
        assert "ddlgen v" in capsys.readouterr().out

    def test_cli_main_exits_with_code(self, shop_sql_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli_main(["-q", "-s", str(shop_sql_path), "-o", str(tmp_path / "out")])
        assert exc_info.value.code == EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class TestExitCodes:
    """Failure classes map to distinct exit codes."""

    def test_missing_schema_file(self, tmp_path: pathlib.Path) -> None:
        code = run(["-q", "-s", str(tmp_path / "nope.sql"), "-o", str(tmp_path / "out")])
        assert code == EXIT_INPUT_ERROR

    def test_schema_required_for_entities(self, tmp_path: pathlib.Path) -> None:
        assert run(["-q", "-o", str(tmp_path / "out")]) == EXIT_INPUT_ERROR

    def test_views_mode_requires_registry(self, tmp_path: pathlib.Path) -> None:
        assert run(["-q", "--mode", "views", "-o", str(tmp_path / "out")]) == EXIT_INPUT_ERROR

    def test_output_required(self, shop_sql_path: pathlib.Path) -> None:
        assert run(["-q", "-s", str(shop_sql_path)]) == EXIT_INPUT_ERROR

    def test_bad_argument(self) -> None:
        assert run(["--mode", "everything"]) == EXIT_INPUT_ERROR

    def test_bad_config(self, shop_sql_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        config = _write(tmp_path / "ddlgen.yaml", "max_workers: 0\n")
        code = run(["-q", "-s", str(shop_sql_path), "--config", str(config), "--validate-only"])
        assert code == EXIT_INPUT_ERROR

    def test_parse_error(self, tmp_path: pathlib.Path) -> None:
        schema = _write(tmp_path / "schema.sql", "CREATE TABLE (Id INT)")
        code = run(["-q", "-s", str(schema), "-o", str(tmp_path / "out")])
        assert code == EXIT_VALIDATION_ERROR
        assert not (tmp_path / "out").exists()

    def test_strict_fks(self, tmp_path: pathlib.Path) -> None:
        schema = _write(
            tmp_path / "schema.sql",
            "CREATE TABLE A (Id INT PRIMARY KEY, BId INT REFERENCES B(Id))",
        )
        out = tmp_path / "out"
        assert run(["-q", "-s", str(schema), "-o", str(out)]) == EXIT_SUCCESS
        assert run(["-q", "-s", str(schema), "-o", str(out), "--strict-fks"]) == EXIT_VALIDATION_ERROR

    def test_fail_on_warnings(self, tmp_path: pathlib.Path) -> None:
        schema = _write(
            tmp_path / "schema.sql",
            "CREATE TABLE A (Id INT PRIMARY KEY, Score INT CHECK (Score > 0))",
        )
        args = ["-q", "-s", str(schema), "--validate-only"]
        assert run(args) == EXIT_SUCCESS
        assert run(args + ["--fail-on-warnings"]) == EXIT_VALIDATION_ERROR

    def test_generation_error(self, tmp_path: pathlib.Path) -> None:
        schema = _write(
            tmp_path / "schema.sql",
            "CREATE TABLE A (Id INT PRIMARY KEY);\nCREATE TABLE Logs (Message NVARCHAR(10));\n",
        )
        out = tmp_path / "out"
        assert run(["-q", "-s", str(schema), "-o", str(out)]) == EXIT_GENERATION_ERROR
        assert (out / "a.py").is_file()

    def test_broken_registry(self, shop_sql_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        registry = _write(tmp_path / "views.yaml", "views:\n  - name: V\n    sql_file: missing.sql\n")
        code = run(["-q", "-s", str(shop_sql_path), "--views", str(registry), "-o", str(tmp_path / "out")])
        assert code == EXIT_INPUT_ERROR

    def test_undecodable_view_sql(self, shop_sql_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        (tmp_path / "v.sql").write_bytes(b"\xff\xfe\xfa")
        registry = _write(
            tmp_path / "views.yaml",
            "views:\n  - name: V\n    sql_file: v.sql\n    properties:\n      - {name: Id, type: int}\n",
        )
        code = run(["-q", "-s", str(shop_sql_path), "--views", str(registry), "-o", str(tmp_path / "out")])
        assert code == EXIT_INPUT_ERROR
        assert not (tmp_path / "out").exists()


# ---------------------------------------------------------------------------
# Configuration loading
# ---------------------------------------------------------------------------


class TestLoadConfig:
    """YAML settings file plus command-line overrides."""

    def test_defaults(self) -> None:
        config = load_config(None)
        assert config.manual_extension_pattern == "*_ext.py"
        assert config.document_filename == "data.yaml"

    def test_file_then_overrides(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path / "ddlgen.yaml", "app_name: shop\nmax_workers: 2\n")
        config = load_config(path, {"max_workers": 8})
        assert config.app_name == "shop"
        assert config.max_workers == 8

    def test_unknown_key(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path / "ddlgen.yaml", "colour: blue\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_non_mapping(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path / "ddlgen.yaml", "- a\n")
        with pytest.raises(ValueError):
            load_config(path)

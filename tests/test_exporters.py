"""
tests/test_exporters.py
Tests for ddlgen.exporters: atomic, idempotent writes that never touch
hand-written extension files.
"""

from __future__ import annotations

import pathlib

import pytest

from ddlgen.errors import ManualFileProtectedError
from ddlgen.exporters import ProjectExporter, protected_paths
from ddlgen.models import GenerationConfig


@pytest.fixture()
def files() -> dict:
    return {
        "base.py": "class Base:\n    pass\n",
        "__init__.py": "",
        "sales/order.py": "ORDER = 1\n",
        "views/report.py": "REPORT = 2\n",
    }


class TestProjectExporter:
    """Writing a path → content mapping under one root."""

    def test_writes_all_files(self, config: GenerationConfig, tmp_path: pathlib.Path, files: dict) -> None:
        result = ProjectExporter(config, tmp_path).export(files)
        assert result.success
        assert result.written_count == 4
        assert [f.relative_path for f in result.files] == sorted(files)
        assert (tmp_path / "sales" / "order.py").read_text(encoding="utf-8") == "ORDER = 1\n"
        assert result.total_bytes == sum(len(c.encode("utf-8")) for c in files.values())

    def test_second_run_changes_nothing(
        self, config: GenerationConfig, tmp_path: pathlib.Path, files: dict
    ) -> None:
        exporter = ProjectExporter(config, tmp_path)
        exporter.export(files)
        before = (tmp_path / "base.py").stat().st_mtime_ns
        result = exporter.export(files)
        assert result.success
        assert result.written_count == 0
        assert result.unchanged_count == 4
        assert (tmp_path / "base.py").stat().st_mtime_ns == before

    def test_changed_file_is_rewritten(
        self, config: GenerationConfig, tmp_path: pathlib.Path, files: dict
    ) -> None:
        exporter = ProjectExporter(config, tmp_path)
        exporter.export(files)
        files["sales/order.py"] = "ORDER = 3\n"
        result = exporter.export(files)
        assert result.written_count == 1
        assert (tmp_path / "sales" / "order.py").read_text(encoding="utf-8") == "ORDER = 3\n"

    def test_manual_files_are_never_written(
        self, config: GenerationConfig, tmp_path: pathlib.Path, files: dict
    ) -> None:
        manual = tmp_path / "sales" / "order_ext.py"
        manual.parent.mkdir(parents=True)
        manual.write_text("# mine\n", encoding="utf-8")

        files["sales/order_ext.py"] = "# generated\n"
        result = ProjectExporter(config, tmp_path).export(files)

        assert not result.success
        assert manual.read_text(encoding="utf-8") == "# mine\n"
        assert protected_paths(result) == ["sales/order_ext.py"]
        assert isinstance(result.protected[0], ManualFileProtectedError)
        # everything else still lands
        assert (tmp_path / "sales" / "order.py").exists()

    def test_custom_pattern(self, tmp_path: pathlib.Path) -> None:
        config = GenerationConfig(manual_extension_pattern="*_custom.py", max_workers=1)
        exporter = ProjectExporter(config, tmp_path)
        assert exporter.is_protected("a/b_custom.py")
        assert not exporter.is_protected("a/b_ext.py")

    def test_refuses_paths_outside_root(self, config: GenerationConfig, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        result = ProjectExporter(config, out).export({"../escape.py": "x = 1\n"})
        assert not result.success
        assert len(result.errors) == 1
        assert not (tmp_path / "escape.py").exists()

    def test_dry_run_writes_nothing(
        self, config: GenerationConfig, tmp_path: pathlib.Path, files: dict
    ) -> None:
        out = tmp_path / "out"
        result = ProjectExporter(config, out, dry_run=True).export(files)
        assert result.success
        assert result.dry_run
        assert len(result.files) == 4
        assert result.written_count == 0
        assert not out.exists()

    def test_parallel_writes(self, tmp_path: pathlib.Path) -> None:
        config = GenerationConfig(max_workers=4)
        many = {f"pkg/mod_{i}.py": f"VALUE = {i}\n" for i in range(20)}
        result = ProjectExporter(config, tmp_path).export(many)
        assert result.success
        assert result.written_count == 20
        assert (tmp_path / "pkg" / "mod_7.py").read_text(encoding="utf-8") == "VALUE = 7\n"

    def test_no_temp_files_left_behind(
        self, config: GenerationConfig, tmp_path: pathlib.Path, files: dict
    ) -> None:
        ProjectExporter(config, tmp_path).export(files)
        assert not list(tmp_path.rglob("*.tmp"))

    def test_file_record_checksums(
        self, config: GenerationConfig, tmp_path: pathlib.Path, files: dict
    ) -> None:
        result = ProjectExporter(config, tmp_path).export(files)
        record = next(f for f in result.files if f.relative_path == "base.py")
        assert record.line_count == 2
        assert len(record.sha256) == 64

"""
tests/test_type_mapper.py
Tests for ddlgen.type_mapper and the LogicalType text form.
"""

from __future__ import annotations

import pytest

from ddlgen.errors import UnknownTypeError
from ddlgen.models import LogicalKind, LogicalType
from ddlgen.type_mapper import _lookup, known_types, map_type, resolve_type_expression


class TestMapType:
    """SQL Server type → LogicalType."""

    @pytest.mark.parametrize(
        "sql_type, expected",
        [
            ("int", "Int32"),
            ("INT", "Int32"),
            ("bigint", "Int64"),
            ("smallint", "Int16"),
            ("tinyint", "Byte"),
            ("bit", "Bool"),
            ("float", "Double"),
            ("real", "Single"),
            ("uniqueidentifier", "Guid"),
            ("date", "Date"),
            ("time", "Time"),
            ("datetime2", "DateTime"),
            ("smalldatetime", "DateTime"),
            ("datetimeoffset", "DateTimeOffset"),
            ("varbinary", "Bytes"),
            ("rowversion", "Bytes"),
            ("text", "String(max)"),
            ("xml", "String(max)"),
            ("sysname", "String(128)"),
        ],
    )
    def test_fixed_types(self, sql_type: str, expected: str) -> None:
        assert str(map_type(sql_type)) == expected

    def test_decimal_keeps_precision_and_scale(self) -> None:
        logical = map_type("DECIMAL", precision=18, scale=2)
        assert logical.kind == LogicalKind.DECIMAL
        assert (logical.precision, logical.scale) == (18, 2)
        assert str(logical) == "Decimal(18,2)"

    def test_decimal_defaults(self) -> None:
        assert str(map_type("decimal")) == "Decimal(18,0)"
        assert str(map_type("numeric", precision=10)) == "Decimal(10,0)"

    def test_money_has_fixed_shape(self) -> None:
        assert str(map_type("money")) == "Decimal(19,4)"
        assert str(map_type("smallmoney")) == "Decimal(10,4)"

    def test_strings(self) -> None:
        assert str(map_type("nvarchar", 100)) == "String(100)"
        assert str(map_type("varchar", is_max=True)) == "String(max)"
        assert str(map_type("char")) == "String(1)"
        assert map_type("nvarchar", is_max=True).is_unbounded

    def test_unknown_type_carries_context(self) -> None:
        with pytest.raises(UnknownTypeError) as exc_info:
            map_type("money2", table="dbo.Products", column="Price")
        err = exc_info.value
        assert err.sql_type == "money2"
        assert err.table == "dbo.Products"
        assert err.column == "Price"
        assert "money2" in str(err)

    def test_context_does_not_leak_between_calls(self) -> None:
        assert str(map_type("int", table="A", column="Id")) == "Int32"
        with pytest.raises(UnknownTypeError) as first:
            map_type("money2", table="A", column="Price")
        with pytest.raises(UnknownTypeError) as second:
            map_type("money2", table="B", column="Cost")
        assert (first.value.table, first.value.column) == ("A", "Price")
        assert (second.value.table, second.value.column) == ("B", "Cost")

    def test_cache_is_keyed_on_type_only(self) -> None:
        _lookup.cache_clear()
        for index in range(50):
            map_type("NVARCHAR", 100, table=f"T{index}", column=f"C{index}")
        info = _lookup.cache_info()
        assert info.currsize == 1
        assert info.hits == 49

    def test_invalid_decimal_arguments(self) -> None:
        with pytest.raises(UnknownTypeError):
            map_type("decimal", precision=5, scale=9)

    def test_known_types_sorted(self) -> None:
        names = known_types()
        assert names == sorted(names)
        assert "nvarchar" in names
        assert "money" in names


class TestResolveTypeExpression:
    """Free-form type text as written in the view registry."""

    def test_sql_expression(self) -> None:
        assert str(resolve_type_expression("decimal(18, 2)")) == "Decimal(18,2)"
        assert str(resolve_type_expression("nvarchar(max)")) == "String(max)"
        assert str(resolve_type_expression("[int]")) == "Int32"

    def test_logical_expression(self) -> None:
        assert str(resolve_type_expression("Decimal(10,3)")) == "Decimal(10,3)"
        assert str(resolve_type_expression("String(50)")) == "String(50)"
        assert str(resolve_type_expression("Guid")) == "Guid"

    def test_garbage_is_unknown(self) -> None:
        with pytest.raises(UnknownTypeError):
            resolve_type_expression("not a type")
        with pytest.raises(UnknownTypeError):
            resolve_type_expression("Decimal(18)")


class TestLogicalType:
    """Canonical text form and parameter rules."""

    @pytest.mark.parametrize("text", ["Int32", "Decimal(18,2)", "String(100)", "String(max)"])
    def test_parse_is_inverse_of_str(self, text: str) -> None:
        assert str(LogicalType.parse(text)) == text

    def test_decimal_requires_precision(self) -> None:
        with pytest.raises(ValueError):
            LogicalType(kind=LogicalKind.DECIMAL)

    def test_only_strings_have_length(self) -> None:
        with pytest.raises(ValueError):
            LogicalType(kind=LogicalKind.INT32, max_length=4)

    def test_parse_rejects_unknown_kind(self) -> None:
        with pytest.raises(ValueError):
            LogicalType.parse("Money")

    def test_numeric_flag(self) -> None:
        assert LogicalType.parse("Decimal(5,2)").is_numeric
        assert not LogicalType.parse("String(5)").is_numeric

"""
tests/test_templates.py
Unit tests for ddlgen.templates module (TemplateGenerator).

Tests cover:
- SQLAlchemy ORM class generation (column types, keys, defaults, relationships)
- Pydantic validation schema generation
- Read-only view projections and their parameter models
- Package scaffolding (base, __init__) and manifest.json
- Code correctness (valid Python syntax via ast.parse())
"""

from __future__ import annotations

import ast
import decimal
import json
import sys
import types

import pytest

from ddlgen.builder import MetadataBuilder
from ddlgen.errors import GenerationError
from ddlgen.models import (
    GenerationConfig,
    IntermediateSchemaDocument,
    ViewColumn,
    ViewDefinition,
    ViewParameter,
)
from ddlgen.templates import (
    TemplateGenerator,
    entity_module_path,
    python_type,
    view_module_path,
)
from ddlgen.views import load_view_registry
from ddlgen.visitor import parse_ddl


# ===========================================================================
# Helpers
# ===========================================================================


def _is_valid_python(source: str) -> bool:
    try:
        ast.parse(source)
        return True
    except SyntaxError:
        return False


def _document(sql: str) -> IntermediateSchemaDocument:
    return MetadataBuilder(parse_ddl(sql).tables).build()


def _class_names(source: str) -> list:
    return [n.name for n in ast.parse(source).body if isinstance(n, ast.ClassDef)]


def _view(**kwargs) -> ViewDefinition:
    data = {
        "name": "ActiveCustomers",
        "sql_file": "sql/ActiveCustomers.sql",
        "result_columns": (ViewColumn(name="Id", logical_type="Int32", nullable=False),),
    }
    data.update(kwargs)
    return ViewDefinition(**data)


# ===========================================================================
# Entity modules
# ===========================================================================


class TestEntityGeneration:
    """ORM class + validation schema for one entity."""

    def test_product_module(
        self, config: GenerationConfig, shop_document: IntermediateSchemaDocument
    ) -> None:
        gen = TemplateGenerator(config)
        source = gen.generate_entity(shop_document.get_entity("Product"), shop_document)
        assert _is_valid_python(source), f"Generated entity is not valid Python:\n{source}"
        assert _class_names(source) == ["Product", "ProductSchema"]
        assert '__tablename__ = "Products"' in source
        assert "from .base import Base" in source

    def test_columns(
        self, config: GenerationConfig, shop_document: IntermediateSchemaDocument
    ) -> None:
        source = TemplateGenerator(config).generate_entity(
            shop_document.get_entity("Product"), shop_document
        )
        assert (
            'id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)'
            in source
        )
        assert 'name: Mapped[str] = mapped_column("Name", String(200), nullable=False)' in source
        assert (
            'description: Mapped[Optional[str]] = mapped_column("Description", Text, nullable=True)'
            in source
        )
        assert (
            'price: Mapped[Decimal] = mapped_column("Price", Numeric(18, 2), nullable=False)'
            in source
        )
        assert 'ForeignKey("Categories.Id")' in source

    def test_imports(
        self, config: GenerationConfig, shop_document: IntermediateSchemaDocument
    ) -> None:
        source = TemplateGenerator(config).generate_entity(
            shop_document.get_entity("Product"), shop_document
        )
        assert "from decimal import Decimal" in source
        assert "from typing import Optional" in source
        assert "from sqlalchemy import ForeignKey, Integer, Numeric, String, Text" in source
        assert "from sqlalchemy.orm import Mapped, mapped_column, relationship" in source
        assert "from pydantic import BaseModel, ConfigDict, Field" in source

    def test_relationships(
        self, config: GenerationConfig, shop_document: IntermediateSchemaDocument
    ) -> None:
        gen = TemplateGenerator(config)
        product = gen.generate_entity(shop_document.get_entity("Product"), shop_document)
        category = gen.generate_entity(shop_document.get_entity("Category"), shop_document)
        assert (
            'category: Mapped["Category"] = relationship("Category", back_populates="products")'
            in product
        )
        assert (
            'products: Mapped[List["Product"]] = relationship("Product", back_populates="category")'
            in category
        )
        assert "from typing import List" in category

    def test_validation_schema(
        self, config: GenerationConfig, shop_document: IntermediateSchemaDocument
    ) -> None:
        source = TemplateGenerator(config).generate_entity(
            shop_document.get_entity("Product"), shop_document
        )
        assert "model_config = ConfigDict(from_attributes=True)" in source
        assert "price: Decimal = Field(..., max_digits=18, decimal_places=2)" in source
        assert "name: str = Field(..., max_length=200)" in source
        assert "description: Optional[str] = None" in source

    def test_schema_package_uses_parent_base(
        self, config: GenerationConfig, sales_document: IntermediateSchemaDocument
    ) -> None:
        source = TemplateGenerator(config).generate_entity(
            sales_document.get_entity("Customer", "sales"), sales_document
        )
        assert _is_valid_python(source)
        assert "from ..base import Base" in source
        assert '__table_args__ = {"schema": "sales"}' in source
        assert 'server_default=text("1")' in source
        assert 'server_default=text("GETDATE()")' in source

    def test_multiple_paths_to_same_target(
        self, config: GenerationConfig, sales_document: IntermediateSchemaDocument
    ) -> None:
        gen = TemplateGenerator(config)
        order = gen.generate_entity(sales_document.get_entity("Order", "sales"), sales_document)
        customer = gen.generate_entity(
            sales_document.get_entity("Customer", "sales"), sales_document
        )
        assert 'ForeignKey("sales.Customers.Id")' in order
        assert 'foreign_keys="[Order.billing_customer_id]"' in order
        assert 'foreign_keys="[Order.shipping_customer_id]"' in order
        assert 'shipping_customer: Mapped[Optional["Customer"]]' in order
        assert 'billing_customer: Mapped["Customer"]' in order
        assert 'foreign_keys="[Order.billing_customer_id]"' in customer

    def test_self_reference(
        self, config: GenerationConfig, sales_document: IntermediateSchemaDocument
    ) -> None:
        source = TemplateGenerator(config).generate_entity(
            sales_document.get_entity("Employee", "sales"), sales_document
        )
        assert _is_valid_python(source)
        assert 'remote_side="[Employee.id]"' in source
        assert source.count("remote_side=") == 1
        assert 'mapped_column("Id", Integer, primary_key=True, autoincrement=False)' in source

    def test_class_name_clash_across_schemas(self, config: GenerationConfig) -> None:
        doc = _document(
            "CREATE TABLE sales.Items (Id INT PRIMARY KEY);"
            "CREATE TABLE stock.Items (Id INT PRIMARY KEY);"
            "CREATE TABLE sales.Lines (Id INT PRIMARY KEY, ItemId INT REFERENCES sales.Items(Id))"
        )
        source = TemplateGenerator(config).generate_entity(doc.get_entity("Line", "sales"), doc)
        assert 'relationship("generated_models.sales.item.Item"' in source

    def test_unresolved_reference_is_comment_only(self, config: GenerationConfig) -> None:
        doc = _document("CREATE TABLE A (Id INT PRIMARY KEY, BId INT REFERENCES B(Id))")
        source = TemplateGenerator(config).generate_entity(doc.get_entity("A"), doc)
        assert _is_valid_python(source)
        assert "relationship(" not in source
        assert "ForeignKey(" not in source
        assert "# b: BId references B, which is not part of this model." in source

    def test_reference_to_entity_without_module(self, config: GenerationConfig) -> None:
        doc = _document(
            "CREATE TABLE Tags (Id INT PRIMARY KEY);"
            "CREATE TABLE Links (TagId INT NOT NULL REFERENCES Tags(Id), Note NVARCHAR(10))"
        )
        source = TemplateGenerator(config).generate_entity(doc.get_entity("Tag"), doc)
        assert _is_valid_python(source)
        assert "relationship(" not in source
        assert "Link was not generated." in source

    def test_generated_set_limits_relationships(
        self, config: GenerationConfig, shop_document: IntermediateSchemaDocument
    ) -> None:
        source = TemplateGenerator(config).generate_entity(
            shop_document.get_entity("Product"), shop_document, {"Product"}
        )
        assert _is_valid_python(source)
        assert "relationship(" not in source
        assert "ForeignKey(" not in source
        assert "# category: omitted, Category was not generated." in source

    def test_class_named_like_a_pydantic_import(self, config: GenerationConfig) -> None:
        doc = _document("CREATE TABLE Fields (Id INT PRIMARY KEY, Label NVARCHAR(50) NOT NULL)")
        source = TemplateGenerator(config).generate_entity(doc.get_entity("Field"), doc)
        assert _is_valid_python(source)
        assert _class_names(source) == ["Field", "FieldSchema"]
        assert "from pydantic import BaseModel, ConfigDict, Field as _Field" in source
        assert "label: str = _Field(..., max_length=50)" in source

    def test_class_named_like_a_column_type(self, config: GenerationConfig) -> None:
        doc = _document("CREATE TABLE Dates (Id INT PRIMARY KEY, Day DATE NOT NULL)")
        source = TemplateGenerator(config).generate_entity(doc.get_entity("Date"), doc)
        assert "from sqlalchemy import Date as _Date, Integer" in source
        assert 'day: Mapped[date] = mapped_column("Day", _Date, nullable=False)' in source

    def test_base_is_reserved(self, config: GenerationConfig) -> None:
        doc = _document("CREATE TABLE Base (Id INT PRIMARY KEY)")
        with pytest.raises(GenerationError) as exc_info:
            TemplateGenerator(config).generate_entity(doc.get_entity("Base"), doc)
        assert "declarative base" in str(exc_info.value)

    def test_no_primary_key_fails(self, config: GenerationConfig) -> None:
        doc = _document("CREATE TABLE Logs (Message NVARCHAR(200))")
        with pytest.raises(GenerationError) as exc_info:
            TemplateGenerator(config).generate_entity(doc.get_entity("Log"), doc)
        assert exc_info.value.name == "Log"
        assert "primary key" in str(exc_info.value)

    def test_attribute_collision_fails(self, config: GenerationConfig) -> None:
        doc = _document("CREATE TABLE A (Id INT PRIMARY KEY, OrderId INT, Order_Id INT)")
        with pytest.raises(GenerationError):
            TemplateGenerator(config).generate_entity(doc.get_entity("A"), doc)

    def test_reserved_and_keyword_columns(self, config: GenerationConfig) -> None:
        doc = _document("CREATE TABLE A (Id INT PRIMARY KEY, [class] INT, [Metadata] NVARCHAR(10))")
        source = TemplateGenerator(config).generate_entity(doc.get_entity("A"), doc)
        assert _is_valid_python(source)
        assert 'class_: Mapped[Optional[int]] = mapped_column("class"' in source
        assert 'metadata_: Mapped[Optional[str]] = mapped_column("Metadata"' in source

    def test_docstrings_can_be_disabled(self, shop_document: IntermediateSchemaDocument) -> None:
        gen = TemplateGenerator(GenerationConfig(generate_docstrings=False))
        source = gen.generate_entity(shop_document.get_entity("Category"), shop_document)
        assert _is_valid_python(source)
        assert '"""Row of Categories."""' not in source

    def test_output_is_deterministic(
        self, config: GenerationConfig, sales_document: IntermediateSchemaDocument
    ) -> None:
        gen = TemplateGenerator(config)
        entity = sales_document.get_entity("Order", "sales")
        assert gen.generate_entity(entity, sales_document) == gen.generate_entity(
            entity, sales_document
        )


# ===========================================================================
# View modules
# ===========================================================================


class TestViewGeneration:
    """Frozen read-only projections."""

    def test_reference_view(self, config: GenerationConfig, views_registry_path) -> None:
        view = load_view_registry(views_registry_path)[0]
        source = TemplateGenerator(config).generate_view(view)
        assert _is_valid_python(source), f"Generated view is not valid Python:\n{source}"
        assert _class_names(source) == ["ProductSalesView", "ProductSalesViewParameters"]
        assert "frozen=True" in source
        assert '__sql_file__: ClassVar[str] = "sql/views/ProductSalesView.sql"' in source
        assert 'product_id: int = Field(alias="ProductId")' in source
        assert 'top_n: int = Field(default=10, alias="TopN")' in source

    def test_view_has_no_keys(self, config: GenerationConfig) -> None:
        source = TemplateGenerator(config).generate_view(_view())
        assert "primary_key" not in source
        assert "ForeignKey" not in source
        assert "id: int" in source

    def test_view_module_is_usable(self, config: GenerationConfig, monkeypatch) -> None:
        view = _view(
            result_columns=(
                ViewColumn(name="Id", logical_type="Int32", nullable=False),
                ViewColumn(name="Email", logical_type="String(255)", nullable=True),
            )
        )
        source = TemplateGenerator(config).generate_view(view)
        module = types.ModuleType("ddlgen_test_view")
        monkeypatch.setitem(sys.modules, module.__name__, module)
        exec(compile(source, "<view>", "exec"), module.__dict__)

        row = module.ActiveCustomers(Id=3, Email="a@b.c")
        assert row.id == 3
        assert row.email == "a@b.c"
        assert module.ActiveCustomers.__view_name__ == "ActiveCustomers"
        with pytest.raises(Exception):
            row.id = 4

    def test_view_named_like_an_import(self, config: GenerationConfig, monkeypatch) -> None:
        view = _view(
            name="Decimal",
            result_columns=(ViewColumn(name="Total", logical_type="Decimal(18,2)", nullable=False),),
        )
        source = TemplateGenerator(config).generate_view(view)
        assert "from decimal import Decimal as _Decimal" in source
        module = types.ModuleType("ddlgen_test_decimal_view")
        monkeypatch.setitem(sys.modules, module.__name__, module)
        exec(compile(source, "<view>", "exec"), module.__dict__)

        row = module.Decimal(Total="1.50")
        assert row.total == decimal.Decimal("1.50")

    def test_view_without_columns_fails(self, config: GenerationConfig) -> None:
        with pytest.raises(GenerationError):
            TemplateGenerator(config).generate_view(_view(result_columns=()))

    def test_bad_parameter_default_fails(self, config: GenerationConfig) -> None:
        view = _view(parameters=(ViewParameter(name="Limit", logical_type="Int32", default="ten"),))
        with pytest.raises(GenerationError) as exc_info:
            TemplateGenerator(config).generate_view(view)
        assert exc_info.value.name == "ActiveCustomers"

    def test_parameter_defaults(self, config: GenerationConfig) -> None:
        view = _view(
            parameters=(
                ViewParameter(name="since", logical_type="Date", nullable=True),
                ViewParameter(name="active", logical_type="Bool", default="1"),
                ViewParameter(name="region", logical_type="String(10)", default="EU"),
                ViewParameter(name="ratio", logical_type="Decimal(5,2)", default="0.5"),
            )
        )
        source = TemplateGenerator(config).generate_view(view)
        assert _is_valid_python(source)
        assert "since: Optional[date] = None" in source
        assert "active: bool = True" in source
        assert 'region: str = "EU"' in source
        assert 'ratio: Decimal = Decimal("0.5")' in source


# ===========================================================================
# Scaffolding & manifest
# ===========================================================================


class TestScaffolding:
    """Shared base, package __init__ files and manifest."""

    def test_base_module(self, config: GenerationConfig) -> None:
        source = TemplateGenerator(config).generate_base()
        assert _is_valid_python(source)
        assert "class Base(DeclarativeBase):" in source

    def test_package_init(self, config: GenerationConfig) -> None:
        source = TemplateGenerator(config).generate_package_init(
            "shop", ["from .base import Base"], ["Base"]
        )
        assert _is_valid_python(source)
        assert '__all__ = [\n    "Base",\n]' in source

    def test_module_paths(
        self, shop_document: IntermediateSchemaDocument, sales_document: IntermediateSchemaDocument
    ) -> None:
        assert entity_module_path(shop_document.get_entity("Product")) == "product.py"
        assert entity_module_path(sales_document.get_entity("Order", "sales")) == "sales/order.py"
        assert view_module_path(_view()) == "views/active_customers.py"

    def test_manual_extension_name(self, config: GenerationConfig) -> None:
        assert TemplateGenerator(config).manual_extension_name("product") == "product_ext.py"

    def test_manifest(
        self, config: GenerationConfig, shop_document: IntermediateSchemaDocument
    ) -> None:
        gen = TemplateGenerator(config)
        files = {"product.py": gen.generate_entity(shop_document.get_entity("Product"), shop_document)}
        manifest = json.loads(gen.generate_manifest(shop_document, files))
        assert manifest["package"] == "generated_models"
        assert manifest["documentVersion"] == 1
        assert [e["name"] for e in manifest["entities"]] == ["Product"]
        entry = manifest["entities"][0]
        assert entry["module"] == "generated_models.product"
        assert entry["schemaClass"] == "ProductSchema"
        assert entry["manualExtension"] == "product_ext.py"
        assert list(manifest["files"]) == ["product.py"]
        assert len(manifest["files"]["product.py"]) == 64

    def test_python_type(self, shop_document: IntermediateSchemaDocument) -> None:
        price = shop_document.get_entity("Product").get_property("Price")
        assert python_type(price.logical_type) == "Decimal"

"""
tests/conftest.py
Shared fixtures for the ddlgen test suite.

No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import logging
import pathlib
import textwrap
from typing import Iterator

import pytest
import yaml

from ddlgen.builder import MetadataBuilder
from ddlgen.models import GenerationConfig, IntermediateSchemaDocument
from ddlgen.visitor import parse_ddl


# ---------------------------------------------------------------------------
# Reference DDL
# ---------------------------------------------------------------------------

SHOP_DDL: str = textwrap.dedent(
    """\
    CREATE TABLE Categories (
        Id INT IDENTITY(1,1) PRIMARY KEY,
        Name NVARCHAR(100) NOT NULL
    );
    GO

    CREATE TABLE Products (
        Id INT IDENTITY(1,1) NOT NULL,
        Name NVARCHAR(200) NOT NULL,
        Description NVARCHAR(MAX) NULL,
        Price DECIMAL(18,2) NOT NULL,
        CategoryId INT NOT NULL,
        CONSTRAINT PK_Products PRIMARY KEY (Id),
        CONSTRAINT FK_Products_Categories FOREIGN KEY (CategoryId) REFERENCES Categories(Id)
    );
    GO
    """
)

SALES_DDL: str = textwrap.dedent(
    """\
    CREATE SCHEMA sales;
    GO

    CREATE TABLE sales.Customers (
        Id INT IDENTITY(1,1) NOT NULL PRIMARY KEY,
        Email VARCHAR(255) NOT NULL,
        IsActive BIT NOT NULL DEFAULT ((1)),
        CreatedAt DATETIME2 NOT NULL DEFAULT GETDATE()
    );

    CREATE TABLE sales.Orders (
        Id BIGINT IDENTITY(1,1) NOT NULL PRIMARY KEY,
        BillingCustomerId INT NOT NULL,
        ShippingCustomerId INT NULL,
        Total MONEY NOT NULL,
        CONSTRAINT FK_Orders_Billing FOREIGN KEY (BillingCustomerId) REFERENCES sales.Customers(Id),
        CONSTRAINT FK_Orders_Shipping FOREIGN KEY (ShippingCustomerId) REFERENCES sales.Customers(Id)
    );

    CREATE TABLE sales.Employees (
        Id INT NOT NULL PRIMARY KEY,
        FullName NVARCHAR(150) NOT NULL,
        ManagerId INT NULL REFERENCES sales.Employees(Id)
    );
    """
)

PRODUCT_SALES_SQL: str = textwrap.dedent(
    """\
    SELECT TOP (@TopN)
        p.Id AS ProductId,
        p.Name,
        SUM(oi.Quantity) AS TotalSold
    FROM Products p
    JOIN OrderItems oi ON oi.ProductId = p.Id
    GROUP BY p.Id, p.Name
    ORDER BY TotalSold DESC
    """
)


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _restore_ddlgen_logger() -> Iterator[None]:
    """The CLI reconfigures the ``ddlgen`` logger; undo it after every test."""
    root = logging.getLogger("ddlgen")
    handlers = list(root.handlers)
    level = root.level
    propagate = root.propagate
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> GenerationConfig:
    """Sequential writes keep file ordering assertions simple."""
    return GenerationConfig(app_name="shop", max_workers=1)


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def shop_document() -> IntermediateSchemaDocument:
    return MetadataBuilder(parse_ddl(SHOP_DDL).tables).build()


@pytest.fixture()
def sales_document() -> IntermediateSchemaDocument:
    return MetadataBuilder(parse_ddl(SALES_DDL).tables).build()


# ---------------------------------------------------------------------------
# File fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def shop_sql_path(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "schema.sql"
    path.write_text(SHOP_DDL, encoding="utf-8")
    return path


@pytest.fixture()
def views_registry_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """A registry with one parameterised view and its SELECT file."""
    sql_dir = tmp_path / "sql" / "views"
    sql_dir.mkdir(parents=True)
    (sql_dir / "ProductSalesView.sql").write_text(PRODUCT_SALES_SQL, encoding="utf-8")

    registry = {
        "views": [
            {
                "name": "ProductSalesView",
                "description": "Top selling products",
                "sql_file": "sql/views/ProductSalesView.sql",
                "parameters": [
                    {"name": "@TopN", "type": "int", "nullable": False, "default": "10"},
                ],
                "properties": [
                    {"name": "ProductId", "type": "int", "nullable": False},
                    {"name": "Name", "type": "string", "max_length": 200},
                    {"name": "TotalSold", "type": "long", "nullable": False},
                ],
            }
        ]
    }
    path = tmp_path / "views.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(registry, fh, sort_keys=False)
    return path


# ---------------------------------------------------------------------------
# DDL text fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def shop_ddl() -> str:
    """Categories/Products with an identity key, a MAX column and one FK."""
    return SHOP_DDL


@pytest.fixture()
def sales_ddl() -> str:
    """A named schema, two FKs to one table and a self reference."""
    return SALES_DDL

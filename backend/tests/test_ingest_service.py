import pytest
from openpyxl import Workbook
from sqlalchemy import text

from bizquery.agents.sql_agent.utils.types import SemanticType
from bizquery.core.errors import NotFoundError, TableExistsError, UploadError
from bizquery.db.catalog import SqliteCatalog
from bizquery.db.sqlite import get_engine_for
from bizquery.services.ingest.ingest_service import (
    convert_value,
    delete_table,
    describe_table,
    ingest_file,
    list_table_metadata,
)
from bizquery.services.ingest.utils.names import dedupe_columns, safe_col_name, table_name_from_file


def test_csv_is_loaded_with_inferred_types(sales_csv):
    result = ingest_file(sales_csv, "sales.csv", dataset="shop")
    assert result == {
        "table_name": "sales",
        "row_count": 4,
        "error_count": 0,
        "columns": [
            {"name": "order_date", "type": "DATE"},
            {"name": "category", "type": "TEXT"},
            {"name": "product", "type": "TEXT"},
            {"name": "revenue", "type": "NUMERIC"},
            {"name": "units", "type": "INTEGER"},
        ],
    }

    engine, _ = get_engine_for("shop")
    with engine.begin() as conn:
        rows = conn.execute(text('SELECT order_date, revenue, units FROM "sales" ORDER BY rowid')).all()
    assert rows[0] == ("2024-01-05", 1200.5, 2)


def test_existing_table_needs_overwrite(sales_csv):
    ingest_file(sales_csv, "sales.csv", dataset="shop")
    with pytest.raises(TableExistsError):
        ingest_file(sales_csv, "sales.csv", dataset="shop")
    assert ingest_file(sales_csv, "sales.csv", dataset="shop", overwrite=True)["row_count"] == 4


@pytest.mark.parametrize("filename", ["saved_queries.csv", "tables_metadata.csv", "sqlite_stat1.csv"])
def test_reserved_table_names_are_refused(sales_csv, filename):
    with pytest.raises(UploadError):
        ingest_file(sales_csv, filename, dataset="shop")
    with pytest.raises(UploadError):
        ingest_file(sales_csv, "sales.csv", dataset="shop", table_name=filename)


def test_rows_that_do_not_convert_are_skipped(tmp_path):
    path = tmp_path / "prices.csv"
    path.write_text("item,price\npen,$5\ncup,$6.50\nmug,\"$1,200\"\nbox,n/a\n")
    result = ingest_file(path, "prices.csv")
    assert result["columns"][1] == {"name": "price", "type": "NUMERIC"}
    assert result["row_count"] == 3
    assert result["error_count"] == 1


def test_excel_first_sheet(tmp_path):
    import datetime as dt

    wb = Workbook()
    ws = wb.active
    ws.append(["Order Date", "Amount"])
    ws.append([dt.datetime(2024, 1, 5), 10.5])
    ws.append([dt.datetime(2024, 2, 7), 20])
    path = tmp_path / "Q1 Orders.xlsx"
    wb.save(path)

    result = ingest_file(path, "Q1 Orders.xlsx")
    assert result["table_name"] == "q1_orders"
    assert result["columns"] == [
        {"name": "Order Date", "type": "DATE"},
        {"name": "Amount", "type": "NUMERIC"},
    ]
    assert result["row_count"] == 2


@pytest.mark.parametrize("filename, content", [
    ("notes.txt", "a,b\n1,2\n"),
    ("empty.csv", ""),
    ("header_only.csv", "a,b\n"),
])
def test_unusable_uploads_are_rejected(tmp_path, filename, content):
    path = tmp_path / filename
    path.write_text(content)
    with pytest.raises(UploadError):
        ingest_file(path, filename)


def test_metadata_listing_and_table_lifecycle(sales_csv):
    ingest_file(sales_csv, "sales.csv", dataset="shop")

    tables = list_table_metadata("shop")
    assert [t["name"] for t in tables] == ["sales"]
    assert tables[0]["row_count"] == 4
    assert tables[0]["columns"][3] == {"name": "revenue", "type": "NUMERIC"}

    detail = describe_table("sales", "shop", sample_limit=2)
    assert len(detail["sample_rows"]) == 2
    assert detail["sample_rows"][0]["category"] == "Electronics"

    delete_table("sales", "shop")
    assert list_table_metadata("shop") == []
    with pytest.raises(NotFoundError):
        describe_table("sales", "shop")


def test_internal_tables_are_not_listed(sales_csv):
    ingest_file(sales_csv, "sales.csv", dataset="shop")
    engine, _ = get_engine_for("shop")
    with engine.begin() as conn:
        assert SqliteCatalog(conn).list_tables() == ["sales"]
    with pytest.raises(NotFoundError):
        delete_table("tables_metadata", "shop")


@pytest.mark.parametrize("value, semantic_type, expected", [
    ("", SemanticType.NUMERIC, None),
    ("$1,200.50", SemanticType.NUMERIC, 1200.5),
    ("7", SemanticType.INTEGER, 7),
    ("2024-01-05", SemanticType.DATE, "2024-01-05"),
    ("2024-01-05 10:30", SemanticType.DATE, "2024-01-05T10:30:00"),
    (" West ", SemanticType.TEXT, "West"),
])
def test_convert_value(value, semantic_type, expected):
    assert convert_value(value, semantic_type) == expected


@pytest.mark.parametrize("value, semantic_type", [
    ("abc", SemanticType.NUMERIC),
    ("7.5", SemanticType.INTEGER),
    ("not a date", SemanticType.DATE),
])
def test_convert_value_failures(value, semantic_type):
    with pytest.raises(ValueError):
        convert_value(value, semantic_type)


def test_names():
    assert table_name_from_file("Q1 Sales-Report.v2.csv") == "q1_sales_report"
    assert safe_col_name("Unit Price ($)") == "Unit Price ___"
    assert dedupe_columns(["a", "b", "a", "a"]) == ["a", "b", "a_1", "a_2"]

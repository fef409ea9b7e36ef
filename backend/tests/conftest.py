from pathlib import Path
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from bizquery.agents.sql_agent.utils.schema_norm import normalize_schema
from bizquery.core.config import settings
from bizquery.main import app

SALES_CSV = """order_date,category,product,revenue,units
2024-01-05,Electronics,Laptop,1200.50,2
2024-01-20,Furniture,Desk,350.00,1
2024-02-11,Electronics,Phone,899.99,3
2024-03-02,Office,Stapler,12.00,10
"""


# Every test gets its own SQLite folder
@pytest.fixture(autouse=True)
def sqlite_folder(tmp_path: Path, monkeypatch):
    folder = tmp_path / "data"
    monkeypatch.setattr(settings, "SQLITE_FOLDER", str(folder))
    return folder


@pytest.fixture
def sales_csv(tmp_path: Path) -> Path:
    path = tmp_path / "sales.csv"
    path.write_text(SALES_CSV)
    return path


@pytest.fixture
def sales_schema():
    return normalize_schema([
        {"column_name": "order_date", "data_type": "DATE"},
        {"column_name": "category", "data_type": "TEXT"},
        {"column_name": "revenue", "data_type": "NUMERIC"},
    ])


class FakeCatalog:
    """In-memory stand-in for SqliteCatalog; records which calls were made."""

    def __init__(self, tables: Dict[str, Dict[str, Any]]):
        # {table: {"columns": [...names], "rows": [...dicts]}}
        self.tables = tables
        self.calls: List[str] = []

    def list_tables(self) -> List[str]:
        return list(self.tables)

    def table_exists(self, table: str) -> bool:
        return table in self.tables

    def columns(self, table: str) -> List[Dict[str, Any]]:
        self.calls.append(f"columns:{table}")
        return [
            {"column_name": c, "data_type": t, "is_nullable": "YES"}
            for c, t in self.tables[table]["columns"]
        ]

    def sample_rows(self, table: str, limit: int = 5) -> List[Dict[str, Any]]:
        self.calls.append(f"sample_rows:{table}")
        rows = self.tables[table].get("rows")
        if isinstance(rows, Exception):
            raise rows
        return list(rows or [])[:limit]


@pytest.fixture
def fake_llm():
    """Language model stub answering with a canned reply and keeping the prompts it saw."""

    class _Llm:
        def __init__(self):
            self.reply = ""
            self.prompts: List[List[Dict[str, str]]] = []

        def __call__(self, messages, model=None):
            self.prompts.append(messages)
            return self.reply

    return _Llm()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c

from __future__ import annotations
import json
from typing import Any, Dict, List, Optional

from bizquery.agents.sql_agent.utils.schema_norm import CanonicalSchema, normalize_schema, type_group
from bizquery.agents.sql_agent.utils.types import ColumnSchema, SemanticType, TableProfile
from bizquery.core.config import settings
from bizquery.core.errors import NoSuitableTableError


def semantic_type_of(data_type: str) -> SemanticType:
    group = type_group(data_type)
    if group == "date":
        return SemanticType.DATE
    if group == "numeric":
        return SemanticType.INTEGER if "int" in (data_type or "").lower() else SemanticType.NUMERIC
    return SemanticType.TEXT


def profile_from_catalog(table: str, catalog_columns: List[Dict[str, Any]], sample_rows: List[Dict[str, Any]]) -> TableProfile:
    cols = [
        ColumnSchema(name=c["column_name"], semantic_type=semantic_type_of(c.get("data_type")), source_hint="catalog")
        for c in catalog_columns
    ]
    return TableProfile(table_name=table, columns=cols, sample_rows=list(sample_rows))


def build_profile(catalog, table: str, limit: Optional[int] = None) -> TableProfile:
    """Fresh TableProfile from the catalog plus a bounded sample read."""
    cap = min(int(limit or settings.SAMPLE_ROWS), settings.SAMPLE_ROWS)
    cols = catalog.columns(table)
    if not cols:
        raise NoSuitableTableError(f"Table '{table}' not found or has no columns")
    return profile_from_catalog(table, cols, catalog.sample_rows(table, cap))


def load_schema(catalog, table: str) -> CanonicalSchema:
    cols = catalog.columns(table)
    if not cols:
        raise NoSuitableTableError(f"Table '{table}' not found or has no columns")
    return normalize_schema(cols)


def schema_text(schema: CanonicalSchema) -> str:
    parts: List[str] = []
    for col in schema.columns:
        extra = f" - {col.description}" if col.description else ""
        cons = f" [{', '.join(col.constraints)}]" if col.constraints else ""
        parts.append(f"{col.quoted} ({col.type}{extra}{cons})")
    return ", ".join(parts)


def sample_text(profile: TableProfile) -> str:
    return json.dumps(profile.sample_rows, indent=2, default=str)

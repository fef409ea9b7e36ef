from __future__ import annotations
import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import text

from bizquery.agents.sql_agent.utils.types import ColumnSchema, SemanticType
from bizquery.constants.sql_query import SQL_CREATE_METADATA, SQL_DELETE_METADATA, SQL_UPSERT_METADATA
from bizquery.core.errors import NotFoundError, TableExistsError, UploadError
from bizquery.db.catalog import SqliteCatalog, is_internal_table, quote_ident
from bizquery.db.sqlite import get_engine_for, safe_dataset
from bizquery.services.ingest.utils.names import dedupe_columns, safe_col_name, table_name_from_file
from bizquery.services.ingest.utils.type_infer import infer_column, is_blank, to_number

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = (".csv",)
EXCEL_EXTENSIONS = (".xlsx", ".xls")


def read_upload(path: Path, filename: str) -> pd.DataFrame:
    """CSV or first worksheet, every cell as a string ('' for blanks)."""
    name = (filename or "").lower()
    try:
        if name.endswith(CSV_EXTENSIONS):
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        elif name.endswith(EXCEL_EXTENSIONS):
            df = pd.read_excel(path, sheet_name=0, dtype=str, keep_default_na=False, engine="openpyxl")
        else:
            raise UploadError("Invalid file format. Please upload CSV or Excel files.")
    except UploadError:
        raise
    except pd.errors.EmptyDataError as e:
        raise UploadError("No data found in file") from e
    except (ValueError, OSError) as e:
        raise UploadError(f"Could not read file: {e}") from e

    if df.empty or df.shape[1] == 0:
        raise UploadError("No data found in file")
    df.columns = dedupe_columns([safe_col_name(c) for c in df.columns])
    return df


def _to_date(value: str) -> str:
    parsed = pd.to_datetime(value, errors="raise")
    if pd.isna(parsed):
        raise ValueError(f"not a date: {value!r}")
    if parsed.time() != dt.time(0, 0):
        return parsed.isoformat()
    return parsed.date().isoformat()


def convert_value(value: Any, semantic_type: SemanticType) -> Any:
    """Typed value for insert; raises ValueError when the cell doesn't fit the column type."""
    if is_blank(value):
        return None
    s = str(value).strip()
    if semantic_type == SemanticType.NUMERIC:
        n = to_number(s.replace("$", "").replace(",", ""))
        if n is None:
            raise ValueError(f"not a number: {s!r}")
        return n
    if semantic_type == SemanticType.INTEGER:
        n = to_number(s.replace(",", ""))
        if n is None or not float(n).is_integer():
            raise ValueError(f"not an integer: {s!r}")
        return int(n)
    if semantic_type == SemanticType.DATE:
        return _to_date(s)
    return s


def _create_table_sql(table: str, columns: List[ColumnSchema]) -> str:
    cols = ", ".join(f"{quote_ident(c.name)} {c.semantic_type.value}" for c in columns)
    return f"CREATE TABLE {quote_ident(table)} ({cols})"


def ingest_file(
    path: Path,
    filename: str,
    dataset: Optional[str] = None,
    table_name: Optional[str] = None,
    overwrite: bool = False,
) -> Dict[str, Any]:
    """
    Load one uploaded file into its own table of the dataset DB.

    Returns:
      { table_name, row_count, error_count, columns: [{name, type}, ...] }
    """
    df = read_upload(Path(path), filename)
    table = table_name_from_file(table_name or filename)
    if is_internal_table(table):
        raise UploadError(f"'{table}' is a reserved table name")

    columns = [infer_column(c, df[c].tolist()) for c in df.columns]
    logger.info(
        "Inferred columns for %s: %s",
        table, ", ".join(f"{c.name}={c.semantic_type.value}({c.source_hint})" for c in columns),
    )

    engine, _ = get_engine_for(dataset)
    placeholders = ", ".join(f":p{i}" for i in range(len(columns)))
    insert_sql = text(f"INSERT INTO {quote_ident(table)} VALUES ({placeholders})")

    records: List[Dict[str, Any]] = []
    error_count = 0
    for row_no, raw in enumerate(df.itertuples(index=False, name=None), start=1):
        try:
            records.append({f"p{i}": convert_value(v, c.semantic_type) for i, (v, c) in enumerate(zip(raw, columns))})
        except (ValueError, TypeError, OverflowError) as e:
            error_count += 1
            logger.warning("Skipping row %d of %s: %s", row_no, filename, e)

    with engine.begin() as conn:
        catalog = SqliteCatalog(conn)
        if catalog.table_exists(table):
            if not overwrite:
                raise TableExistsError(f"Table '{table}' already exists")
            catalog.drop_table(table)

        conn.execute(text(_create_table_sql(table, columns)))
        if records:
            conn.execute(insert_sql, records)

        conn.execute(SQL_CREATE_METADATA)
        conn.execute(
            SQL_UPSERT_METADATA,
            {
                "d": safe_dataset(dataset),
                "n": table,
                "c": json.dumps([c.to_dict() for c in columns]),
                "r": len(records),
            },
        )

    logger.info("Loaded %d rows into %s (%d skipped)", len(records), table, error_count)
    return {
        "table_name": table,
        "row_count": len(records),
        "error_count": error_count,
        "columns": [c.to_dict() for c in columns],
    }


def list_table_metadata(dataset: Optional[str] = None) -> List[Dict[str, Any]]:
    engine, _ = get_engine_for(dataset)
    out: List[Dict[str, Any]] = []
    with engine.begin() as conn:
        catalog = SqliteCatalog(conn)
        conn.execute(SQL_CREATE_METADATA)
        meta = {
            r["name"]: r
            for r in conn.execute(text("SELECT name, columns, row_count FROM tables_metadata")).mappings().all()
        }
        for table in catalog.list_tables():
            m = meta.get(table)
            if m is not None and m["columns"]:
                cols = json.loads(m["columns"])
            else:
                cols = [{"name": c["column_name"], "type": c["data_type"]} for c in catalog.columns(table)]
            out.append({"name": table, "columns": cols, "row_count": catalog.row_count(table)})
    return out


def delete_table(table: str, dataset: Optional[str] = None) -> None:
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        catalog = SqliteCatalog(conn)
        if table not in catalog.list_tables():
            raise NotFoundError(f"Table '{table}' not found")
        catalog.drop_table(table)
        conn.execute(SQL_CREATE_METADATA)
        conn.execute(SQL_DELETE_METADATA, {"n": table})


def describe_table(table: str, dataset: Optional[str] = None, sample_limit: int = 5) -> Dict[str, Any]:
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        catalog = SqliteCatalog(conn)
        if table not in catalog.list_tables():
            raise NotFoundError(f"Table '{table}' not found")
        return {
            "name": table,
            "columns": [{"name": c["column_name"], "type": c["data_type"]} for c in catalog.columns(table)],
            "row_count": catalog.row_count(table),
            "sample_rows": catalog.sample_rows(table, sample_limit),
        }

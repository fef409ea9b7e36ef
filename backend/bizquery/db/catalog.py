from __future__ import annotations
import logging
from typing import Any, Dict, List

import pandas as pd
from sqlalchemy import text
from sqlalchemy.engine import Connection

from bizquery.constants.pipeline_config import DEFAULT_CONFIG, PipelineConfig

logger = logging.getLogger(__name__)


def quote_ident(name: str) -> str:
    return '"' + str(name).replace('"', '""') + '"'


def is_internal_table(name: str, config: PipelineConfig = DEFAULT_CONFIG) -> bool:
    """Bookkeeping tables (metadata, saved queries, SQLite's own) are never user data."""
    lowered = (name or "").lower()
    return lowered in {t.lower() for t in config.internal_tables} or lowered.startswith("sqlite_")


def records_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame → list of row dicts with NaN/NaT turned into None."""
    if df is None or df.empty:
        return []
    clean = df.astype(object).where(pd.notna(df), None)
    return clean.to_dict(orient="records")


class SqliteCatalog:
    """Read access to the tables of one dataset database."""

    def __init__(self, conn: Connection, config: PipelineConfig = DEFAULT_CONFIG):
        self.conn = conn
        self.config = config

    def list_tables(self) -> List[str]:
        rows = self.conn.execute(
            text("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY rowid")
        ).scalars().all()
        return [r for r in rows if not is_internal_table(r, self.config)]

    def table_exists(self, table: str) -> bool:
        found = self.conn.execute(
            text("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = :n"),
            {"n": table},
        ).first()
        return found is not None

    def columns(self, table: str) -> List[Dict[str, Any]]:
        """Catalog shape: [{column_name, data_type, is_nullable}] in physical order."""
        rows = self.conn.exec_driver_sql(f"PRAGMA table_info({quote_ident(table)})").mappings().all()
        return [
            {
                "column_name": r["name"],
                "data_type": r["type"] or "TEXT",
                "is_nullable": "NO" if r["notnull"] else "YES",
            }
            for r in sorted(rows, key=lambda r: r["cid"])
        ]

    def sample_rows(self, table: str, limit: int = 5) -> List[Dict[str, Any]]:
        df = pd.read_sql_query(
            text(f"SELECT * FROM {quote_ident(table)} LIMIT :n"),
            con=self.conn,
            params={"n": int(limit)},
        )
        return records_from_frame(df)

    def row_count(self, table: str) -> int:
        return int(self.conn.execute(text(f"SELECT COUNT(*) FROM {quote_ident(table)}")).scalar() or 0)

    def drop_table(self, table: str) -> None:
        self.conn.execute(text(f"DROP TABLE IF EXISTS {quote_ident(table)}"))
        logger.info("Dropped table %s", table)

from __future__ import annotations
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from bizquery.agents.nl_agent.result_shaper import shape_result
from bizquery.constants.sql_query import (
    SQL_CREATE_SAVED_QUERIES, SQL_DELETE_SAVED_QUERY, SQL_GET_SAVED_QUERY, SQL_INSERT_SAVED_QUERY,
)
from bizquery.core.errors import InvalidRequestError, NotFoundError
from bizquery.db.sqlite import get_engine_for

logger = logging.getLogger(__name__)

SORT_COLUMNS = ("created_at", "table_name", "original_query")


def save_query(
    conn,
    table_name: str,
    original_query: str,
    sql_query: str,
    rows: List[Dict[str, Any]],
    metadata: Optional[Dict[str, Any]] = None,
) -> str:
    conn.execute(SQL_CREATE_SAVED_QUERIES)
    query_id = uuid.uuid4().hex
    conn.execute(
        SQL_INSERT_SAVED_QUERY,
        {
            "id": query_id,
            "t": table_name,
            "q": original_query,
            "s": sql_query,
            "r": json.dumps(rows, default=str),
            "m": json.dumps(metadata or {}, default=str),
            "c": datetime.now(timezone.utc).isoformat(),
        },
    )
    logger.info("Saved query %s for table %s", query_id, table_name)
    return query_id


def list_queries(
    dataset: Optional[str] = None,
    table: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> Dict[str, Any]:
    if sort_dir.lower() not in ("asc", "desc"):
        raise InvalidRequestError("Sort direction must be 'asc' or 'desc'")
    if sort_by not in SORT_COLUMNS:
        raise InvalidRequestError(f"Sort column must be one of: {', '.join(SORT_COLUMNS)}")

    where = "WHERE table_name = :t" if table else ""
    params: Dict[str, Any] = {"t": table, "lim": int(limit), "off": int(offset)}

    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        conn.execute(SQL_CREATE_SAVED_QUERIES)
        rows = conn.execute(
            text(f"""
                SELECT id, table_name, original_query, sql_query, results, created_at
                FROM saved_queries
                {where}
                ORDER BY {sort_by} {sort_dir.upper()}
                LIMIT :lim OFFSET :off
            """),
            params,
        ).mappings().all()
        total = conn.execute(text(f"SELECT COUNT(*) FROM saved_queries {where}"), params).scalar() or 0

    queries = [
        {
            "id": r["id"],
            "table_name": r["table_name"],
            "original_query": r["original_query"],
            "sql_query": r["sql_query"],
            "result_count": len(json.loads(r["results"] or "[]")),
            "created_at": r["created_at"],
        }
        for r in rows
    ]
    return {
        "success": True,
        "queries": queries,
        "pagination": {
            "total": int(total),
            "limit": int(limit),
            "offset": int(offset),
            "has_more": int(total) > int(offset) + len(queries),
        },
    }


def get_query(query_id: str, dataset: Optional[str] = None) -> Dict[str, Any]:
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        conn.execute(SQL_CREATE_SAVED_QUERIES)
        row = conn.execute(SQL_GET_SAVED_QUERY, {"id": query_id}).mappings().first()
    if row is None:
        raise NotFoundError(f"Query with ID {query_id} not found")

    results = json.loads(row["results"] or "[]")
    shaped = shape_result(row["original_query"], results)
    return {
        "success": True,
        "query": {
            "id": row["id"],
            "table_name": row["table_name"],
            "original_query": row["original_query"],
            "sql_query": row["sql_query"],
            "results": results,
            "metadata": json.loads(row["metadata"] or "{}"),
            "created_at": row["created_at"],
        },
        "answer": shaped["answer"],
        "filtered_data": results,
        "chart_data": shaped["chart_data"],
        "source": "sql",
        "query_id": row["id"],
    }


def delete_query(query_id: str, dataset: Optional[str] = None) -> Dict[str, Any]:
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        conn.execute(SQL_CREATE_SAVED_QUERIES)
        deleted = conn.execute(SQL_DELETE_SAVED_QUERY, {"id": query_id}).rowcount
    if not deleted:
        raise NotFoundError(f"Query with ID {query_id} not found")
    logger.info("Deleted saved query %s", query_id)
    return {"success": True, "message": f"Query with ID {query_id} has been deleted successfully"}

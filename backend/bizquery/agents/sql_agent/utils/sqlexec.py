from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from bizquery.core.errors import ExecutionError

logger = logging.getLogger(__name__)


def execute_query(conn, sql: str, max_rows: Optional[int] = None) -> Tuple[List[str], List[Dict[str, Any]]]:
    """Run one validated SELECT; the text goes to the driver untouched (no bind parsing)."""
    try:
        result = conn.exec_driver_sql(sql)
        columns = list(result.keys())
        fetched = result.fetchmany(max_rows) if max_rows else result.fetchall()
    except DBAPIError as e:
        detail = str(e.orig) if e.orig is not None else str(e)
        logger.error("SQL execution failed: %s | %s", detail, sql)
        raise ExecutionError(f"Error executing query: {detail}", [detail]) from e
    except SQLAlchemyError as e:
        logger.error("SQL execution failed: %s | %s", e, sql)
        raise ExecutionError(f"Error executing query: {e}", [str(e)]) from e

    rows = [dict(zip(columns, r)) for r in fetched]
    logger.info("Query executed successfully. Rows returned: %d", len(rows))
    return columns, rows

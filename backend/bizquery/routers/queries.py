# bizquery/routers/queries.py
from typing import Optional

from fastapi import APIRouter, Query

from bizquery.services.queries.saved_queries import delete_query, get_query, list_queries

router = APIRouter(prefix="/queries", tags=["queries"])


@router.get("")
def saved_queries(
    dataset: Optional[str] = Query(None),
    table: Optional[str] = Query(None, description="Only queries against this table"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc"),
):
    return list_queries(dataset, table=table, limit=limit, offset=offset, sort_by=sort_by, sort_dir=sort_dir)


@router.get("/{query_id}")
def saved_query(query_id: str, dataset: Optional[str] = Query(None)):
    return get_query(query_id, dataset)


@router.delete("/{query_id}")
def remove_query(query_id: str, dataset: Optional[str] = Query(None)):
    return delete_query(query_id, dataset)

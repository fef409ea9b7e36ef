# bizquery/routers/tables.py
from typing import Optional

from fastapi import APIRouter, Query

from bizquery.db.sqlite import safe_dataset
from bizquery.schemas.ingest import TableDetail, TablesResponse
from bizquery.services.ingest.ingest_service import delete_table, describe_table, list_table_metadata

router = APIRouter(prefix="/tables", tags=["tables"])


@router.get("", response_model=TablesResponse)
def list_tables(dataset: Optional[str] = Query(None, description="Dataset name")):
    return {"dataset": safe_dataset(dataset), "tables": list_table_metadata(dataset)}


@router.get("/{name}", response_model=TableDetail)
def get_table(
    name: str,
    dataset: Optional[str] = Query(None),
    limit: int = Query(5, ge=1, le=100, description="Sample rows to return"),
):
    return describe_table(name, dataset, sample_limit=limit)


@router.delete("/{name}")
def drop_table(name: str, dataset: Optional[str] = Query(None)):
    delete_table(name, dataset)
    return {"success": True, "message": f"Table '{name}' deleted"}

from typing import Any, Dict, List
from pydantic import BaseModel, Field


class ColumnOut(BaseModel):
    name: str
    type: str


class IngestResponse(BaseModel):
    success: bool = True
    filename: str
    dataset: str
    table_name: str
    row_count: int
    error_count: int = 0
    columns: List[ColumnOut] = Field(default_factory=list)


class TableOut(BaseModel):
    name: str
    columns: List[ColumnOut] = Field(default_factory=list)
    row_count: int = 0


class TableDetail(TableOut):
    sample_rows: List[Dict[str, Any]] = Field(default_factory=list)


class TablesResponse(BaseModel):
    success: bool = True
    dataset: str
    tables: List[TableOut] = Field(default_factory=list)

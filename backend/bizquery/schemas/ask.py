from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    query: str = Field(..., description="Natural-language question")
    dataset: Optional[str] = Field(None, description="Dataset name used during ingestion")
    table_name: Optional[str] = Field(None, description="Skip table selection and use this table")
    model: Optional[str] = Field(None, description="Model for SQL generation")


class AskResponse(BaseModel):
    success: bool = True
    query_id: Optional[str] = None
    sql_query: str
    original_query: str
    selected_table: str
    answer: str
    filtered_data: List[Dict[str, Any]] = Field(default_factory=list)
    chart_data: Optional[Dict[str, Any]] = None
    row_count: int = 0
    source: str = "sql"


class ExecuteRequest(BaseModel):
    sql: str = Field(..., description="A single read-only SELECT statement")
    dataset: Optional[str] = None


class ExecuteResponse(BaseModel):
    success: bool = True
    sql_query: str
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0

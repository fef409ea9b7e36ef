from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Tuple, TypedDict

Row = Dict[str, Any]


class SemanticType(str, Enum):
    TEXT = "TEXT"
    INTEGER = "INTEGER"
    NUMERIC = "NUMERIC"
    DATE = "DATE"


@dataclass(frozen=True)
class ColumnSchema:
    name: str
    semantic_type: SemanticType
    # name of the inference rule that decided the type
    source_hint: str = "fallback"

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.semantic_type.value}


@dataclass
class TableProfile:
    table_name: str
    columns: List[ColumnSchema]
    sample_rows: List[Row] = field(default_factory=list)


@dataclass(frozen=True)
class IntentSpec:
    name: str
    pattern: Optional[Pattern[str]] = None
    sql_hints: Tuple[str, ...] = ()
    requires_group_by: bool = False
    required_types: Tuple[str, ...] = ()


@dataclass
class SqlCandidate:
    raw_text: str
    repaired_text: str = ""
    validation_errors: List[str] = field(default_factory=list)
    applied_rules: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RelevanceScore:
    table_name: str
    score: int


class QAResult(TypedDict, total=False):
    success: bool
    query_id: Optional[str]
    sql_query: str
    original_query: str
    selected_table: str
    answer: str
    filtered_data: List[Row]
    chart_data: Optional[Dict[str, Any]]
    row_count: int
    source: str

from __future__ import annotations
import re
from typing import Any, Dict, List, Optional

from bizquery.services.ingest.utils.type_infer import to_number

# ---- Heuristics ----

_COUNT_CUES = ("how many", "count")
_SUM_CUES = ("total", "sum")
_AVG_CUES = ("average", "avg")
_TIME_LABEL_HINTS = ("month", "date", "day", "time")
_DISTRIBUTION_CUES = ("breakdown", "distribution")

MAX_CHART_ROWS = 50
NO_DATA = "No data found for your query."


def _has(text: str, cues) -> bool:
    return any(c in text for c in cues)


def _has_word(text: str, cues) -> bool:
    return any(re.search(rf"\b{re.escape(c)}s?\b", text) for c in cues)


def format_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_numeric_value(value: Any) -> bool:
    return to_number(value) is not None


# ---- Answer ----

def synthesize_answer(question: str, rows: List[Dict[str, Any]]) -> str:
    """One-line answer picked from lexical cues in the question (superlatives use the plain form)."""
    if not rows:
        return NO_DATA
    if len(rows) == 1 and len(rows[0]) == 1:
        q = (question or "").lower()
        key, value = next(iter(rows[0].items()))
        shown = format_value(value)
        if _has_word(q, _COUNT_CUES):
            return f"Found {shown} records."
        if _has_word(q, _SUM_CUES):
            return f"The total {key} is {shown}."
        if _has_word(q, _AVG_CUES):
            return f"The average {key} is {shown}."
        return f"The {key} is {shown}."
    return f"Found {len(rows)} results."


# ---- Chart ----

def chart_type_for(question: str, label_column: str, row_count: int) -> str:
    label = label_column.lower()
    if _has(label, _TIME_LABEL_HINTS):
        return "line"
    if row_count > 10:
        return "bar"
    if row_count <= 8 and _has_word((question or "").lower(), _DISTRIBUTION_CUES):
        return "pie"
    return "bar"


def infer_chart(question: str, rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not rows or len(rows) > MAX_CHART_ROWS:
        return None
    keys = list(rows[0].keys())
    if len(keys) < 2:
        return None

    value_column = next((k for k in keys if all(is_numeric_value(r.get(k)) for r in rows)), None)
    if value_column is None:
        return None
    label_column = next(k for k in keys if k != value_column)

    return {
        "type": chart_type_for(question, label_column, len(rows)),
        "labels": [r.get(label_column) for r in rows],
        "datasets": [
            {
                "label": value_column,
                "data": [to_number(r.get(value_column)) for r in rows],
            }
        ],
    }


def shape_result(question: str, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "answer": synthesize_answer(question, rows),
        "chart_data": infer_chart(question, rows),
    }

"""
Column type inference for uploaded data.

Rules are tried in order; the first one that returns a type wins. Columns that
match no rule (or have no usable values) are TEXT. Nothing here raises on bad
input.
"""
from __future__ import annotations

import math
import datetime as dt
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

import pandas as pd

from bizquery.agents.sql_agent.utils.types import ColumnSchema, SemanticType
from bizquery.constants.pipeline_config import DEFAULT_CONFIG, PipelineConfig
from bizquery.constants.regex_constants import _CURRENCY_LIKE, _NUM_LIKE


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    return isinstance(value, str) and value.strip() == ""


def to_number(value: Any) -> Optional[float]:
    """Parse a plain number (no currency symbols); None when it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and not math.isfinite(value) else float(value)
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s or "_" in s:
        return None
    try:
        n = float(s)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def is_currency_like(value: Any) -> bool:
    if to_number(value) is not None:
        return True
    return isinstance(value, str) and bool(_CURRENCY_LIKE.match(value))


def is_plausible_date(value: Any, min_length: int = 6) -> bool:
    if isinstance(value, (dt.date, dt.datetime, pd.Timestamp)):
        return True
    if not isinstance(value, str):
        # bare numbers are never dates
        return False
    s = value.strip()
    if len(s) < min_length:
        return False
    if "$" in s:
        return False
    if _NUM_LIKE.match(s):
        return False
    try:
        parsed = pd.to_datetime(s, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return False
    return parsed is not None and not pd.isna(parsed)


@dataclass(frozen=True)
class InferenceRule:
    name: str
    decide: Callable[[str, List[Any], PipelineConfig], Optional[SemanticType]]


def _money_hint(name: str, values: List[Any], cfg: PipelineConfig) -> Optional[SemanticType]:
    lname = name.lower()
    if not any(h in lname for h in cfg.numeric_name_hints):
        return None
    hits = sum(1 for v in values if is_currency_like(v))
    return SemanticType.NUMERIC if hits / len(values) >= cfg.numeric_hint_ratio else None


def _date_values(name: str, values: List[Any], cfg: PipelineConfig) -> Optional[SemanticType]:
    hits = sum(1 for v in values if is_plausible_date(v, cfg.min_date_length))
    if hits != len(values):
        return None
    lname = name.lower()
    if any(h in lname for h in cfg.date_name_hints) or hits / len(values) > cfg.date_ratio:
        return SemanticType.DATE
    return None


def _numeric_values(name: str, values: List[Any], cfg: PipelineConfig) -> Optional[SemanticType]:
    numbers = [to_number(v) for v in values]
    if any(n is None for n in numbers):
        return None
    if all(float(n).is_integer() for n in numbers):
        return SemanticType.INTEGER
    return SemanticType.NUMERIC


INFERENCE_RULES = (
    InferenceRule("money_hint", _money_hint),
    InferenceRule("date_values", _date_values),
    InferenceRule("numeric_values", _numeric_values),
)


def infer_column(
    name: str,
    values: Sequence[Any],
    *,
    config: PipelineConfig = DEFAULT_CONFIG,
    rules: Sequence[InferenceRule] = INFERENCE_RULES,
) -> ColumnSchema:
    present = [v for v in values if not is_blank(v)]
    if not present:
        return ColumnSchema(name=name, semantic_type=SemanticType.TEXT, source_hint="empty")
    for rule in rules:
        found = rule.decide(name or "", present, config)
        if found is not None:
            return ColumnSchema(name=name, semantic_type=found, source_hint=rule.name)
    return ColumnSchema(name=name, semantic_type=SemanticType.TEXT, source_hint="fallback")


def infer_semantic_type(values: Sequence[Any], name: str = "", config: PipelineConfig = DEFAULT_CONFIG) -> SemanticType:
    return infer_column(name, values, config=config).semantic_type


def infer_schema(columns: Sequence[dict], config: PipelineConfig = DEFAULT_CONFIG) -> List[ColumnSchema]:
    """`columns` is the upload shape: [{name, rawValues}, ...]."""
    out: List[ColumnSchema] = []
    for c in columns:
        raw = c.get("rawValues", c.get("raw_values")) or []
        out.append(infer_column(str(c.get("name") or ""), list(raw), config=config))
    return out

"""
Heuristic rewrites for common business-analytics phrasing.

Each function takes SQL whose identifiers are already double-quoted and
returns the (possibly) rewritten SQL. They are best-effort: a query the
heuristics don't recognise comes back unchanged.
"""
from __future__ import annotations
import re
from typing import List, Optional

from bizquery.agents.sql_agent.utils.schema_norm import CanonicalSchema, SchemaColumn
from bizquery.agents.sql_agent.utils.sqlnorm import bare_text, segments, top_level_index
from bizquery.constants.pipeline_config import DEFAULT_CONFIG, PipelineConfig
from bizquery.constants.regex_constants import (
    _BARE_COMPARISON, _CURRENCY_LITERAL, _GROUP_BY, _GROUP_BY_MONTH, _LIMIT, _MONTH_ALIAS,
    _NUM_PHRASE, _ORDER_BY, _QUOTED_CURRENCY, _SELECT_HEAD, _SELECT_LIST, _TAIL_CLAUSE,
)


def _words_present(text: str, words) -> bool:
    return any(re.search(rf"\b{re.escape(w)}\b", text, re.I) for w in words)


def amount_column(schema: CanonicalSchema, config: PipelineConfig = DEFAULT_CONFIG) -> Optional[SchemaColumn]:
    numeric = schema.columns_of("numeric")
    for col in numeric:
        if any(h in col.name.lower() for h in config.amount_column_hints):
            return col
    return numeric[0] if numeric else None


def date_column(schema: CanonicalSchema) -> Optional[SchemaColumn]:
    dates = schema.columns_of("date")
    if dates:
        return dates[0]
    return next((c for c in schema.columns if "date" in c.name.lower()), None)


def referenced_numeric_column(sql: str, schema: CanonicalSchema) -> Optional[SchemaColumn]:
    lower = sql.lower()
    for col in schema.columns_of("numeric"):
        if col.quoted in sql or col.name.lower() in lower:
            return col
    return None


# ---------------- Currency ---------------- #

def fix_currency_literals(sql: str, schema: CanonicalSchema, config: PipelineConfig = DEFAULT_CONFIG) -> str:
    """`> $1,200` → `> 1200`; a comparison with no left operand gets the nearest numeric column.

    Dollar signs inside quotes are left alone unless the whole quoted
    text is an amount (`'$1,200'`).
    """
    if "$" not in sql:
        return sql
    fallback = amount_column(schema, config)
    if fallback is None:
        return sql

    def _plain(m: re.Match) -> str:
        return m.group(1).replace(",", "") + (m.group(2) or "")

    parts = []
    for bare, text in segments(sql):
        if bare:
            parts.append(_CURRENCY_LITERAL.sub(_plain, text))
        else:
            quoted = _QUOTED_CURRENCY.match(text)
            parts.append(quoted.group(2).replace(",", "") + (quoted.group(3) or "") if quoted else text)
    s = "".join(parts)
    numeric = schema.columns_of("numeric")

    def _attach(m: re.Match) -> str:
        before = s[: m.start()]
        nearest, pos = fallback, -1
        for col in numeric:
            at = before.rfind(col.quoted)
            if at > pos:
                nearest, pos = col, at
        return f"{m.group(1)} {nearest.quoted} {m.group(2)} {m.group(3)}"

    for m in reversed(list(_BARE_COMPARISON.finditer(bare_text(s)))):
        s = s[: m.start()] + _attach(m) + s[m.end():]
    return s


# ---------------- Month grouping ---------------- #

def fix_month_grouping(sql: str, schema: CanonicalSchema, config: PipelineConfig = DEFAULT_CONFIG) -> str:
    """`GROUP BY month` → `GROUP BY strftime('%m', "<first date column>")`, mirrored into SELECT.

    A query that already names something `month` in its select list is
    grouping by its own alias and is left as written.
    """
    masked = bare_text(sql)
    if not _words_present(masked, ("month",) + config.month_names):
        return sql
    col = date_column(schema)
    if col is None or schema.get_column("month") is not None:
        return sql
    if any(re.search(rf"\b{re.escape(fn)}\s*\(", masked, re.I) for fn in config.date_functions):
        return sql
    if not _GROUP_BY.search(masked) or not _GROUP_BY_MONTH.search(sql):
        return sql
    head = _SELECT_LIST.search(masked)
    if head and _MONTH_ALIAS.search(sql[head.start(1): head.end(1)]):
        return sql

    expr = f"strftime('%m', {col.quoted})"
    s = _GROUP_BY_MONTH.sub(f"GROUP BY {expr}", sql, 1)

    m = _SELECT_LIST.search(bare_text(s))
    select_list = s[m.start(1): m.end(1)] if m else ""
    bare_month = re.compile(r"(?<![\w\"'])month(?![\w\"'])", re.I)
    if bare_month.search(select_list):
        fixed = bare_month.sub(f'{expr} AS "Month"', select_list, 1)
        return s[: m.start(1)] + fixed + s[m.end(1):]
    if '"month"' not in select_list.lower():
        return _SELECT_HEAD.sub(lambda h: f"{h.group(0)}{expr} AS \"Month\", ", s, 1)
    return s


# ---------------- Superlatives ---------------- #

def desired_limit(question: str, default_n: int = 1) -> int:
    m = _NUM_PHRASE.search(question or "")
    return int(m.group(1)) if m else default_n


def fix_superlative_limit(
    sql: str, schema: CanonicalSchema, question: str = "", config: PipelineConfig = DEFAULT_CONFIG
) -> str:
    """Questions asking for the highest/top/most get an ORDER BY … DESC LIMIT when missing."""
    masked = bare_text(sql)
    if not _words_present(f"{question or ''} {masked}", config.superlative_cues):
        return sql
    if _LIMIT.search(masked):
        return sql

    n = desired_limit(question)
    if _ORDER_BY.search(masked):
        return f"{sql} LIMIT {n}"
    col = referenced_numeric_column(sql, schema) or (schema.columns_of("numeric") or [None])[0]
    if col is None:
        return sql
    return f"{sql} ORDER BY {col.quoted} DESC LIMIT {n}"


# ---------------- GROUP BY completion ---------------- #

def non_aggregated_columns(sql: str, schema: CanonicalSchema, config: PipelineConfig = DEFAULT_CONFIG) -> List[str]:
    m = _SELECT_LIST.search(bare_text(sql))
    if not m:
        return []
    select_list = sql[m.start(1): m.end(1)]

    funcs = "|".join(config.aggregate_functions)
    agg = re.compile(rf"\b(?:{funcs})\s*\((?:[^()]|\([^()]*\))*\)", re.I)
    prev = None
    while prev != select_list:
        prev, select_list = select_list, agg.sub(" ", select_list)
    select_list = re.sub(r'\bAS\s+(?:"(?:[^"]|"")*"|\w+)', " ", select_list, flags=re.I)

    return [c.quoted for c in schema.columns if c.quoted in select_list]


def complete_group_by(sql: str, schema: CanonicalSchema, config: PipelineConfig = DEFAULT_CONFIG) -> str:
    if _GROUP_BY.search(bare_text(sql)):
        return sql
    cols = non_aggregated_columns(sql, schema, config)
    if not cols:
        return sql
    clause = f"GROUP BY {', '.join(cols)}"
    at = top_level_index(sql, _TAIL_CLAUSE)
    if at is None:
        return f"{sql} {clause}"
    return f"{sql[:at].rstrip()} {clause} {sql[at:]}"

"""
Multi-query analysis over saved query results.

A session records which saved queries to look at and what the user asked
for. Performing it computes deterministic statistics (completeness,
outliers, value distribution, trends) from the stored rows; a language
model narrative is only added when asked for.
"""
from __future__ import annotations
import json
import logging
import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy import text

from bizquery.agents.nl_agent.result_shaper import format_value, is_numeric_value
from bizquery.agents.ollama_client import ollama_chat
from bizquery.constants.sql_query import (
    SQL_CREATE_ANALYSIS_SESSIONS, SQL_CREATE_SAVED_QUERIES, SQL_DELETE_ANALYSIS_SESSION,
    SQL_FINISH_ANALYSIS_SESSION, SQL_GET_ANALYSIS_SESSION, SQL_GET_SAVED_QUERY, SQL_INSERT_ANALYSIS_SESSION,
)
from bizquery.constants.system_analysis import SYSTEM_ANALYSIS
from bizquery.core.errors import InvalidRequestError, NotFoundError, PipelineError
from bizquery.db.sqlite import get_engine_for
from bizquery.services.ingest.utils.type_infer import to_number

logger = logging.getLogger(__name__)

LlmFn = Callable[[List[Dict[str, str]], Optional[str]], str]

TREND = "trend_analysis"
COMPARATIVE = "comparative_analysis"
PREDICTIVE = "predictive_analysis"
PATTERN = "pattern_analysis"
VALID_ANALYSIS_TYPES = (TREND, COMPARATIVE, PREDICTIVE, PATTERN)

# checked in order; the first type with a matching cue wins
_TYPE_CUES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (TREND, ("trend", "over time", "growth")),
    (COMPARATIVE, ("compare", "versus", "vs")),
    (PREDICTIVE, ("predict", "forecast", "next")),
    (PATTERN, ("pattern", "seasonal", "cycle")),
)

MIN_OUTLIER_VALUES = 6
OUTLIER_SIGMAS = 3
ANOMALY_SIGMAS = 2
STATUS_PENDING, STATUS_COMPLETED, STATUS_ERROR = "pending", "completed", "error"


def _default_llm(messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
    return ollama_chat(messages, model=model)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------- Request checks ---------------- #

def detect_analysis_type(analysis_request: str) -> str:
    request = (analysis_request or "").lower()
    for kind, cues in _TYPE_CUES:
        if any(re.search(rf"\b{re.escape(c)}\w*", request) for c in cues):
            return kind
    return TREND


def validate_analysis_request(query_ids: Any, analysis_type: Optional[str], analysis_request: Any) -> List[str]:
    errors: List[str] = []
    if not isinstance(query_ids, (list, tuple)) or not query_ids:
        errors.append("At least one query_id is required")
    if analysis_type not in VALID_ANALYSIS_TYPES:
        errors.append(f"analysis_type must be one of: {', '.join(VALID_ANALYSIS_TYPES)}")
    if not isinstance(analysis_request, str) or not analysis_request.strip():
        errors.append("analysis_request is required and must be a non-empty string")
    return errors


# ---------------- Statistics ---------------- #

def data_statistics(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Completeness, outliers and categorical value counts for a list of row dicts.

    Fields come from the first row. Completeness is the share of non-null
    cells. A numeric field with at least MIN_OUTLIER_VALUES values reports
    the rows lying more than three standard deviations from its mean.
    """
    if not rows:
        return {"count": 0, "fields": [], "completeness": 0.0, "outliers": [], "value_distribution": {}}

    fields = list(rows[0].keys())
    df = pd.DataFrame(rows, columns=fields)
    completeness = float(df.notna().to_numpy().sum()) / df.size if df.size else 0.0

    distribution: Dict[str, Dict[str, int]] = {}
    for field in fields:
        labels = [str(r.get(field)) for r in rows if isinstance(r.get(field), (str, bool))]
        distribution[field] = {str(k): int(v) for k, v in pd.Series(labels, dtype=object).value_counts().items()}

    outliers = []
    for field in fields:
        values = pd.to_numeric(df[field], errors="coerce").dropna()
        if len(values) < MIN_OUTLIER_VALUES:
            continue
        mean, std = float(values.mean()), float(values.std(ddof=0))
        flagged = int(((values - mean).abs() > OUTLIER_SIGMAS * std).sum())
        if flagged:
            outliers.append({
                "field": field,
                "count": flagged,
                "mean": round(mean, 4),
                "std_dev": round(std, 4),
                "threshold": round(OUTLIER_SIGMAS * std, 4),
            })

    return {
        "count": len(rows),
        "fields": fields,
        "completeness": round(completeness, 4),
        "outliers": outliers,
        "value_distribution": distribution,
    }


def growth_rate(current: float, reference: float) -> str:
    """`+12%` style change of `current` against `reference`."""
    if not reference:
        return "n/a"
    growth = (current - reference) / abs(reference) * 100
    return f"{'+' if growth > 0 else ''}{round(growth)}%"


def performance_status(value: float, mean: float, std_dev: float) -> str:
    if value > mean + std_dev:
        return "High"
    if value > mean:
        return "Medium"
    return "Low"


def _confidence(value: float, mean: float, std_dev: float) -> float:
    z = abs((value - mean) / std_dev) if std_dev else 0.0
    return round(min(0.95, 0.7 + z * 0.05), 2)


def _impact(value: float, mean: float) -> str:
    if not mean:
        return "high"
    deviation = (value - mean) / abs(mean)
    if deviation > 0.5:
        return "high"
    if deviation > 0.2:
        return "medium"
    return "low"


def value_and_label_columns(rows: List[Dict[str, Any]]) -> Tuple[Optional[str], Optional[str]]:
    """First all-numeric column and the first other column, like the chart picker."""
    if not rows:
        return None, None
    keys = list(rows[0].keys())
    value = next((k for k in keys if all(is_numeric_value(r.get(k)) for r in rows)), None)
    label = next((k for k in keys if k != value), None)
    return value, label


def _series(rows: List[Dict[str, Any]], value: str, label: Optional[str]) -> List[Tuple[Any, float]]:
    out = []
    for i, r in enumerate(rows, start=1):
        n = to_number(r.get(value))
        if n is not None:
            out.append((r.get(label) if label else i, n))
    return out


def analyze_trends(rows: List[Dict[str, Any]], value: Optional[str] = None, label: Optional[str] = None) -> Dict[str, Any]:
    """Leader well above average (pattern) and values beyond two standard deviations (anomalies)."""
    if value is None:
        value, label = value_and_label_columns(rows)
    patterns: List[Dict[str, Any]] = []
    anomalies: List[Dict[str, Any]] = []
    points = _series(rows, value, label) if value else []
    if len(points) < 2:
        return {"value_column": value, "patterns": patterns, "anomalies": anomalies}

    numbers = pd.Series([n for _, n in points])
    mean, std = float(numbers.mean()), float(numbers.std(ddof=0))
    if std == 0:
        return {"value_column": value, "patterns": patterns, "anomalies": anomalies}

    first_label, first = points[0]
    if first > mean + std:
        patterns.append({
            "type": "outperforming",
            "confidence": _confidence(first, mean, std),
            "description": f"{first_label} shows significantly higher {value} than average",
            "evidence": f"{format_value(first)} vs average of {round(mean)}",
        })

    for name, n in points:
        if n > mean + ANOMALY_SIGMAS * std:
            anomalies.append({
                "type": "outlier",
                "label": name,
                "value": n,
                "expected_range": f"{round(mean - std)}-{round(mean + std)}",
                "impact": _impact(n, mean),
                "status": performance_status(n, mean, std),
            })
    return {"value_column": value, "patterns": patterns, "anomalies": anomalies}


# ---------------- Per-type findings ---------------- #

def _trend_findings(queries: List[Dict[str, Any]], rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    found = analyze_trends(rows)
    points = _series(rows, found["value_column"], None) if found["value_column"] else []
    if len(points) >= 2:
        first, last = points[0][1], points[-1][1]
        found["direction"] = "increasing" if last > first else "decreasing" if last < first else "flat"
        found["overall_change"] = growth_rate(last, first)
    return found


def _comparative_findings(queries: List[Dict[str, Any]], rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    totals = []
    for q in queries:
        value, _ = value_and_label_columns(q["results"])
        total = sum(to_number(r.get(value)) or 0.0 for r in q["results"]) if value else float(len(q["results"]))
        totals.append((q, value, total))

    numbers = pd.Series([t for _, _, t in totals], dtype=float)
    mean = float(numbers.mean()) if len(numbers) else 0.0
    std = float(numbers.std(ddof=0)) if len(numbers) else 0.0
    return {
        "average": round(mean, 4),
        "comparison": [
            {
                "query_id": q["id"],
                "query": q["original_query"],
                "value_column": value,
                "total": total,
                "vs_average": growth_rate(total, mean),
                "status": performance_status(total, mean, std),
            }
            for q, value, total in totals
        ],
    }


def _predictive_findings(queries: List[Dict[str, Any]], rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    value, _ = value_and_label_columns(rows)
    points = [n for _, n in _series(rows, value, None)] if value else []
    if len(points) < 2:
        return {"value_column": value, "average_growth_rate": None, "next_value": None, "next_three": None}

    rates = [(b - a) / a for a, b in zip(points, points[1:]) if a]
    avg = sum(rates) / len(rates) if rates else 0.0
    last = points[-1]
    return {
        "value_column": value,
        "average_growth_rate": round(avg, 4),
        "next_value": round(last * (1 + avg), 2),
        "next_three": round(last * (1 + avg) ** 3, 2),
    }


def _pattern_findings(queries: List[Dict[str, Any]], rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    found = analyze_trends(rows)
    _, label = value_and_label_columns(rows)
    if label:
        counts = pd.Series([str(r.get(label)) for r in rows], dtype=object).value_counts()
        found["repeated_labels"] = {str(k): int(v) for k, v in counts.items() if v > 1}
    return found


_FINDINGS = {
    TREND: _trend_findings,
    COMPARATIVE: _comparative_findings,
    PREDICTIVE: _predictive_findings,
    PATTERN: _pattern_findings,
}


def build_analysis(
    queries: List[Dict[str, Any]],
    analysis_type: str,
    analysis_request: str,
    narrate: bool = False,
    model: Optional[str] = None,
    llm: Optional[LlmFn] = None,
) -> Dict[str, Any]:
    started = time.perf_counter()
    rows = [r for q in queries for r in q["results"]]
    stats = data_statistics(rows)
    findings = _FINDINGS[analysis_type](queries, rows)

    insights: List[str] = []
    if stats["outliers"]:
        count = sum(o["count"] for o in stats["outliers"])
        insights.append(f"Identified {count} outliers in the data that may require further investigation.")
    for p in findings.get("patterns", []):
        insights.append(p["description"])

    narrative = None
    if narrate:
        chat = llm or _default_llm
        prompt = SYSTEM_ANALYSIS.format(
            analysis_type=analysis_type,
            queries="\n".join(f"- {q['original_query']} ({len(q['results'])} rows)" for q in queries),
            findings=json.dumps({"statistics": stats, "findings": findings}, default=str),
        )
        reply = chat([{"role": "system", "content": prompt}, {"role": "user", "content": analysis_request}], model)
        narrative = (reply or "").strip() or None

    return {
        "analysis_type": analysis_type,
        "analysis_request": analysis_request,
        "queries": [{"id": q["id"], "original_query": q["original_query"], "record_count": len(q["results"])} for q in queries],
        "insights": insights,
        "findings": findings,
        "narrative": narrative,
        "metadata": {
            "statistics": stats,
            "record_count": len(rows),
            "processing_time": f"{time.perf_counter() - started:.2f} seconds",
            "timestamp": _now(),
            "data_quality": {
                "completeness": stats["completeness"],
                "has_outliers": bool(stats["outliers"]),
            },
        },
    }


# ---------------- Sessions ---------------- #

def _load_saved_queries(conn, query_ids: Sequence[str]) -> List[Dict[str, Any]]:
    conn.execute(SQL_CREATE_SAVED_QUERIES)
    out = []
    for query_id in query_ids:
        row = conn.execute(SQL_GET_SAVED_QUERY, {"id": query_id}).mappings().first()
        if row is None:
            raise NotFoundError(f"Query with ID {query_id} not found")
        out.append({
            "id": row["id"],
            "original_query": row["original_query"],
            "results": json.loads(row["results"] or "[]"),
        })
    return out


def _session_dict(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "query_ids": json.loads(row["query_ids"] or "[]"),
        "analysis_type": row["analysis_type"],
        "analysis_request": row["analysis_request"],
        "status": row["status"],
        "results": json.loads(row["results"]) if row["results"] else None,
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def create_analysis_session(
    query_ids: Sequence[str],
    analysis_request: str,
    analysis_type: Optional[str] = None,
    dataset: Optional[str] = None,
) -> str:
    kind = analysis_type or detect_analysis_type(analysis_request if isinstance(analysis_request, str) else "")
    errors = validate_analysis_request(list(query_ids or []), kind, analysis_request)
    if errors:
        raise InvalidRequestError("Invalid analysis request", errors)

    engine, _ = get_engine_for(dataset)
    session_id = uuid.uuid4().hex
    with engine.begin() as conn:
        _load_saved_queries(conn, query_ids)
        conn.execute(SQL_CREATE_ANALYSIS_SESSIONS)
        conn.execute(
            SQL_INSERT_ANALYSIS_SESSION,
            {
                "id": session_id,
                "q": json.dumps(list(query_ids)),
                "t": kind,
                "r": analysis_request.strip(),
                "st": STATUS_PENDING,
                "c": _now(),
            },
        )
    logger.info("Created %s session %s over %d queries", kind, session_id, len(query_ids))
    return session_id


def perform_analysis(
    session_id: str,
    dataset: Optional[str] = None,
    narrate: bool = False,
    model: Optional[str] = None,
    llm: Optional[LlmFn] = None,
) -> Dict[str, Any]:
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        conn.execute(SQL_CREATE_ANALYSIS_SESSIONS)
        row = conn.execute(SQL_GET_ANALYSIS_SESSION, {"id": session_id}).mappings().first()
        if row is None:
            raise NotFoundError(f"Analysis session {session_id} not found")
        session = _session_dict(row)

    logger.info("Starting %s for session %s", session["analysis_type"], session_id)
    try:
        with engine.begin() as conn:
            queries = _load_saved_queries(conn, session["query_ids"])
        results = build_analysis(
            queries, session["analysis_type"], session["analysis_request"], narrate=narrate, model=model, llm=llm,
        )
    except PipelineError as e:
        logger.error("Analysis %s failed: %s", session_id, e.message)
        with engine.begin() as conn:
            conn.execute(
                SQL_FINISH_ANALYSIS_SESSION,
                {"id": session_id, "st": STATUS_ERROR, "r": json.dumps({"error": e.message}), "u": _now()},
            )
        raise

    with engine.begin() as conn:
        conn.execute(
            SQL_FINISH_ANALYSIS_SESSION,
            {"id": session_id, "st": STATUS_COMPLETED, "r": json.dumps(results, default=str), "u": _now()},
        )
    logger.info("Analysis %s completed in %s", session_id, results["metadata"]["processing_time"])
    return results


def run_analysis(
    query_ids: Sequence[str],
    analysis_request: str,
    analysis_type: Optional[str] = None,
    dataset: Optional[str] = None,
    narrate: bool = False,
    model: Optional[str] = None,
    llm: Optional[LlmFn] = None,
) -> Dict[str, Any]:
    session_id = create_analysis_session(query_ids, analysis_request, analysis_type, dataset)
    results = perform_analysis(session_id, dataset, narrate=narrate, model=model, llm=llm)
    return {"success": True, "session_id": session_id, "analysis_type": results["analysis_type"], "results": results}


def get_analysis(session_id: str, dataset: Optional[str] = None) -> Dict[str, Any]:
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        conn.execute(SQL_CREATE_ANALYSIS_SESSIONS)
        row = conn.execute(SQL_GET_ANALYSIS_SESSION, {"id": session_id}).mappings().first()
    if row is None:
        raise NotFoundError(f"Analysis session {session_id} not found")
    return {"success": True, "session": _session_dict(row)}


def list_analyses(dataset: Optional[str] = None, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
    """Sessions newest first, without their (possibly large) results."""
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        conn.execute(SQL_CREATE_ANALYSIS_SESSIONS)
        rows = conn.execute(
            text("""
                SELECT id, query_ids, analysis_type, analysis_request, status, NULL AS results, created_at, updated_at
                FROM analysis_sessions
                ORDER BY created_at DESC
                LIMIT :lim OFFSET :off
            """),
            {"lim": int(limit), "off": int(offset)},
        ).mappings().all()
        total = conn.execute(text("SELECT COUNT(*) FROM analysis_sessions")).scalar() or 0
    sessions = [_session_dict(r) for r in rows]
    for s in sessions:
        s.pop("results")
    return {
        "success": True,
        "sessions": sessions,
        "pagination": {
            "total": int(total),
            "limit": int(limit),
            "offset": int(offset),
            "has_more": int(total) > int(offset) + len(sessions),
        },
    }


def delete_analysis(session_id: str, dataset: Optional[str] = None) -> Dict[str, Any]:
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        conn.execute(SQL_CREATE_ANALYSIS_SESSIONS)
        deleted = conn.execute(SQL_DELETE_ANALYSIS_SESSION, {"id": session_id}).rowcount
    if not deleted:
        raise NotFoundError(f"Analysis session {session_id} not found")
    logger.info("Deleted analysis session %s", session_id)
    return {"success": True, "message": f"Analysis session {session_id} has been deleted successfully"}


def clear_history(dataset: Optional[str] = None) -> Dict[str, Any]:
    """Drop every saved query and analysis session of a dataset; uploaded tables stay."""
    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        conn.execute(SQL_CREATE_SAVED_QUERIES)
        conn.execute(SQL_CREATE_ANALYSIS_SESSIONS)
        sessions = conn.execute(text("DELETE FROM analysis_sessions")).rowcount
        queries = conn.execute(text("DELETE FROM saved_queries")).rowcount
    logger.info("Cleared %d saved queries and %d analysis sessions", queries, sessions)
    return {"success": True, "deleted_queries": int(queries), "deleted_sessions": int(sessions)}

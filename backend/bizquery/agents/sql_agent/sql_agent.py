from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from bizquery.agents.nl_agent.result_shaper import shape_result
from bizquery.agents.ollama_client import ollama_chat
from bizquery.constants.system_sql import SYSTEM_SQL
from bizquery.core.config import settings
from bizquery.core.errors import InvalidRequestError, LlmError, NoSuitableTableError, SqlRejectedError
from bizquery.db.catalog import SqliteCatalog
from bizquery.db.sqlite import get_engine_for
from bizquery.services.queries.saved_queries import save_query

# utils
from bizquery.agents.sql_agent.utils.intent import QueryIntentClassifier, intent_names, sql_hints_for
from bizquery.agents.sql_agent.utils.schema_norm import CanonicalSchema
from bizquery.agents.sql_agent.utils.schema_profile import build_profile, load_schema, sample_text, schema_text
from bizquery.agents.sql_agent.utils.sqlexec import execute_query
from bizquery.agents.sql_agent.utils.sqlextract import strip_noise
from bizquery.agents.sql_agent.utils.sqlguard import validate_sql
from bizquery.agents.sql_agent.utils.sqlrepair import SqlRepairEngine
from bizquery.agents.sql_agent.utils.table_select import TableRelevanceSelector
from bizquery.agents.sql_agent.utils.types import IntentSpec, QAResult, TableProfile

logger = logging.getLogger(__name__)

LlmFn = Callable[[List[Dict[str, str]], Optional[str]], str]


def _default_llm(messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
    return ollama_chat(messages, model=model)


def build_sql_prompt(
    question: str,
    profile: TableProfile,
    schema: CanonicalSchema,
    intents: Sequence[IntentSpec],
) -> str:
    date_cols = schema.columns_of("date")
    date_ref = date_cols[0].quoted if date_cols else ""
    hints = [h.replace("<date>", date_ref) for h in sql_hints_for(intents, schema)]

    requirements = [
        f"- {i.name}: needs {', '.join(i.required_types)} columns"
        for i in intents if i.required_types
    ]
    group_by = (
        "- Every non-aggregated column in SELECT must appear in GROUP BY"
        if any(i.requires_group_by for i in intents)
        else "- GROUP BY only when aggregating"
    )
    return SYSTEM_SQL.format(
        table=profile.table_name,
        columns=schema_text(schema),
        intents=", ".join(intent_names(intents)),
        intent_requirements="\n".join(requirements),
        group_by_requirements=group_by,
        hints="\n".join(f"- {h}" for h in hints) or "- (none)",
        samples=sample_text(profile),
        question=question,
    )


def generate_sql(prompt: str, question: str, model: Optional[str] = None, llm: Optional[LlmFn] = None) -> str:
    chat = llm or _default_llm
    raw = chat(
        [{"role": "system", "content": prompt}, {"role": "user", "content": question}],
        model,
    )
    if not (raw or "").strip():
        raise LlmError("Language model returned no SQL")
    return raw


def answer_question(
    question: str,
    dataset: Optional[str] = None,
    table_name: Optional[str] = None,
    model: Optional[str] = None,
    llm: Optional[LlmFn] = None,
) -> QAResult:
    question = (question or "").strip()
    if not question:
        raise InvalidRequestError("Query is required")

    engine, _ = get_engine_for(dataset)

    # ----- Table, schema, profile, intents -----
    with engine.begin() as conn:
        catalog = SqliteCatalog(conn)
        if table_name:
            if table_name not in catalog.list_tables():
                raise NoSuitableTableError(f"Table '{table_name}' not found")
            selected = table_name
        else:
            selector = TableRelevanceSelector(sample_limit=settings.RELEVANCE_SAMPLE_ROWS)
            selected = selector.select(question, catalog)
        profile = build_profile(catalog, selected)
        schema = load_schema(catalog, selected)

    intents = QueryIntentClassifier().classify(question, schema)
    logger.info("Answering %r against table %s (intents: %s)", question, selected, intent_names(intents))

    # ----- Generate + repair -----
    prompt = build_sql_prompt(question, profile, schema, intents)
    raw = generate_sql(prompt, question, model=model, llm=llm)
    candidate = SqlRepairEngine().repair(raw, schema, selected, intents, question=question)
    if candidate.applied_rules:
        logger.info("Applied repair rules: %s", ", ".join(candidate.applied_rules))

    # ----- Execute + persist -----
    with engine.begin() as conn:
        _, rows = execute_query(conn, candidate.repaired_text, max_rows=settings.MAX_RESULT_ROWS)
        query_id = save_query(
            conn,
            table_name=selected,
            original_query=question,
            sql_query=candidate.repaired_text,
            rows=rows,
            metadata={"intents": intent_names(intents), "repairs": candidate.applied_rules},
        )

    shaped = shape_result(question, rows)
    return {
        "success": True,
        "query_id": query_id,
        "sql_query": candidate.repaired_text,
        "original_query": question,
        "selected_table": selected,
        "answer": shaped["answer"],
        "filtered_data": rows,
        "chart_data": shaped["chart_data"],
        "row_count": len(rows),
        "source": "sql",
    }


def execute_raw(sql: str, dataset: Optional[str] = None) -> Dict[str, Any]:
    """Run caller-supplied SQL after stripping and the safety gate; no rewriting."""
    cleaned = strip_noise(sql or "")
    errors = validate_sql(cleaned)
    if errors:
        logger.warning("Raw SQL rejected (%s): %s", "; ".join(errors), cleaned)
        raise SqlRejectedError(errors, sql=cleaned)

    engine, _ = get_engine_for(dataset)
    with engine.begin() as conn:
        _, rows = execute_query(conn, cleaned, max_rows=settings.MAX_RESULT_ROWS)
    return {"success": True, "sql_query": cleaned, "rows": rows, "row_count": len(rows)}

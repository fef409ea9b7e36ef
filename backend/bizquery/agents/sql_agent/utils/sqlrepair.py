"""
Turn raw language-model output into a safe, schema-consistent SELECT.

The engine runs an ordered list of rules. Each rule has a predicate and an
effect on the candidate SQL; validation gates run after noise stripping and
again at the very end. Identifier repair has to come before the domain
heuristics (they look for quoted identifiers) and GROUP BY completion has to
come last (earlier rules add or drop SELECT columns).
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from bizquery.agents.sql_agent.utils.schema_norm import CanonicalSchema, normalize_schema
from bizquery.agents.sql_agent.utils.sqlextract import strip_noise
from bizquery.agents.sql_agent.utils.sqlfix import (
    complete_group_by, fix_currency_literals, fix_month_grouping, fix_superlative_limit,
)
from bizquery.agents.sql_agent.utils.sqlguard import validate_sql
from bizquery.agents.sql_agent.utils.sqlnorm import (
    collapse_duplicate_from, ensure_limit, normalize_to_sqlite, quote_identifiers,
    quote_table, tidy_whitespace,
)
from bizquery.agents.sql_agent.utils.types import IntentSpec, SqlCandidate
from bizquery.constants.pipeline_config import DEFAULT_CONFIG, PipelineConfig
from bizquery.core.errors import SqlRejectedError

logger = logging.getLogger(__name__)

STAGE_STRIP = "strip"
STAGE_IDENTIFIERS = "identifiers"
STAGE_DOMAIN = "domain"
STAGE_STRUCTURE = "structure"


@dataclass
class RepairContext:
    candidate: SqlCandidate
    schema: CanonicalSchema
    table_name: str
    intents: Sequence[IntentSpec]
    question: str = ""
    config: PipelineConfig = DEFAULT_CONFIG

    @property
    def sql(self) -> str:
        return self.candidate.repaired_text


@dataclass(frozen=True)
class RepairRule:
    name: str
    stage: str
    applies: Callable[[RepairContext], bool]
    apply: Callable[[RepairContext], str]
    best_effort: bool = False


def _always(ctx: RepairContext) -> bool:
    return True


def _dialect(ctx: RepairContext) -> str:
    sql, explicit_n = normalize_to_sqlite(ctx.sql)
    return ensure_limit(sql, explicit_n) if explicit_n else sql


def _needs_group_by(ctx: RepairContext) -> bool:
    return any(i.requires_group_by for i in ctx.intents)


DEFAULT_RULES = (
    RepairRule("strip_noise", STAGE_STRIP, _always, lambda ctx: strip_noise(ctx.sql)),
    RepairRule("normalize_dialect", STAGE_IDENTIFIERS, _always, _dialect),
    RepairRule("tidy_whitespace", STAGE_IDENTIFIERS, _always, lambda ctx: tidy_whitespace(ctx.sql)),
    RepairRule(
        "quote_columns", STAGE_IDENTIFIERS, _always,
        lambda ctx: quote_identifiers(ctx.sql, ctx.schema.names),
    ),
    RepairRule(
        "quote_table", STAGE_IDENTIFIERS, lambda ctx: bool(ctx.table_name),
        lambda ctx: quote_table(ctx.sql, ctx.table_name),
    ),
    RepairRule(
        "collapse_duplicate_from", STAGE_IDENTIFIERS, lambda ctx: bool(ctx.table_name),
        lambda ctx: collapse_duplicate_from(ctx.sql, ctx.table_name),
    ),
    RepairRule(
        "currency_literals", STAGE_DOMAIN, lambda ctx: "$" in ctx.sql,
        lambda ctx: fix_currency_literals(ctx.sql, ctx.schema, ctx.config),
        best_effort=True,
    ),
    RepairRule(
        "month_grouping", STAGE_DOMAIN, lambda ctx: ctx.schema.has_type("date") or "date" in " ".join(ctx.schema.names).lower(),
        lambda ctx: fix_month_grouping(ctx.sql, ctx.schema, ctx.config),
        best_effort=True,
    ),
    RepairRule(
        "superlative_limit", STAGE_DOMAIN, _always,
        lambda ctx: fix_superlative_limit(ctx.sql, ctx.schema, ctx.question, ctx.config),
        best_effort=True,
    ),
    RepairRule(
        "complete_group_by", STAGE_STRUCTURE, _needs_group_by,
        lambda ctx: complete_group_by(ctx.sql, ctx.schema, ctx.config),
    ),
)


class SqlRepairEngine:
    def __init__(self, config: PipelineConfig = DEFAULT_CONFIG, rules: Sequence[RepairRule] = DEFAULT_RULES):
        self.config = config
        self.rules = tuple(rules)

    def _run(self, ctx: RepairContext, stage: str) -> None:
        for rule in self.rules:
            if rule.stage != stage or not rule.applies(ctx):
                continue
            before = ctx.sql
            try:
                after = rule.apply(ctx)
            except Exception as e:
                if not rule.best_effort:
                    raise
                logger.warning("Repair rule %s skipped: %s", rule.name, e)
                continue
            if after != before:
                ctx.candidate.repaired_text = after
                ctx.candidate.applied_rules.append(rule.name)
                logger.debug("Repair rule %s: %r -> %r", rule.name, before, after)

    def _gate(self, ctx: RepairContext) -> None:
        errors = validate_sql(ctx.sql, self.config)
        if errors:
            ctx.candidate.validation_errors.extend(e for e in errors if e not in ctx.candidate.validation_errors)
            logger.warning("SQL rejected (%s): %s", "; ".join(errors), ctx.sql)
            raise SqlRejectedError(list(ctx.candidate.validation_errors), sql=ctx.sql)

    def repair(
        self,
        raw_text: str,
        schema: Any,
        table_name: str,
        intents: Sequence[IntentSpec] = (),
        question: Optional[str] = None,
    ) -> SqlCandidate:
        """Raises SqlRejectedError with every reason when the text can't be made safe."""
        candidate = SqlCandidate(raw_text=raw_text or "", repaired_text=raw_text or "")
        ctx = RepairContext(
            candidate=candidate,
            schema=normalize_schema(schema),
            table_name=table_name or "",
            intents=tuple(intents),
            question=question or "",
            config=self.config,
        )
        self._run(ctx, STAGE_STRIP)
        self._gate(ctx)
        for stage in (STAGE_IDENTIFIERS, STAGE_DOMAIN, STAGE_STRUCTURE):
            self._run(ctx, stage)
        self._gate(ctx)
        return candidate

    def repair_identifiers(self, sql: str, schema: Any, table_name: str) -> str:
        """Identifier stage on its own; used for re-running repairs on stored SQL."""
        candidate = SqlCandidate(raw_text=sql, repaired_text=sql)
        ctx = RepairContext(candidate=candidate, schema=normalize_schema(schema), table_name=table_name, intents=())
        self._run(ctx, STAGE_IDENTIFIERS)
        return candidate.repaired_text


def repair_sql(
    raw_text: str,
    schema: Any,
    table_name: str,
    intents: Sequence[IntentSpec] = (),
    question: Optional[str] = None,
) -> str:
    return SqlRepairEngine().repair(raw_text, schema, table_name, intents, question).repaired_text


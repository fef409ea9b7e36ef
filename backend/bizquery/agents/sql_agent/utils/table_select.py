from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from bizquery.agents.sql_agent.utils.types import RelevanceScore, Row
from bizquery.constants.pipeline_config import DEFAULT_CONFIG, PipelineConfig
from bizquery.core.errors import NoSuitableTableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringContext:
    query: str  # lower-cased
    table: str
    columns: Sequence[str]
    sample_rows: Sequence[Row]
    config: PipelineConfig


@dataclass(frozen=True)
class ScoringRule:
    name: str
    applies: Callable[[ScoringContext], bool]
    points: Callable[[ScoringContext], int]


def _table_words(ctx: ScoringContext) -> int:
    words = ctx.table.replace("_", " ").split()
    hits = [w for w in words if len(w) >= ctx.config.table_word_min_length and w.lower() in ctx.query]
    return len(hits) * ctx.config.table_word_score


def _sample_cells(ctx: ScoringContext) -> int:
    seen = set()
    for row in ctx.sample_rows:
        for val in row.values():
            if isinstance(val, str) and len(val) >= ctx.config.sample_cell_min_length:
                seen.add(val.lower())
    return sum(ctx.config.sample_cell_score for v in seen if v in ctx.query)


def _column_names(ctx: ScoringContext) -> int:
    return sum(ctx.config.column_name_score for c in ctx.columns if c and c.lower() in ctx.query)


def _business_columns(ctx: ScoringContext) -> int:
    kws = ctx.config.business_column_keywords
    return sum(ctx.config.business_column_score for c in ctx.columns if any(k in c.lower() for k in kws))


SCORING_RULES = (
    ScoringRule("table_name_words", lambda ctx: True, _table_words),
    ScoringRule("sample_cells", lambda ctx: bool(ctx.sample_rows), _sample_cells),
    ScoringRule("column_names", lambda ctx: bool(ctx.columns), _column_names),
    ScoringRule("business_columns", lambda ctx: bool(ctx.columns), _business_columns),
)


class TableRelevanceSelector:
    """Pick the table a question is about when the caller didn't name one."""

    def __init__(
        self,
        config: PipelineConfig = DEFAULT_CONFIG,
        rules: Sequence[ScoringRule] = SCORING_RULES,
        sample_limit: int = 1,
    ):
        self.config = config
        self.rules = tuple(rules)
        self.sample_limit = sample_limit

    def _read_sample(self, catalog, table: str) -> List[Row]:
        try:
            return list(catalog.sample_rows(table, self.sample_limit) or [])
        except Exception as e:
            logger.warning("Skipping sample rows for %s: %s", table, e)
            return []

    def score_table(self, query: str, table: str, catalog) -> RelevanceScore:
        columns = [c["column_name"] for c in catalog.columns(table)]
        ctx = ScoringContext(
            query=(query or "").lower(),
            table=table,
            columns=columns,
            sample_rows=self._read_sample(catalog, table),
            config=self.config,
        )
        total = sum(rule.points(ctx) for rule in self.rules if rule.applies(ctx))
        return RelevanceScore(table_name=table, score=total)

    def score_tables(self, query: str, tables: Sequence[str], catalog) -> List[RelevanceScore]:
        return [self.score_table(query, t, catalog) for t in tables]

    def select(self, query: str, catalog, tables: Optional[Sequence[str]] = None) -> str:
        names = list(tables) if tables is not None else catalog.list_tables()
        if not names:
            raise NoSuitableTableError("No data tables available in the database. Please upload data first.")

        if len(names) == 1:
            logger.info("Only one data table available, auto-selecting: %s", names[0])
            return names[0]

        scores = self.score_tables(query, names, catalog)
        logger.info("Table relevance scores: %s", {s.table_name: s.score for s in scores})

        # max() keeps the first of equal scores, i.e. catalog order
        best = max(scores, key=lambda s: s.score)
        if best.score > 0:
            logger.info("Selected most relevant table: %s (score %d)", best.table_name, best.score)
            return best.table_name

        for name in names:
            if any(k in name.lower() for k in self.config.business_table_keywords):
                logger.info("No clear relevance, using business table: %s", name)
                return name

        logger.info("No clear table relevance, using first table: %s", names[0])
        return names[0]


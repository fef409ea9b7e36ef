from __future__ import annotations
import re
from typing import List

from bizquery.agents.sql_agent.utils.sqlnorm import bare_text
from bizquery.constants.pipeline_config import DEFAULT_CONFIG, PipelineConfig
from bizquery.constants.regex_constants import _BROKEN_FROM, _FROM_CLAUSE, _START_OK

ONLY_SELECT = "Only SELECT queries are allowed"
DISALLOWED = "Query contains disallowed SQL keywords"
MISSING_FROM = "Query is missing FROM clause"
BROKEN_FROM = "Query contains syntax error with FROM clause"
UNBALANCED_DOUBLE = "Unbalanced quotes"
UNBALANCED_SINGLE = "Unbalanced single quotes"
UNBALANCED_PARENS = "Unbalanced parentheses"


def _disallowed_pattern(config: PipelineConfig) -> re.Pattern:
    words = "|".join(re.escape(k) for k in config.disallowed_keywords)
    return re.compile(rf"\b({words})\b", re.I)


def validate_sql(sql: str, config: PipelineConfig = DEFAULT_CONFIG) -> List[str]:
    """Return every safety/shape problem found; empty list means the text may run."""
    s = (sql or "").strip()
    errors: List[str] = []
    if not _START_OK.match(s):
        errors.append(ONLY_SELECT)
    if _disallowed_pattern(config).search(s) or any(t in s for t in config.disallowed_tokens):
        errors.append(DISALLOWED)
    if not _FROM_CLAUSE.search(s):
        errors.append(MISSING_FROM)
    elif _BROKEN_FROM.search(bare_text(s)):
        errors.append(BROKEN_FROM)
    if s.count('"') % 2:
        errors.append(UNBALANCED_DOUBLE)
    if s.count("'") % 2:
        errors.append(UNBALANCED_SINGLE)
    if s.count("(") != s.count(")"):
        errors.append(UNBALANCED_PARENS)
    return errors
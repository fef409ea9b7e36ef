from __future__ import annotations
from bizquery.constants.regex_constants import _SQL_FENCE, _SQL_LABEL, _THINK_TAGS
from bizquery.agents.sql_agent.utils.sqlnorm import split_statements


def strip_noise(s: str) -> str:
    """Drop reasoning tags and code fences; keep only the first statement."""
    if not s:
        return ""
    s = _THINK_TAGS.sub("", s)
    s = _SQL_FENCE.sub("", s)
    s = _SQL_LABEL.sub("", s.strip())
    statements = split_statements(s)
    return statements[0].strip() if statements else ""

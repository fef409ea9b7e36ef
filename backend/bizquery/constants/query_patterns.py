import re

from bizquery.agents.sql_agent.utils.types import IntentSpec

INTENT_CATALOG = (
    IntentSpec(
        name="aggregation",
        pattern=re.compile(r"\b(count|sum|average|mean|total|aggregate)\b", re.I),
        sql_hints=("COUNT(*)", "SUM()", "AVG()", "GROUP BY"),
        requires_group_by=True,
        required_types=("numeric",),
    ),
    IntentSpec(
        name="comparison",
        pattern=re.compile(r"\b(compare|comparison|difference|versus|vs|against|between)\b", re.I),
        sql_hints=("CASE WHEN", "WITH"),
        requires_group_by=False,
        required_types=("numeric", "date"),
    ),
    IntentSpec(
        name="trending",
        pattern=re.compile(r"\b(trends?|trending|over time|growth|decline|increase|decrease)\b", re.I),
        sql_hints=("ORDER BY", "strftime('%Y-%m', <date>)"),
        requires_group_by=True,
        required_types=("date", "numeric"),
    ),
    IntentSpec(
        name="ranking",
        pattern=re.compile(r"\b(top|bottom|highest|lowest|best|worst|most|least|ranking)\b", re.I),
        sql_hints=("ORDER BY", "LIMIT", "RANK() OVER"),
        requires_group_by=False,
        required_types=("numeric",),
    ),
    IntentSpec(
        name="distribution",
        pattern=re.compile(r"\b(distribution|breakdown|percentage|ratio|share)\b", re.I),
        sql_hints=("PERCENT_RANK() OVER", "NTILE()", "GROUP BY"),
        requires_group_by=True,
        required_types=("numeric",),
    ),
    IntentSpec(
        name="temporal",
        pattern=re.compile(r"\b(daily|weekly|monthly|yearly|quarter|year|month|day|date)\b", re.I),
        sql_hints=("strftime('%Y-%m', <date>)", "date(<date>)"),
        requires_group_by=True,
        required_types=("date",),
    ),
)

GENERAL_INTENT = IntentSpec(name="general")

from bizquery.agents.sql_agent.utils.intent import QueryIntentClassifier, intent_names, sql_hints_for
from bizquery.agents.sql_agent.utils.schema_norm import normalize_schema
from bizquery.constants.query_patterns import INTENT_CATALOG

TEXT_ONLY = normalize_schema([{"name": "region", "type": "TEXT"}])


def _names(query, schema):
    return intent_names(QueryIntentClassifier().classify(query, schema))


def test_aggregation_detected(sales_schema):
    assert _names("total revenue by category", sales_schema) == ["aggregation"]


def test_intent_needs_its_column_types():
    assert _names("total revenue by region", TEXT_ONLY) == ["general"]


def test_several_intents_in_catalog_order(sales_schema):
    assert _names("monthly revenue trend", sales_schema) == ["trending", "temporal"]


def test_ranking_detected(sales_schema):
    assert _names("top 3 categories by revenue", sales_schema) == ["ranking"]


def test_patterns_match_whole_words_only(sales_schema):
    # "counter" and "discount" must not look like aggregation
    assert _names("show the counter discount rows", sales_schema) == ["general"]


def test_general_when_nothing_matches(sales_schema):
    intents = QueryIntentClassifier().classify("show me everything", sales_schema)
    assert intent_names(intents) == ["general"]
    assert intents[0].requires_group_by is False


def test_classifier_accepts_raw_column_dicts():
    assert _names("average price", [{"name": "price", "type": "REAL"}]) == ["aggregation"]


def test_hints_drop_date_constructs_without_date_column():
    trending = next(i for i in INTENT_CATALOG if i.name == "trending")
    schema = normalize_schema([{"name": "revenue", "type": "NUMERIC"}])
    assert sql_hints_for([trending], schema) == ["ORDER BY"]


def test_hints_drop_sum_and_avg_without_numeric_column():
    aggregation = next(i for i in INTENT_CATALOG if i.name == "aggregation")
    assert sql_hints_for([aggregation], TEXT_ONLY) == ["COUNT(*)", "GROUP BY"]


def test_hints_are_deduplicated(sales_schema):
    intents = [i for i in INTENT_CATALOG if i.name in ("trending", "ranking")]
    assert sql_hints_for(intents, sales_schema) == [
        "ORDER BY", "strftime('%Y-%m', <date>)", "LIMIT", "RANK() OVER",
    ]

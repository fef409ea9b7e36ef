import pytest

from bizquery.agents.sql_agent.utils.types import SemanticType
from bizquery.services.ingest.utils.type_infer import (
    INFERENCE_RULES,
    infer_column,
    infer_schema,
    infer_semantic_type,
    is_plausible_date,
    to_number,
)


def test_money_named_column_with_currency_values_is_numeric():
    col = infer_column("TotalAmount", ["9.99", "$1200.00", "450"])
    assert col.semantic_type == SemanticType.NUMERIC
    assert col.source_hint == "money_hint"


def test_date_named_column_with_iso_values_is_date():
    assert infer_semantic_type(["2023-03-01", "2023-03-15"], name="Date") == SemanticType.DATE


def test_dates_detected_without_name_hint():
    col = infer_column("shipped", ["2024-01-05", "March 3, 2024", "2024/02/10"])
    assert col.semantic_type == SemanticType.DATE
    assert col.source_hint == "date_values"


def test_short_year_values_are_integers_not_dates():
    # four characters is below the minimum date length
    assert infer_semantic_type(["2021", "2022", "2023"], name="Year") == SemanticType.INTEGER


def test_whole_numbers_are_integer():
    col = infer_column("units", ["1", "2", "30"])
    assert col.semantic_type == SemanticType.INTEGER
    assert col.source_hint == "numeric_values"


def test_fractional_numbers_are_numeric():
    assert infer_semantic_type(["1.5", "2", "3.25"], name="ratio") == SemanticType.NUMERIC


def test_money_hint_wins_over_integer_parse():
    # rule order: the name hint is consulted before plain number parsing
    assert infer_semantic_type(["1", "2", "3"], name="quantity") == SemanticType.NUMERIC


def test_money_hint_needs_enough_currency_values():
    assert infer_semantic_type(["$5", "n/a", "unknown", "-"], name="price") == SemanticType.TEXT


def test_blank_values_are_ignored():
    assert infer_semantic_type(["", None, "7", "  "], name="count_of") == SemanticType.INTEGER


def test_all_blank_column_is_text():
    col = infer_column("notes", ["", None, "   "])
    assert col.semantic_type == SemanticType.TEXT
    assert col.source_hint == "empty"


def test_mixed_values_fall_back_to_text():
    col = infer_column("category", ["Electronics", "42", "2024-01-01"])
    assert col.semantic_type == SemanticType.TEXT
    assert col.source_hint == "fallback"


def test_rules_can_be_injected():
    numeric_only = [r for r in INFERENCE_RULES if r.name == "numeric_values"]
    col = infer_column("TotalAmount", ["9.99", "$1200.00"], rules=numeric_only)
    assert col.semantic_type == SemanticType.TEXT


def test_infer_schema_from_upload_shape():
    cols = infer_schema([
        {"name": "Date", "rawValues": ["2023-03-01", "2023-03-15"]},
        {"name": "Units", "rawValues": ["4", "5"]},
        {"name": "Region", "rawValues": ["West", "East"]},
    ])
    assert [c.to_dict() for c in cols] == [
        {"name": "Date", "type": "DATE"},
        {"name": "Units", "type": "INTEGER"},
        {"name": "Region", "type": "TEXT"},
    ]


@pytest.mark.parametrize("value", ["12345", "3.14", "$2024-01-01", "abc", 20240101])
def test_values_that_are_not_dates(value):
    assert not is_plausible_date(value)


@pytest.mark.parametrize("value, expected", [
    ("42", 42.0),
    (" 3.5 ", 3.5),
    (7, 7.0),
    (True, None),
    ("1_000", None),
    ("nan", None),
    ("$5", None),
])
def test_to_number(value, expected):
    assert to_number(value) == expected

import pytest

from bizquery.core.errors import InvalidRequestError, NotFoundError
from bizquery.db.sqlite import get_engine_for
from bizquery.services.analysis.analysis_service import (
    analyze_trends,
    clear_history,
    create_analysis_session,
    data_statistics,
    delete_analysis,
    detect_analysis_type,
    get_analysis,
    growth_rate,
    list_analyses,
    perform_analysis,
    performance_status,
    run_analysis,
    validate_analysis_request,
)
from bizquery.services.queries.saved_queries import delete_query, list_queries, save_query

MONTHLY = [
    {"month": "2024-01", "revenue": 100},
    {"month": "2024-02", "revenue": 110},
    {"month": "2024-03", "revenue": 121},
]


def _save(question, rows, table="sales"):
    engine, _ = get_engine_for(None)
    with engine.begin() as conn:
        return save_query(conn, table, question, f'SELECT * FROM "{table}"', rows)


# ---------------- Request checks ---------------- #

@pytest.mark.parametrize("request_text, expected", [
    ("show the sales trend", "trend_analysis"),
    ("compare north vs south", "comparative_analysis"),
    ("forecast next quarter", "predictive_analysis"),
    ("any seasonal patterns?", "pattern_analysis"),
    ("revenue of the canvas bags", "trend_analysis"),
])
def test_analysis_type_from_request(request_text, expected):
    assert detect_analysis_type(request_text) == expected


def test_request_problems_are_all_reported():
    errors = validate_analysis_request([], "bogus", "  ")
    assert len(errors) == 3
    assert validate_analysis_request(["q1"], "trend_analysis", "why") == []


# ---------------- Statistics ---------------- #

def test_statistics_find_outliers_beyond_three_sigma():
    rows = [{"store": f"s{i}", "sales": 10} for i in range(20)] + [{"store": "big", "sales": 1000}]
    stats = data_statistics(rows)
    assert stats["count"] == 21
    assert stats["fields"] == ["store", "sales"]
    assert stats["completeness"] == 1.0
    assert [(o["field"], o["count"]) for o in stats["outliers"]] == [("sales", 1)]
    assert stats["value_distribution"]["store"]["big"] == 1
    assert stats["value_distribution"]["sales"] == {}


def test_statistics_completeness_counts_nulls():
    stats = data_statistics([{"a": 1, "b": None}, {"a": None, "b": "x"}])
    assert stats["completeness"] == 0.5
    assert stats["outliers"] == []


def test_statistics_of_nothing():
    assert data_statistics([]) == {
        "count": 0, "fields": [], "completeness": 0.0, "outliers": [], "value_distribution": {},
    }


def test_trends_flag_the_leader_and_anomalies():
    rows = [{"product": p, "total": n} for p, n in [("A", 100), ("B", 10), ("C", 12), ("D", 11), ("E", 9), ("F", 10)]]
    found = analyze_trends(rows)
    assert found["value_column"] == "total"
    assert found["patterns"][0]["type"] == "outperforming"
    assert found["patterns"][0]["description"] == "A shows significantly higher total than average"
    assert found["patterns"][0]["evidence"] == "100 vs average of 25"
    assert [(a["label"], a["impact"], a["status"]) for a in found["anomalies"]] == [("A", "high", "High")]


def test_flat_values_have_no_trends():
    rows = [{"product": p, "total": 5} for p in "ABC"]
    assert analyze_trends(rows)["anomalies"] == []


@pytest.mark.parametrize("current, reference, expected", [(120, 100, "+20%"), (80, 100, "-20%"), (5, 0, "n/a")])
def test_growth_rate(current, reference, expected):
    assert growth_rate(current, reference) == expected


@pytest.mark.parametrize("value, expected", [(20, "High"), (12, "Medium"), (9, "Low")])
def test_performance_status(value, expected):
    assert performance_status(value, 10, 5) == expected


# ---------------- Sessions ---------------- #

def test_comparison_across_saved_queries():
    north = _save("revenue by region", [{"region": "north", "revenue": 100}, {"region": "south", "revenue": 50}])
    south = _save("revenue in the north", [{"region": "north", "revenue": 30}])

    out = run_analysis([north, south], "compare north vs south")
    assert out["analysis_type"] == "comparative_analysis"
    comparison = out["results"]["findings"]["comparison"]
    assert [(c["total"], c["vs_average"], c["status"]) for c in comparison] == [
        (150, "+67%", "Medium"),
        (30, "-67%", "Low"),
    ]
    assert out["results"]["metadata"]["record_count"] == 3
    assert out["results"]["narrative"] is None

    stored = get_analysis(out["session_id"])["session"]
    assert stored["status"] == "completed"
    assert stored["query_ids"] == [north, south]
    assert stored["results"]["findings"]["comparison"][0]["total"] == 150


def test_trend_direction_and_forecast():
    qid = _save("monthly revenue", MONTHLY)

    trend = run_analysis([qid], "how is revenue growing", analysis_type="trend_analysis")["results"]["findings"]
    assert trend["direction"] == "increasing"
    assert trend["overall_change"] == "+21%"

    forecast = run_analysis([qid], "forecast next month")["results"]["findings"]
    assert forecast["value_column"] == "revenue"
    assert forecast["average_growth_rate"] == pytest.approx(0.1)
    assert forecast["next_value"] == pytest.approx(133.1)


def test_narrative_only_when_asked(fake_llm):
    qid = _save("monthly revenue", MONTHLY)
    fake_llm.reply = "  Revenue rose every month.  "

    quiet = run_analysis([qid], "forecast next month", llm=fake_llm)
    assert quiet["results"]["narrative"] is None
    assert fake_llm.prompts == []

    told = run_analysis([qid], "forecast next month", narrate=True, llm=fake_llm)
    assert told["results"]["narrative"] == "Revenue rose every month."
    system, user = fake_llm.prompts[0]
    assert "predictive_analysis" in system["content"]
    assert "monthly revenue (3 rows)" in system["content"]
    assert user["content"] == "forecast next month"


def test_invalid_request_is_rejected():
    with pytest.raises(InvalidRequestError) as exc:
        create_analysis_session([], "   ")
    assert "At least one query_id is required" in exc.value.reasons


def test_unknown_query_creates_no_session():
    with pytest.raises(NotFoundError):
        create_analysis_session(["nope"], "show the trend")
    assert list_analyses()["pagination"]["total"] == 0


def test_session_errors_are_recorded():
    qid = _save("monthly revenue", MONTHLY)
    session_id = create_analysis_session([qid], "show the trend")
    delete_query(qid)

    with pytest.raises(NotFoundError):
        perform_analysis(session_id)
    stored = get_analysis(session_id)["session"]
    assert stored["status"] == "error"
    assert stored["results"] == {"error": f"Query with ID {qid} not found"}


def test_history_delete_and_cleanup():
    qid = _save("monthly revenue", MONTHLY)
    first = run_analysis([qid], "show the trend")["session_id"]
    run_analysis([qid], "forecast next month")

    history = list_analyses()
    assert history["pagination"]["total"] == 2
    assert "results" not in history["sessions"][0]

    delete_analysis(first)
    with pytest.raises(NotFoundError):
        get_analysis(first)
    with pytest.raises(NotFoundError):
        delete_analysis(first)

    assert clear_history() == {"success": True, "deleted_queries": 1, "deleted_sessions": 1}
    assert list_queries()["pagination"]["total"] == 0

import pytest

from conftest import SALES_CSV


@pytest.fixture
def uploaded(client):
    response = client.post(
        "/ingest/file",
        files={"file": ("sales.csv", SALES_CSV.encode(), "text/csv")},
        data={"dataset": "shop"},
    )
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def model_reply(monkeypatch, fake_llm):
    """Route the default model call to the stub."""
    monkeypatch.setattr("bizquery.agents.sql_agent.sql_agent.ollama_chat", fake_llm)
    return fake_llm


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_upload(uploaded):
    assert uploaded["table_name"] == "sales"
    assert uploaded["dataset"] == "shop"
    assert uploaded["row_count"] == 4
    assert {"name": "units", "type": "INTEGER"} in uploaded["columns"]


def test_upload_rejects_other_formats(client):
    response = client.post("/ingest/file", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 400
    assert response.json()["error"] == "UploadError"


def test_upload_cannot_replace_bookkeeping_tables(client):
    response = client.post(
        "/ingest/file",
        files={"file": ("saved_queries.csv", SALES_CSV.encode(), "text/csv")},
        data={"dataset": "shop", "overwrite": "true"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "UploadError"


def test_duplicate_upload_conflicts(client, uploaded):
    response = client.post(
        "/ingest/file",
        files={"file": ("sales.csv", SALES_CSV.encode(), "text/csv")},
        data={"dataset": "shop"},
    )
    assert response.status_code == 409


def test_tables(client, uploaded):
    listing = client.get("/tables", params={"dataset": "shop"}).json()
    assert [t["name"] for t in listing["tables"]] == ["sales"]

    detail = client.get("/tables/sales", params={"dataset": "shop"}).json()
    assert detail["row_count"] == 4
    assert len(detail["sample_rows"]) == 4

    assert client.delete("/tables/sales", params={"dataset": "shop"}).status_code == 200
    assert client.get("/tables/sales", params={"dataset": "shop"}).status_code == 404


def test_ask_and_saved_queries(client, uploaded, model_reply):
    model_reply.reply = "SELECT SUM(units) AS total_units FROM sales"
    response = client.post("/ask", json={"query": "total units sold", "dataset": "shop"})
    assert response.status_code == 200
    body = response.json()
    assert body["answer"] == "The total total_units is 16."
    assert body["selected_table"] == "sales"

    listing = client.get("/queries", params={"dataset": "shop"}).json()
    assert [q["id"] for q in listing["queries"]] == [body["query_id"]]

    saved = client.get(f"/queries/{body['query_id']}", params={"dataset": "shop"}).json()
    assert saved["answer"] == body["answer"]

    assert client.delete(f"/queries/{body['query_id']}", params={"dataset": "shop"}).status_code == 200
    missing = client.get(f"/queries/{body['query_id']}", params={"dataset": "shop"})
    assert missing.status_code == 404
    assert missing.json()["error"] == "NotFoundError"


def test_rejected_sql_response(client, uploaded, model_reply):
    model_reply.reply = "DELETE FROM sales"
    response = client.post("/ask", json={"query": "remove rows", "dataset": "shop"})
    assert response.status_code == 422
    body = response.json()
    assert body == {
        "success": False,
        "error": "SqlRejectedError",
        "message": "Generated SQL failed safety validation",
        "reasons": ["Only SELECT queries are allowed", "Query contains disallowed SQL keywords"],
    }


def test_blank_question_is_a_bad_request(client):
    response = client.post("/ask", json={"query": " "})
    assert response.status_code == 400


def test_execute(client, uploaded):
    response = client.post("/ask/execute", json={"sql": "SELECT COUNT(*) AS n FROM sales", "dataset": "shop"})
    assert response.json()["rows"] == [{"n": 4}]


def test_bad_sort_parameter(client):
    response = client.get("/queries", params={"sort_dir": "up"})
    assert response.status_code == 400


def test_analysis_endpoints(client, uploaded, model_reply, monkeypatch):
    model_reply.reply = "SELECT category, SUM(revenue) AS revenue FROM sales GROUP BY category"
    asked = client.post("/ask", json={"query": "revenue by category", "dataset": "shop"}).json()
    monkeypatch.setattr("bizquery.services.analysis.analysis_service.ollama_chat", model_reply)
    model_reply.reply = "Electronics leads."

    response = client.post("/analysis", json={
        "query_ids": [asked["query_id"]],
        "analysis_request": "compare the categories",
        "dataset": "shop",
        "narrate": True,
    })
    assert response.status_code == 200
    body = response.json()
    assert body["analysis_type"] == "comparative_analysis"
    assert body["results"]["narrative"] == "Electronics leads."

    history = client.get("/analysis/history", params={"dataset": "shop"}).json()
    assert [s["id"] for s in history["sessions"]] == [body["session_id"]]

    session = client.get(f"/analysis/{body['session_id']}", params={"dataset": "shop"}).json()
    assert session["session"]["status"] == "completed"

    assert client.delete(f"/analysis/{body['session_id']}", params={"dataset": "shop"}).status_code == 200
    assert client.get(f"/analysis/{body['session_id']}", params={"dataset": "shop"}).status_code == 404

    cleared = client.post("/analysis/cleanup", params={"dataset": "shop"}).json()
    assert cleared["deleted_queries"] == 1


def test_analysis_bad_request(client):
    response = client.post("/analysis", json={"query_ids": [], "analysis_request": "trend"})
    assert response.status_code == 400
    assert response.json()["reasons"] == ["At least one query_id is required"]


from sqlalchemy import text

SQL_CREATE_METADATA = text("""
    CREATE TABLE IF NOT EXISTS tables_metadata (
        dataset   TEXT NOT NULL,
        name      TEXT NOT NULL,
        columns   TEXT,
        row_count INTEGER,
        UNIQUE(name)
    )
""")

SQL_UPSERT_METADATA = text("""
    INSERT OR REPLACE INTO tables_metadata (dataset, name, columns, row_count)
    VALUES (:d, :n, :c, :r)
""")

SQL_DELETE_METADATA = text("DELETE FROM tables_metadata WHERE name = :n")

SQL_CREATE_SAVED_QUERIES = text("""
    CREATE TABLE IF NOT EXISTS saved_queries (
        id             TEXT PRIMARY KEY,
        table_name     TEXT NOT NULL,
        original_query TEXT NOT NULL,
        sql_query      TEXT NOT NULL,
        results        TEXT NOT NULL,
        metadata       TEXT,
        created_at     TEXT NOT NULL
    )
""")

SQL_INSERT_SAVED_QUERY = text("""
    INSERT INTO saved_queries (id, table_name, original_query, sql_query, results, metadata, created_at)
    VALUES (:id, :t, :q, :s, :r, :m, :c)
""")

SQL_GET_SAVED_QUERY = text("""
    SELECT id, table_name, original_query, sql_query, results, metadata, created_at
    FROM saved_queries
    WHERE id = :id
""")

SQL_DELETE_SAVED_QUERY = text("DELETE FROM saved_queries WHERE id = :id")

SQL_CREATE_ANALYSIS_SESSIONS = text("""
    CREATE TABLE IF NOT EXISTS analysis_sessions (
        id               TEXT PRIMARY KEY,
        query_ids        TEXT NOT NULL,
        analysis_type    TEXT NOT NULL,
        analysis_request TEXT NOT NULL,
        status           TEXT NOT NULL DEFAULT 'pending',
        results          TEXT,
        created_at       TEXT NOT NULL,
        updated_at       TEXT NOT NULL
    )
""")

SQL_INSERT_ANALYSIS_SESSION = text("""
    INSERT INTO analysis_sessions (id, query_ids, analysis_type, analysis_request, status, created_at, updated_at)
    VALUES (:id, :q, :t, :r, :st, :c, :c)
""")

SQL_GET_ANALYSIS_SESSION = text("""
    SELECT id, query_ids, analysis_type, analysis_request, status, results, created_at, updated_at
    FROM analysis_sessions
    WHERE id = :id
""")

SQL_FINISH_ANALYSIS_SESSION = text("""
    UPDATE analysis_sessions
    SET status = :st, results = :r, updated_at = :u
    WHERE id = :id
""")

SQL_DELETE_ANALYSIS_SESSION = text("DELETE FROM analysis_sessions WHERE id = :id")

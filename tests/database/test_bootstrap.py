from __future__ import annotations

from pathlib import Path

from src.event_attendance.event_attendance.database.bootstrap import _strip_create_db_and_use, iter_sql_statements

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def test_split_ignores_semicolons_inside_quotes():
    sql = "INSERT INTO t VALUES ('a;b');\nINSERT INTO t VALUES (\"c;d\");\nSELECT 1"

    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        'INSERT INTO t VALUES ("c;d")',
        "SELECT 1",
    ]


def test_split_drops_comment_lines_and_blank_statements():
    sql = "-- header\nCREATE TABLE a (id INT);\n  -- note; with semicolon\n;\nCREATE TABLE b (id INT);"

    assert list(iter_sql_statements(sql)) == ["CREATE TABLE a (id INT)", "CREATE TABLE b (id INT)"]


def test_split_keeps_escaped_quotes():
    sql = "INSERT INTO t VALUES ('it\\'s; fine');"

    assert list(iter_sql_statements(sql)) == ["INSERT INTO t VALUES ('it\\'s; fine')"]


def test_schema_creates_every_table_in_configured_database():
    sql = _strip_create_db_and_use(SCHEMA_PATH.read_text(encoding="utf-8"))
    statements = list(iter_sql_statements(sql))

    assert all(s.upper().startswith("CREATE TABLE IF NOT EXISTS") for s in statements)
    tables = [s.split()[5] for s in statements]
    assert tables == [
        "events",
        "students",
        "attendance_sessions",
        "student_event_attendance_summaries",
        "scan_logs",
    ]
    sessions_ddl = statements[2]
    assert "open_pair_key" in sessions_ddl
    assert "UNIQUE KEY uq_attendance_open_pair (open_pair_key)" in sessions_ddl

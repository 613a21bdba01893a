import sqlite3

from quizweb.db_utils import connect
from quizweb.init_db import ensure_schema, table_exists
from quizweb.migrations import run_migrations


OLD_QUESTION_TABLE = """
CREATE TABLE question (
  question_id TEXT PRIMARY KEY,
  chapter TEXT NOT NULL,
  text TEXT NOT NULL,
  time_limit_s INTEGER NOT NULL DEFAULT 30
);
INSERT INTO question (question_id, chapter, text) VALUES ('q1', 'Ch1', 'Old question');
"""


def _columns(conn, table):
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}


def test_fresh_database_gets_all_tables(conn):
    for table in ("question", "choice", "asset", "mistake"):
        assert table_exists(conn, table)
    assert run_migrations(conn) == 0


def test_old_question_table_is_migrated(db_path):
    con = connect(db_path)
    try:
        con.executescript(OLD_QUESTION_TABLE)

        applied = run_migrations(con)

        assert applied == 5
        assert {"natural_key", "source_file", "imported_at"} <= _columns(con, "question")
        row = con.execute("SELECT text, natural_key FROM question WHERE question_id='q1'").fetchone()
        assert (row["text"], row["natural_key"]) == ("Old question", None)
        assert run_migrations(con) == 0
    finally:
        con.close()


def test_natural_key_is_unique(conn):
    conn.execute(
        "INSERT INTO question (question_id, chapter, text, time_limit_s, natural_key) VALUES ('a','Ch1','A',30,'ch1::q 1')"
    )
    try:
        conn.execute(
            "INSERT INTO question (question_id, chapter, text, time_limit_s, natural_key) VALUES ('b','Ch1','B',30,'ch1::q 1')"
        )
    except sqlite3.IntegrityError:
        pass
    else:
        raise AssertionError("duplicate natural key accepted")


def test_ensure_schema_is_repeatable(conn):
    ensure_schema(conn)
    ensure_schema(conn)
    assert table_exists(conn, "mistake")

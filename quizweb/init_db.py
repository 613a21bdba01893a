import os
import sqlite3
from pathlib import Path

if __package__:
    from .db_utils import connect, ensure_db_path
    from .migrations import run_migrations
else:
    from db_utils import connect, ensure_db_path
    from migrations import run_migrations


SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


def table_exists(conn: sqlite3.Connection, name: str) -> bool:
    cur = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name=?", (name,)
    )
    return cur.fetchone() is not None


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create the tables on a fresh database, migrate an existing one."""
    if not table_exists(conn, "question"):
        conn.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
        conn.commit()
    run_migrations(conn)


def initialize_database(db_path: str) -> None:
    con = connect(db_path)
    try:
        ensure_schema(con)
    finally:
        con.close()


if __name__ == "__main__":
    db = str(ensure_db_path(os.environ.get("QUIZ_DB")))
    initialize_database(db)
    print(f"Database initialized at: {db}")

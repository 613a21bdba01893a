"""
Safe database migrations for the quiz app.
Adds missing columns and indexes without breaking existing data.
"""

import logging
import os
import sqlite3
import sys

if __package__:
    from .db_utils import connect, ensure_db_path
else:
    sys.path.insert(0, os.path.dirname(__file__))
    from db_utils import connect, ensure_db_path

logger = logging.getLogger(__name__)

# Columns added after the first release of the question table.
QUESTION_COLUMNS = {
    "natural_key": "ALTER TABLE question ADD COLUMN natural_key TEXT",
    "source_file": "ALTER TABLE question ADD COLUMN source_file TEXT",
    "imported_at": "ALTER TABLE question ADD COLUMN imported_at TEXT",
}

INDEXES = {
    "ux_question_natural_key": "CREATE UNIQUE INDEX ux_question_natural_key ON question(natural_key)",
    "ix_question_chapter": "CREATE INDEX ix_question_chapter ON question(chapter)",
}


def _columns(conn: sqlite3.Connection, table: str) -> list:
    return [row[1] for row in conn.execute(f"PRAGMA table_info({table})")]


def _indexes(conn: sqlite3.Connection) -> set:
    cur = conn.execute("SELECT name FROM sqlite_master WHERE type='index'")
    return {row[0] for row in cur.fetchall()}


def run_migrations(conn: sqlite3.Connection) -> int:
    """Run all pending migrations on an open connection; return how many ran."""
    applied = 0
    try:
        columns = _columns(conn, "question")
        for column, ddl in QUESTION_COLUMNS.items():
            if column not in columns:
                logger.info("Adding question.%s column", column)
                conn.execute(ddl)
                applied += 1

        existing = _indexes(conn)
        for name, ddl in INDEXES.items():
            if name not in existing:
                logger.info("Creating index %s", name)
                conn.execute(ddl)
                applied += 1
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise

    if applied:
        logger.info("Migration completed: %d change(s) applied", applied)
    return applied


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    connection = connect(ensure_db_path(os.environ.get("QUIZ_DB")))
    try:
        run_migrations(connection)
    finally:
        connection.close()

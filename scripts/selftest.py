"""Minimal self-test harness to verify the question bank and the quiz API."""
from __future__ import annotations

import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from quizweb.app import app, get_db  # noqa: E402
from quizweb.config import ImportConfig  # noqa: E402
from quizweb.store import check_bank  # noqa: E402


REQUIRED_TABLES = {"question", "choice", "asset", "mistake"}


def ensure_tables(conn) -> None:
    existing = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    missing = REQUIRED_TABLES - existing
    if missing:
        raise SystemExit(f"Missing tables: {', '.join(sorted(missing))}")


def main() -> None:
    config = ImportConfig.from_env()
    with app.app_context():
        conn = get_db()  # prepares the database and runs the import
        ensure_tables(conn)
        count = conn.execute("SELECT COUNT(*) FROM question").fetchone()[0]
        problems = check_bank(conn, config.asset_root)

    for problem in problems:
        print(f"[BANK] {problem}")
    if problems:
        raise SystemExit(f"Question bank has {len(problems)} problem(s).")

    with app.test_client() as client:
        response = client.get("/api/quiz")
        if response.status_code != 200:
            raise SystemExit(f"/api/quiz returned status {response.status_code}")
        leaked = [
            choice
            for question in response.get_json()
            for choice in question["choices"]
            if set(choice) != {"id", "text"}
        ]
        if leaked:
            raise SystemExit("/api/quiz exposes more than id and text for choices")

    print(f"SELFTEST OK ({count} questions)")


if __name__ == "__main__":
    main()

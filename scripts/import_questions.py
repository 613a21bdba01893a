"""Re-run the quiz text import outside of application startup.

Usage: python scripts/import_questions.py [--root DIR] [--mode upsert|replace] [--db PATH]
"""
from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from quizweb.txt_importer import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

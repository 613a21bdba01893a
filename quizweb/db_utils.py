"""Helpers for resolving and opening the SQLite database used by the app."""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional, Union

APP_ROOT = Path(__file__).resolve().parent
DEFAULT_DB_RELATIVE = Path("instance/quiz.db")


def _clean_path(value: Optional[str]) -> str:
    """Normalize an environment-provided path string."""
    if not value:
        return str(DEFAULT_DB_RELATIVE)
    cleaned = value.strip().strip('"').strip("'")
    return cleaned or str(DEFAULT_DB_RELATIVE)


def resolve_db_path(raw: Optional[str] = None) -> Path:
    """Return the absolute path to the SQLite database."""
    candidate = Path(_clean_path(raw))
    if not candidate.is_absolute():
        candidate = APP_ROOT / candidate
    return candidate


def ensure_db_path(raw: Optional[str] = None) -> Path:
    """Resolve the database path and ensure the parent directory exists."""
    path = resolve_db_path(raw)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def connect(db_path: Union[str, Path]) -> sqlite3.Connection:
    """Open a connection with dict-like rows and foreign keys enforced."""
    conn = sqlite3.connect(str(db_path), detect_types=sqlite3.PARSE_DECLTYPES)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


__all__ = ["resolve_db_path", "ensure_db_path", "connect", "DEFAULT_DB_RELATIVE"]

"""Read access to the question bank and mistake log."""
from __future__ import annotations

import random
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .reconcile import new_id


@dataclass
class ChoiceRecord:
    choice_id: str
    text: str
    is_correct: bool


@dataclass
class QuestionRecord:
    question_id: str
    chapter: str
    text: str
    time_limit: int
    choices: List[ChoiceRecord] = field(default_factory=list)
    assets: List[str] = field(default_factory=list)

    @property
    def correct_ids(self) -> set:
        return {c.choice_id for c in self.choices if c.is_correct}


def list_chapters(conn: sqlite3.Connection) -> List[str]:
    cur = conn.execute("SELECT DISTINCT chapter FROM question ORDER BY chapter")
    return [row["chapter"] for row in cur.fetchall()]


def _attach_children(conn: sqlite3.Connection, records: Dict[str, QuestionRecord]) -> None:
    if not records:
        return
    ids = tuple(records)
    placeholders = ",".join(["?"] * len(ids))
    for row in conn.execute(
        f"""
        SELECT choice_id, question_id, text, is_correct
        FROM choice
        WHERE question_id IN ({placeholders})
        ORDER BY position
        """,
        ids,
    ):
        records[row["question_id"]].choices.append(
            ChoiceRecord(row["choice_id"], row["text"], bool(row["is_correct"]))
        )
    for row in conn.execute(
        f"""
        SELECT question_id, relative_path
        FROM asset
        WHERE question_id IN ({placeholders})
        ORDER BY relative_path
        """,
        ids,
    ):
        records[row["question_id"]].assets.append(row["relative_path"])


def _records(rows: Iterable[sqlite3.Row]) -> Dict[str, QuestionRecord]:
    records: Dict[str, QuestionRecord] = {}
    for row in rows:
        records[row["question_id"]] = QuestionRecord(
            question_id=row["question_id"],
            chapter=row["chapter"],
            text=row["text"],
            time_limit=int(row["time_limit_s"]),
        )
    return records


def load_questions(conn: sqlite3.Connection, question_ids: Iterable[str]) -> Dict[str, QuestionRecord]:
    """Questions by id with choices and assets; unknown ids are left out."""
    ids = tuple(dict.fromkeys(qid for qid in question_ids if isinstance(qid, str)))
    if not ids:
        return {}
    placeholders = ",".join(["?"] * len(ids))
    cur = conn.execute(
        f"SELECT question_id, chapter, text, time_limit_s FROM question WHERE question_id IN ({placeholders})",
        ids,
    )
    records = _records(cur.fetchall())
    _attach_children(conn, records)
    return records


def load_quiz(
    conn: sqlite3.Connection,
    chapter: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """Client payload: random question order, shuffled choices, no correctness."""
    rng = rng or random.Random()
    sql = "SELECT question_id, chapter, text, time_limit_s FROM question"
    params: tuple = ()
    if chapter:
        sql += " WHERE chapter = ?"
        params = (chapter,)
    sql += " ORDER BY RANDOM()"
    rows = conn.execute(sql, params).fetchall()
    records = _records(rows)
    _attach_children(conn, records)

    payload: List[Dict[str, Any]] = []
    for row in rows:
        record = records[row["question_id"]]
        choices = [{"id": c.choice_id, "text": c.text} for c in record.choices]
        rng.shuffle(choices)
        payload.append(
            {
                "id": record.question_id,
                "text": record.text,
                "chapter": record.chapter,
                "time_limit_s": record.time_limit,
                "choices": choices,
                "assets": ["/" + path for path in record.assets],
            }
        )
    return payload


def record_mistake(
    conn: sqlite3.Connection, user_id: str, question_id: str, chosen_ids: Iterable[str]
) -> str:
    """Add a mistake row; the caller commits."""
    mistake_id = new_id()
    conn.execute(
        """
        INSERT INTO mistake (mistake_id, user_id, question_id, chosen_choice_ids, created_at)
        VALUES (?,?,?,?,?)
        """,
        (
            mistake_id,
            str(user_id),
            question_id,
            ",".join(sorted(chosen_ids)),
            datetime.now(timezone.utc).isoformat(timespec="seconds"),
        ),
    )
    return mistake_id


def list_mistakes(conn: sqlite3.Connection, user_id: str) -> List[Dict[str, Any]]:
    """A user's mistakes, newest first; questions deleted since are still listed."""
    rows = conn.execute(
        """
        SELECT m.mistake_id, m.question_id, m.chosen_choice_ids, m.created_at,
               q.text AS question, q.chapter
        FROM mistake m
        LEFT JOIN question q ON q.question_id = m.question_id
        WHERE m.user_id = ?
        ORDER BY m.created_at DESC, m.mistake_id
        """,
        (str(user_id),),
    ).fetchall()
    return [
        {
            "id": row["mistake_id"],
            "question_id": row["question_id"],
            "question": row["question"],
            "chapter": row["chapter"],
            "chosen_choice_ids": [cid for cid in (row["chosen_choice_ids"] or "").split(",") if cid],
            "created_at": row["created_at"],
        }
        for row in rows
    ]


def check_bank(conn: sqlite3.Connection, asset_root: str = "Quiz") -> List[str]:
    """Describe every stored question that breaks the bank's invariants."""
    problems: List[str] = []
    rows = conn.execute(
        """
        SELECT q.question_id, q.chapter, q.source_file,
               COUNT(c.choice_id) AS n_choices,
               IFNULL(SUM(c.is_correct), 0) AS n_correct
        FROM question q
        LEFT JOIN choice c ON c.question_id = q.question_id
        GROUP BY q.question_id
        """
    ).fetchall()
    chapters = {}
    for row in rows:
        label = f"{row['chapter']}/{row['source_file'] or row['question_id']}"
        chapters[row["question_id"]] = (row["chapter"], label)
        if row["n_choices"] < 2:
            problems.append(f"{label}: {row['n_choices']} choice(s)")
        if row["n_correct"] < 1:
            problems.append(f"{label}: no correct choice")

    root = asset_root.strip("/")
    for row in conn.execute("SELECT question_id, relative_path FROM asset"):
        chapter, label = chapters.get(row["question_id"], ("", row["question_id"]))
        path = row["relative_path"]
        prefix = f"{root}/{chapter}/" if root else f"{chapter}/"
        parts = path.split("/")
        if not path.startswith(prefix) or ".." in parts or len(parts) != prefix.count("/") + 2:
            problems.append(f"{label}: asset outside chapter folder: {path}")
    return problems


__all__ = [
    "ChoiceRecord",
    "QuestionRecord",
    "list_chapters",
    "load_questions",
    "load_quiz",
    "record_mistake",
    "list_mistakes",
    "check_bank",
]

"""
Write parsed questions of one chapter into the question bank.

Two disciplines exist and one import run uses exactly one of them for every
chapter:

``upsert``
    Questions are matched by natural key. A match is left alone when nothing
    changed, otherwise rewritten in place under its existing id. Unmatched
    drafts are inserted. Stored questions missing from the run stay as they
    are.

``replace``
    Every stored question of the chapter is deleted (choices and assets
    cascade) and all drafts are inserted with fresh ids. Mistake rows keep
    pointing at the old ids.

Each chapter is committed on its own; a database error rolls the chapter
back and surfaces as ``StoreError``.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .text_parser import ParsedQuestion

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the question bank cannot be read or written."""


def natural_key(chapter: str, source_file: str) -> str:
    """Case-insensitive identity of a question across imports."""
    stem = PurePath(source_file).stem
    return f"{chapter.strip().lower()}::{stem.strip().lower()}"


def new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class QuestionDraft:
    chapter: str
    source_file: str
    question: ParsedQuestion
    assets: Tuple[str, ...] = ()

    @property
    def natural_key(self) -> str:
        return natural_key(self.chapter, self.source_file)


@dataclass
class StoredQuestion:
    question_id: str
    natural_key: str
    chapter: str
    text: str
    time_limit: int
    choices: List[Tuple[str, str, bool]] = field(default_factory=list)
    assets: List[str] = field(default_factory=list)

    def matches(self, draft: QuestionDraft) -> bool:
        """Whether writing ``draft`` would change nothing."""
        stored_choices = sorted((text, correct) for _, text, correct in self.choices)
        draft_choices = sorted((c.text, c.is_correct) for c in draft.question.choices)
        return (
            self.chapter == draft.chapter
            and self.text == draft.question.body
            and self.time_limit == draft.question.time_limit
            and stored_choices == draft_choices
            and sorted(self.assets) == sorted(draft.assets)
        )


@dataclass
class ChapterResult:
    chapter: str
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    duplicates: List[str] = field(default_factory=list)


class ReconciliationContext:
    """Lookup state for a single import run; build one per run and drop it after."""

    def __init__(self, existing: Optional[Dict[str, StoredQuestion]] = None):
        self.existing: Dict[str, StoredQuestion] = existing or {}
        self.written_keys: Set[str] = set()
        self.wiped_chapters: Set[str] = set()

    @classmethod
    def load(cls, conn: sqlite3.Connection) -> "ReconciliationContext":
        """Read every keyed question with its choices and assets."""
        try:
            existing: Dict[str, StoredQuestion] = {}
            by_id: Dict[str, StoredQuestion] = {}
            for row in conn.execute(
                """
                SELECT question_id, natural_key, chapter, text, time_limit_s
                FROM question
                WHERE natural_key IS NOT NULL
                """
            ):
                stored = StoredQuestion(
                    question_id=row["question_id"],
                    natural_key=row["natural_key"],
                    chapter=row["chapter"],
                    text=row["text"],
                    time_limit=int(row["time_limit_s"]),
                )
                existing[stored.natural_key] = stored
                by_id[stored.question_id] = stored

            for row in conn.execute(
                "SELECT choice_id, question_id, text, is_correct FROM choice ORDER BY position"
            ):
                owner = by_id.get(row["question_id"])
                if owner is not None:
                    owner.choices.append((row["choice_id"], row["text"], bool(row["is_correct"])))

            for row in conn.execute("SELECT question_id, relative_path FROM asset"):
                owner = by_id.get(row["question_id"])
                if owner is not None:
                    owner.assets.append(row["relative_path"])
        except sqlite3.Error as exc:
            raise StoreError(f"failed to load existing questions: {exc}") from exc

        logger.debug("Loaded %d existing question(s) for reconciliation", len(existing))
        return cls(existing)

    def claim(self, draft: QuestionDraft) -> bool:
        """Reserve the draft's key for this run; False if already written."""
        key = draft.natural_key
        if key in self.written_keys:
            logger.warning(
                "Skipping %s/%s: natural key %r already imported in this run",
                draft.chapter,
                draft.source_file,
                key,
            )
            return False
        self.written_keys.add(key)
        return True


def _insert_children(
    conn: sqlite3.Connection,
    question_id: str,
    draft: QuestionDraft,
    reuse_ids: Optional[Dict[str, List[str]]] = None,
) -> None:
    for position, choice in enumerate(draft.question.choices):
        candidates = reuse_ids.get(choice.text) if reuse_ids else None
        choice_id = candidates.pop(0) if candidates else new_id()
        conn.execute(
            "INSERT INTO choice (choice_id, question_id, text, is_correct, position) VALUES (?,?,?,?,?)",
            (choice_id, question_id, choice.text, 1 if choice.is_correct else 0, position),
        )
    for path in draft.assets:
        conn.execute(
            "INSERT INTO asset (asset_id, question_id, relative_path) VALUES (?,?,?)",
            (new_id(), question_id, path),
        )


def insert_question(conn: sqlite3.Connection, draft: QuestionDraft, imported_at: str) -> str:
    question_id = new_id()
    conn.execute(
        """
        INSERT INTO question (question_id, chapter, text, time_limit_s, natural_key, source_file, imported_at)
        VALUES (?,?,?,?,?,?,?)
        """,
        (
            question_id,
            draft.chapter,
            draft.question.body,
            draft.question.time_limit,
            draft.natural_key,
            draft.source_file,
            imported_at,
        ),
    )
    _insert_children(conn, question_id, draft)
    return question_id


def update_question(
    conn: sqlite3.Connection, stored: StoredQuestion, draft: QuestionDraft, imported_at: str
) -> None:
    """Rewrite ``stored`` from ``draft`` keeping the question id.

    Choices whose text did not change keep their ids so recorded mistakes
    still resolve.
    """
    conn.execute(
        """
        UPDATE question
        SET chapter=?, text=?, time_limit_s=?, source_file=?, imported_at=?
        WHERE question_id=?
        """,
        (
            draft.chapter,
            draft.question.body,
            draft.question.time_limit,
            draft.source_file,
            imported_at,
            stored.question_id,
        ),
    )
    reuse_ids: Dict[str, List[str]] = {}
    for choice_id, text, _ in stored.choices:
        reuse_ids.setdefault(text, []).append(choice_id)

    conn.execute("DELETE FROM choice WHERE question_id=?", (stored.question_id,))
    conn.execute("DELETE FROM asset WHERE question_id=?", (stored.question_id,))
    _insert_children(conn, stored.question_id, draft, reuse_ids)


def upsert_chapter(
    conn: sqlite3.Connection,
    context: ReconciliationContext,
    chapter: str,
    drafts: Iterable[QuestionDraft],
) -> ChapterResult:
    result = ChapterResult(chapter=chapter)
    imported_at = _utcnow()
    try:
        for draft in drafts:
            if not context.claim(draft):
                result.duplicates.append(draft.source_file)
                continue
            stored = context.existing.get(draft.natural_key)
            if stored is None:
                insert_question(conn, draft, imported_at)
                result.created += 1
            elif stored.matches(draft):
                result.unchanged += 1
            else:
                update_question(conn, stored, draft, imported_at)
                result.updated += 1
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise StoreError(f"failed to store chapter {chapter!r}: {exc}") from exc
    except BaseException:
        conn.rollback()
        raise
    return result


def replace_chapter(
    conn: sqlite3.Connection,
    context: ReconciliationContext,
    chapter: str,
    drafts: Iterable[QuestionDraft],
) -> ChapterResult:
    result = ChapterResult(chapter=chapter)
    imported_at = _utcnow()
    label = chapter.strip().lower()
    wipe = label not in context.wiped_chapters
    try:
        if wipe:
            cur = conn.execute(
                "DELETE FROM question WHERE lower(trim(chapter)) = ?", (label,)
            )
            result.deleted = max(cur.rowcount, 0)
        for draft in drafts:
            if not context.claim(draft):
                result.duplicates.append(draft.source_file)
                continue
            insert_question(conn, draft, imported_at)
            result.created += 1
        conn.commit()
        if wipe:
            context.wiped_chapters.add(label)
    except sqlite3.Error as exc:
        conn.rollback()
        raise StoreError(f"failed to replace chapter {chapter!r}: {exc}") from exc
    except BaseException:
        conn.rollback()
        raise
    return result


__all__ = [
    "StoreError",
    "QuestionDraft",
    "StoredQuestion",
    "ChapterResult",
    "ReconciliationContext",
    "natural_key",
    "insert_question",
    "update_question",
    "upsert_chapter",
    "replace_chapter",
]

"""Grading of submitted quiz answers.

An answer is correct only when the chosen choice ids are exactly the
question's correct ids. Answers for unknown questions, or without any chosen
choice, are left out of the result.
"""
from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .store import QuestionRecord, load_questions, record_mistake


class PayloadError(ValueError):
    """Raised when a submission payload is malformed."""


@dataclass(frozen=True)
class Answer:
    question_id: str
    choice_ids: frozenset


@dataclass
class ScoreResult:
    total: int = 0
    correct: int = 0
    wrongs: List[Dict[str, str]] = field(default_factory=list)
    mistakes: List[Answer] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "correct": self.correct, "wrongs": self.wrongs}


def parse_answers(payload: Any) -> List[Answer]:
    """Validate ``{"answers": [{"question_id": ..., "choice_ids": [...]}]}``."""
    if not isinstance(payload, Mapping):
        raise PayloadError("payload must be a JSON object")
    raw_answers = payload.get("answers")
    if not isinstance(raw_answers, list):
        raise PayloadError("answers must be a list")

    answers: List[Answer] = []
    for idx, item in enumerate(raw_answers):
        if not isinstance(item, Mapping):
            raise PayloadError(f"answers[{idx}] must be an object")
        question_id = item.get("question_id")
        choice_ids = item.get("choice_ids") or []
        if not isinstance(question_id, str) or not question_id:
            raise PayloadError(f"answers[{idx}].question_id must be a string")
        if not isinstance(choice_ids, list) or not all(isinstance(c, str) for c in choice_ids):
            raise PayloadError(f"answers[{idx}].choice_ids must be a list of strings")
        answers.append(Answer(question_id=question_id, choice_ids=frozenset(choice_ids)))
    return answers


def _texts(question: QuestionRecord, ids: Iterable[str]) -> str:
    wanted = set(ids)
    return " | ".join(c.text for c in question.choices if c.choice_id in wanted)


def grade_answers(
    questions: Mapping[str, QuestionRecord], answers: Sequence[Answer]
) -> ScoreResult:
    result = ScoreResult()
    for answer in answers:
        question = questions.get(answer.question_id)
        if question is None or not answer.choice_ids:
            continue
        result.total += 1
        correct_ids = question.correct_ids
        if answer.choice_ids == correct_ids:
            result.correct += 1
            continue
        result.mistakes.append(answer)
        result.wrongs.append(
            {
                "question": question.text,
                "your": _texts(question, answer.choice_ids),
                "correct": _texts(question, correct_ids),
            }
        )
    return result


def score_submission(
    conn: sqlite3.Connection, answers: Sequence[Answer], user_id: Optional[str] = None
) -> ScoreResult:
    """Grade ``answers`` and log a mistake per wrong answer for ``user_id``."""
    questions = load_questions(conn, (a.question_id for a in answers))
    result = grade_answers(questions, answers)
    if user_id is not None and result.mistakes:
        try:
            for answer in result.mistakes:
                record_mistake(conn, user_id, answer.question_id, answer.choice_ids)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
    return result


__all__ = ["Answer", "PayloadError", "ScoreResult", "parse_answers", "grade_answers", "score_submission"]

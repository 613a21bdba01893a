"""
Parser for plain-text question files.

A file holds one question. Two authoring conventions exist in the question
bank and both are accepted, one per file:

Marker grammar (canonical)::

    Q: Capital of France?
    time=45
    [x] Paris
    [ ] Lyon
    - Nice

Legacy numeric grammar, where the second line is the number of choices and
every choice is followed by its flag line::

    Capital of France?
    3
    Paris
    true
    Lyon
    false
    Nice
    false

A file whose lines after the body match the numeric layout exactly (count line,
an optional extra count line, then text/flag pairs) is read by the numeric
grammar; every other file by the marker grammar. The two are never mixed in
one file. Either the file yields a complete
``ParsedQuestion`` or ``QuestionParseError`` is raised.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

DEFAULT_TIME_LIMIT = 30
MIN_TIME_LIMIT = 5
MAX_TIME_LIMIT = 300
MIN_CHOICES = 2

_BODY_PREFIX_RE = re.compile(r"^(?:q|question|frage)\s*:\s*", re.IGNORECASE)
_TIME_RE = re.compile(r"^time\s*=\s*(.*)$", re.IGNORECASE)
_CORRECT_SUFFIX_RE = re.compile(r"\s*\((?:correct|richtig)\)\s*$", re.IGNORECASE)
_BOX_RE = re.compile(r"^\[([ xX]?)\]\s*(.*)$")
_SHORTHAND_RE = re.compile(r"^([+*-])(?:\s+(.*))?$")
_INT_RE = re.compile(r"^\d+$")

_TRUE_FLAGS = {"true", "1", "yes"}
_FALSE_FLAGS = {"false", "0", "no"}


class QuestionParseError(ValueError):
    """Raised when a file cannot be turned into an importable question."""


@dataclass(frozen=True)
class ParsedChoice:
    text: str
    is_correct: bool


@dataclass(frozen=True)
class ParsedQuestion:
    body: str
    time_limit: int
    choices: Tuple[ParsedChoice, ...]
    grammar: str = "marker"

    @property
    def correct_count(self) -> int:
        return sum(1 for choice in self.choices if choice.is_correct)


def decode_question_bytes(raw: bytes) -> str:
    """Decode file content; older files were saved in Windows-1252."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("cp1252")


def _prepare_lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _parse_time_limit(value: str) -> int:
    match = re.match(r"\d+", value.strip())
    if not match:
        return DEFAULT_TIME_LIMIT
    return max(MIN_TIME_LIMIT, min(MAX_TIME_LIMIT, int(match.group(0))))


def _split_directives(lines: Sequence[str]) -> Tuple[List[str], int]:
    """Remove ``time=`` lines; the first one sets the time limit."""
    remaining: List[str] = []
    time_limit: Optional[int] = None
    for line in lines:
        match = _TIME_RE.match(line)
        if match:
            if time_limit is None:
                time_limit = _parse_time_limit(match.group(1))
            continue
        remaining.append(line)
    return remaining, DEFAULT_TIME_LIMIT if time_limit is None else time_limit


def _strip_correct_suffix(line: str) -> Tuple[str, bool]:
    stripped, found = _CORRECT_SUFFIX_RE.subn("", line)
    return stripped, bool(found)


def _classify_choice(line: str) -> ParsedChoice:
    text, forced = _strip_correct_suffix(line)
    correct = False

    box = _BOX_RE.match(text)
    shorthand = _SHORTHAND_RE.match(text)
    if box:
        correct = box.group(1) in ("x", "X")
        text = box.group(2)
    elif shorthand:
        correct = shorthand.group(1) in ("+", "*")
        text = shorthand.group(2) or ""

    text = text.strip()
    if not text:
        raise QuestionParseError(f"empty choice text in line {line!r}")
    return ParsedChoice(text=text, is_correct=correct or forced)


def _numeric_pairs(lines: Sequence[str]) -> Optional[List[Tuple[str, str]]]:
    """Choice/flag line pairs when ``lines`` follow the numeric layout, else ``None``."""
    if not lines or not _INT_RE.match(lines[0]):
        return None
    count = int(lines[0])
    rest = list(lines[1:])
    # Optional extra count line between the choice count and the pairs.
    if len(rest) == 2 * count + 1 and _INT_RE.match(rest[0]):
        rest = rest[1:]
    if len(rest) != 2 * count:
        return None
    pairs = list(zip(rest[0::2], rest[1::2]))
    if not all(flag.lower() in _TRUE_FLAGS | _FALSE_FLAGS for _, flag in pairs):
        return None
    return pairs


def _validated(
    body: str, time_limit: int, choices: Sequence[ParsedChoice], grammar: str
) -> ParsedQuestion:
    if len(choices) < MIN_CHOICES:
        raise QuestionParseError(
            f"needs at least {MIN_CHOICES} choices, found {len(choices)}"
        )
    if not any(choice.is_correct for choice in choices):
        raise QuestionParseError("no choice is marked correct")
    return ParsedQuestion(
        body=body, time_limit=time_limit, choices=tuple(choices), grammar=grammar
    )


def _parse_marker(body: str, lines: Sequence[str], time_limit: int) -> ParsedQuestion:
    choices = [_classify_choice(line) for line in lines]
    return _validated(body, time_limit, choices, "marker")


def _parse_numeric(
    body: str, pairs: Sequence[Tuple[str, str]], time_limit: int
) -> ParsedQuestion:
    choices: List[ParsedChoice] = []
    for raw_text, raw_flag in pairs:
        text, forced = _strip_correct_suffix(raw_text)
        text = text.strip()
        if not text:
            raise QuestionParseError(f"empty choice text in line {raw_text!r}")
        correct = raw_flag.lower() in _TRUE_FLAGS
        choices.append(ParsedChoice(text=text, is_correct=correct or forced))
    return _validated(body, time_limit, choices, "numeric")


def parse_question(text: str) -> ParsedQuestion:
    """Parse one question file's text.

    A file whose choice lines form the numeric layout (count line, then
    text/flag pairs) is read by the numeric grammar alone; any other file by
    the marker grammar. Raises ``QuestionParseError`` when the file is not
    importable.
    """
    lines = _prepare_lines(text)
    if not lines:
        raise QuestionParseError("file is empty")

    lines, time_limit = _split_directives(lines)
    if not lines:
        raise QuestionParseError("no question body")

    body = _BODY_PREFIX_RE.sub("", lines[0], count=1).strip()
    if not body:
        raise QuestionParseError("empty question body")

    pairs = _numeric_pairs(lines[1:])
    if pairs is not None:
        return _parse_numeric(body, pairs, time_limit)
    return _parse_marker(body, lines[1:], time_limit)


def parse_question_bytes(raw: bytes) -> ParsedQuestion:
    return parse_question(decode_question_bytes(raw))


__all__ = [
    "QuestionParseError",
    "ParsedChoice",
    "ParsedQuestion",
    "parse_question",
    "parse_question_bytes",
    "decode_question_bytes",
    "DEFAULT_TIME_LIMIT",
    "MIN_TIME_LIMIT",
    "MAX_TIME_LIMIT",
]

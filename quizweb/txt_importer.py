"""
Text file import for the quiz question bank.

Walks ``<quiz root>/<chapter>/*.txt``, parses each file, attaches images from
the chapter's image folder and reconciles the chapter with the database.
A file that cannot be read or parsed is logged and skipped; database errors
abort the run.
"""

import argparse
import logging
import os
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .asset_matcher import find_asset_dir, list_images, match_assets
from .config import DEFAULT_ASSET_DIRS, DEFAULT_EXCLUDE_FILES, IMPORT_MODES, ImportConfig
from .db_utils import connect, ensure_db_path
from .init_db import ensure_schema
from .reconcile import (
    ChapterResult,
    QuestionDraft,
    ReconciliationContext,
    StoreError,
    replace_chapter,
    upsert_chapter,
)
from .text_parser import parse_question_bytes

logger = logging.getLogger(__name__)

QUESTION_SUFFIX = ".txt"


@dataclass
class SkippedFile:
    path: str
    reason: str


@dataclass
class ImportSummary:
    chapters: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    skipped: List[SkippedFile] = field(default_factory=list)

    @property
    def imported(self) -> int:
        """Questions created or updated by the run."""
        return self.created + self.updated

    def add(self, result: ChapterResult) -> None:
        self.chapters += 1
        self.created += result.created
        self.updated += result.updated
        self.unchanged += result.unchanged
        self.deleted += result.deleted


def list_chapter_dirs(quiz_root: Path) -> List[Path]:
    return sorted(
        (entry for entry in quiz_root.iterdir() if entry.is_dir() and not entry.name.startswith(".")),
        key=lambda entry: entry.name,
    )


def list_question_files(chapter_dir: Path, exclude: Iterable[str] = DEFAULT_EXCLUDE_FILES) -> List[Path]:
    excluded = {name.lower() for name in exclude}
    return sorted(
        (
            entry
            for entry in chapter_dir.iterdir()
            if entry.is_file()
            and entry.suffix.lower() == QUESTION_SUFFIX
            and entry.name.lower() not in excluded
        ),
        key=lambda entry: entry.name,
    )


def build_draft(
    path: Path,
    chapter: str,
    images: Sequence[str],
    asset_root: str,
    asset_dir_name: Optional[str],
) -> QuestionDraft:
    parsed = parse_question_bytes(path.read_bytes())
    assets: List[str] = []
    if asset_dir_name:
        assets = match_assets(path.name, images, asset_root, chapter, asset_dir_name)
    return QuestionDraft(
        chapter=chapter, source_file=path.name, question=parsed, assets=tuple(assets)
    )


def collect_drafts(
    chapter_dir: Path,
    asset_root: str,
    exclude: Iterable[str],
    asset_dirs: Sequence[str],
    skipped: List[SkippedFile],
) -> List[QuestionDraft]:
    """Parse the chapter's question files, skipping the ones that fail.

    Raises ``OSError`` when the chapter or its image folder cannot be listed.
    """
    chapter = chapter_dir.name
    asset_dir = find_asset_dir(chapter_dir, asset_dirs)
    images = list_images(asset_dir)
    asset_dir_name = asset_dir.name if asset_dir is not None else None

    drafts: List[QuestionDraft] = []
    for path in list_question_files(chapter_dir, exclude):
        try:
            drafts.append(build_draft(path, chapter, images, asset_root, asset_dir_name))
        except (OSError, ValueError) as exc:
            # ValueError covers QuestionParseError and UnicodeDecodeError.
            logger.warning("Skipped %s: %s", path, exc)
            skipped.append(SkippedFile(path=str(path), reason=str(exc)))
            continue
        logger.debug("Parsed %s (%d assets)", path, len(drafts[-1].assets))
    return drafts


def import_questions(
    conn: sqlite3.Connection,
    quiz_root,
    asset_root: str = "Quiz",
    mode: str = "upsert",
    exclude: Iterable[str] = DEFAULT_EXCLUDE_FILES,
    asset_dirs: Sequence[str] = DEFAULT_ASSET_DIRS,
) -> ImportSummary:
    """Import every chapter below ``quiz_root``.

    ``asset_root`` is the quiz folder's path below the public web root and
    prefixes every stored image path. A missing ``quiz_root`` is not an
    error: nothing is imported. ``StoreError`` propagates.
    """
    if mode not in IMPORT_MODES:
        raise ValueError(f"Unknown import mode {mode!r}; expected one of {IMPORT_MODES}")

    summary = ImportSummary()
    root = Path(quiz_root)
    if not root.is_dir():
        logger.info("Quiz folder %s not found; nothing to import", root)
        return summary

    if mode == "upsert":
        context = ReconciliationContext.load(conn)
        reconcile = upsert_chapter
    else:
        context = ReconciliationContext()
        reconcile = replace_chapter

    for chapter_dir in list_chapter_dirs(root):
        chapter = chapter_dir.name
        try:
            drafts = collect_drafts(chapter_dir, asset_root, exclude, asset_dirs, summary.skipped)
        except OSError as exc:
            # Stored questions of the chapter stay untouched, even under replace.
            logger.warning("Skipped chapter %s: %s", chapter_dir, exc)
            summary.skipped.append(SkippedFile(path=str(chapter_dir), reason=str(exc)))
            continue
        result = reconcile(conn, context, chapter, drafts)
        for name in result.duplicates:
            summary.skipped.append(
                SkippedFile(path=str(chapter_dir / name), reason="duplicate natural key")
            )
        summary.add(result)
        logger.info(
            "Chapter %s: %d created, %d updated, %d unchanged, %d deleted",
            chapter,
            result.created,
            result.updated,
            result.unchanged,
            result.deleted,
        )

    logger.info(
        "Import finished (%s): %d imported, %d unchanged, %d skipped in %d chapter(s)",
        mode,
        summary.imported,
        summary.unchanged,
        len(summary.skipped),
        summary.chapters,
    )
    return summary


def run_import(conn: sqlite3.Connection, config: ImportConfig) -> ImportSummary:
    return import_questions(
        conn,
        config.quiz_root,
        asset_root=config.asset_root,
        mode=config.mode,
        exclude=config.exclude_files,
        asset_dirs=config.asset_dirs,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    config = ImportConfig.from_env()
    parser = argparse.ArgumentParser(description="Import quiz text files into the question bank")
    parser.add_argument("--db", default=None, help="Database file path (default: $QUIZ_DB)")
    parser.add_argument(
        "--root", default=str(config.quiz_root), help="Folder holding one subfolder per chapter"
    )
    parser.add_argument(
        "--asset-root", default=config.asset_root, help="Quiz folder path below the web root"
    )
    parser.add_argument("--mode", choices=IMPORT_MODES, default=config.mode)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    conn = connect(ensure_db_path(args.db or os.environ.get("QUIZ_DB")))
    try:
        ensure_schema(conn)
        summary = import_questions(
            conn,
            args.root,
            asset_root=args.asset_root,
            mode=args.mode,
            exclude=config.exclude_files,
            asset_dirs=config.asset_dirs,
        )
    except (StoreError, sqlite3.Error) as exc:
        print(f"Import failed: {exc}")
        return 1
    finally:
        conn.close()

    for item in summary.skipped:
        print(f"[SKIP] {item.path}: {item.reason}")
    print(
        f"[OK] {summary.created} created, {summary.updated} updated, "
        f"{summary.unchanged} unchanged, {summary.deleted} deleted."
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

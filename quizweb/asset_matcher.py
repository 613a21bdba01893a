"""Link question files to images by the number embedded in their names.

``Question 18.txt`` owns every image in the chapter's image folder whose name
contains 18 as a standalone number (``question_18.jpg``, ``18b.png``), but
not ``question_180.jpg``. Two questions carrying the same number in one
chapter both receive the same images.
"""
from __future__ import annotations

import re
from pathlib import Path, PurePath
from typing import Iterable, List, Optional, Sequence, Union

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"})

_DIGITS_RE = re.compile(r"\d+")


def digit_token(filename: str) -> Optional[str]:
    """First run of digits in the file's base name, as written, or ``None``."""
    match = _DIGITS_RE.search(PurePath(filename).stem)
    return match.group(0) if match else None


def number_token(filename: str) -> Optional[int]:
    token = digit_token(filename)
    return int(token) if token is not None else None


def contains_number(filename: str, number: Union[int, str]) -> bool:
    """Whether ``number`` appears in the base name as a whole digit run.

    Runs are compared as written: ``img_018`` holds 018, not 18.
    """
    token = str(number)
    return any(run == token for run in _DIGITS_RE.findall(PurePath(filename).stem))


def is_image(filename: str) -> bool:
    return PurePath(filename).suffix.lower() in IMAGE_EXTENSIONS


def _check_segment(segment: str) -> str:
    if not segment or segment in (".", "..") or "/" in segment or "\\" in segment:
        raise ValueError(f"invalid asset path segment {segment!r}")
    return segment


def public_asset_path(asset_root: str, chapter: str, asset_dir: str, filename: str) -> str:
    """Path of an image relative to the public web root, with ``/`` separators."""
    root_parts = [part for part in asset_root.replace("\\", "/").split("/") if part]
    parts = root_parts + [chapter, asset_dir, filename]
    return "/".join(_check_segment(part) for part in parts)


def match_assets(
    question_file: str,
    image_files: Iterable[str],
    asset_root: str,
    chapter: str,
    asset_dir: str,
) -> List[str]:
    """Public paths of every image belonging to ``question_file``."""
    token = digit_token(question_file)
    if token is None:
        return []
    matches = sorted(
        name for name in image_files if is_image(name) and contains_number(name, token)
    )
    return [public_asset_path(asset_root, chapter, asset_dir, name) for name in matches]


def find_asset_dir(chapter_dir: Path, names: Sequence[str]) -> Optional[Path]:
    """The chapter's image folder: first configured name present, any case."""
    subdirs = {entry.name.lower(): entry for entry in chapter_dir.iterdir() if entry.is_dir()}
    for name in names:
        found = subdirs.get(name.lower())
        if found is not None:
            return found
    return None


def list_images(asset_dir: Optional[Path]) -> List[str]:
    if asset_dir is None:
        return []
    return sorted(entry.name for entry in asset_dir.iterdir() if entry.is_file() and is_image(entry.name))


__all__ = [
    "IMAGE_EXTENSIONS",
    "digit_token",
    "number_token",
    "contains_number",
    "is_image",
    "public_asset_path",
    "match_assets",
    "find_asset_dir",
    "list_images",
]

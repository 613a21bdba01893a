"""Environment-driven settings for the question import and the web app."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

APP_ROOT = Path(__file__).resolve().parent

IMPORT_MODES = ("upsert", "replace")
DEFAULT_EXCLUDE_FILES = ("wrong.txt",)
DEFAULT_ASSET_DIRS = ("Images", "images", "Bilder", "img")


def _split_list(raw: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _flag(raw: Optional[str], default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def resolve_web_root(raw: Optional[str] = None) -> Path:
    """Public web root; relative values are taken from the package directory."""
    if not raw or not raw.strip():
        return APP_ROOT / "static"
    candidate = Path(raw.strip().strip('"').strip("'"))
    if not candidate.is_absolute():
        candidate = APP_ROOT / candidate
    return candidate


@dataclass(frozen=True)
class ImportConfig:
    web_root: Path
    asset_root: str = "Quiz"
    mode: str = "upsert"
    exclude_files: Tuple[str, ...] = DEFAULT_EXCLUDE_FILES
    asset_dirs: Tuple[str, ...] = DEFAULT_ASSET_DIRS
    import_on_start: bool = True

    def __post_init__(self) -> None:
        if self.mode not in IMPORT_MODES:
            raise ValueError(
                f"Unknown import mode {self.mode!r}; expected one of {IMPORT_MODES}"
            )

    @property
    def quiz_root(self) -> Path:
        """Directory holding one subdirectory per chapter."""
        return self.web_root / self.asset_root

    @classmethod
    def from_env(cls, environ=None) -> "ImportConfig":
        env = os.environ if environ is None else environ
        return cls(
            web_root=resolve_web_root(env.get("QUIZ_WEB_ROOT")),
            asset_root=(env.get("QUIZ_ASSET_ROOT") or "Quiz").strip().strip("/"),
            mode=(env.get("QUIZ_IMPORT_MODE") or "upsert").strip().lower(),
            exclude_files=_split_list(env.get("QUIZ_EXCLUDE_FILES"), DEFAULT_EXCLUDE_FILES),
            asset_dirs=_split_list(env.get("QUIZ_ASSET_DIRS"), DEFAULT_ASSET_DIRS),
            import_on_start=_flag(env.get("QUIZ_IMPORT_ON_START"), True),
        )


__all__ = ["ImportConfig", "IMPORT_MODES", "resolve_web_root"]

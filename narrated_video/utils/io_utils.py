"""I/O utility functions for file and directory operations."""

import re
import shutil
from pathlib import Path
from typing import Any, Iterable, Optional

from narrated_video.models.schemas import RunPaths


def slugify(text: str) -> str:
    """
    Convert text to a filesystem-safe slug.

    Args:
        text: Input text to slugify.

    Returns:
        Filesystem-safe slug string.
    """
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "-", text)
    text = text.strip("-")
    if len(text) > 100:
        text = text[:100].rstrip("-")
    return text


def run_output_paths(base_dir: str, run_id: str) -> RunPaths:
    """
    Derive the deterministic output locations for a run.

    Args:
        base_dir: Base directory for outputs (e.g., "outputs").
        run_id: Run identifier.

    Returns:
        RunPaths with video, captions, thumbnail and scratch directory.
    """
    base = Path(base_dir)
    return RunPaths(
        run_id=run_id,
        video=base / f"{run_id}_video.mp4",
        captions=base / f"{run_id}_captions.srt",
        thumbnail=base / f"{run_id}_thumbnail.png",
        work_dir=base / f"{run_id}_work",
    )


def is_non_empty_file(path: Optional[Path]) -> bool:
    """Return True if ``path`` is an existing file with at least one byte."""
    if path is None:
        return False
    path = Path(path)
    return path.is_file() and path.stat().st_size > 0


def remove_quietly(paths: Iterable[Optional[Path]], logger: Optional[Any] = None) -> None:
    """
    Best-effort removal of files and directories; failures are only logged.

    Args:
        paths: Files or directories to delete (None entries are skipped).
        logger: Optional logger for DEBUG messages about failures.
    """
    for path in paths:
        if path is None:
            continue
        path = Path(path)
        try:
            if path.is_dir():
                shutil.rmtree(path)
            elif path.exists():
                path.unlink()
        except OSError as e:
            if logger:
                logger.debug(f"Could not remove {path}: {e}")

"""File walker for discovering markdown notes under a notes root."""

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path


@dataclass
class NoteFile:
    """Information about a discovered note."""

    path: Path  # Absolute path
    relative_path: str  # Relative to the notes root, "/" separated
    filename: str
    mtime: float
    ctime: float


def walk_notes_root(root: Path) -> Iterator[NoteFile]:
    """
    Walk the notes root and yield a NoteFile for each .md file.

    Files are yielded in sorted path order so page order is stable between
    crawls. Hidden files and anything under a hidden directory are skipped.
    """
    if not root.exists():
        return

    for file_path in sorted(root.rglob("*.md")):
        if not file_path.is_file():
            continue

        relative_parts = file_path.relative_to(root).parts
        if any(part.startswith(".") for part in relative_parts):
            continue

        stat = file_path.stat()
        yield NoteFile(
            path=file_path,
            relative_path="/".join(relative_parts),
            filename=file_path.name,
            mtime=stat.st_mtime,
            ctime=stat.st_ctime,
        )

"""Tests for the notes walker."""

from pathlib import Path

import pytest

from pxnote.producers.walker import NoteFile, walk_notes_root


class TestWalkNotesRoot:
    @pytest.fixture
    def notes_root(self) -> Path:
        return Path(__file__).parent.parent / "fixtures" / "notes"

    def test_discovers_markdown_files_in_order(self, notes_root: Path):
        files = list(walk_notes_root(notes_root))
        assert [f.relative_path for f in files] == [
            "guides/setup.md",
            "journal/monday.md",
            "scratch.md",
        ]

    def test_skips_hidden_directories(self, notes_root: Path):
        files = list(walk_notes_root(notes_root))
        assert not any(".trash" in f.relative_path for f in files)

    def test_note_file_fields(self, notes_root: Path):
        f = next(walk_notes_root(notes_root))

        assert isinstance(f, NoteFile)
        assert f.path.exists()
        assert f.filename == "setup.md"
        assert f.mtime > 0
        assert f.ctime > 0

    def test_skips_hidden_files_and_other_extensions(self, tmp_path: Path):
        (tmp_path / ".draft.md").write_text("# Draft")
        (tmp_path / "image.png").write_bytes(b"\x89PNG")
        (tmp_path / "note.md").write_text("# Note")

        assert [f.filename for f in walk_notes_root(tmp_path)] == ["note.md"]

    def test_nonexistent_root(self, tmp_path: Path):
        assert list(walk_notes_root(tmp_path / "missing")) == []

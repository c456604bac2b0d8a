"""Shared fixtures."""

import pytest

from pxnote.engine import SqliteEngine
from pxnote.records import Record, SourceType


@pytest.fixture
def engine(tmp_path):
    """Create an initialized SQLite engine in a temporary directory."""
    engine = SqliteEngine(tmp_path / "index.db")
    engine.initialize()
    yield engine
    engine.close()


@pytest.fixture
def make_records():
    """Build n records for one page of the given kind."""

    def _make(n: int, kind: SourceType = SourceType.NOTION, page_id: str = "page-1") -> list[Record]:
        return [
            Record(
                source_type=kind,
                page_id=page_id,
                block_id=f"{kind.value}-{page_id}-{i}",
                position=i,
                block_kind="text",
                title="Rotation notes",
                content=f"block number {i} about rotation",
            )
            for i in range(n)
        ]

    return _make

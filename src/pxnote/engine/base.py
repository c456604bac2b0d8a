"""Search engine contract consumed by the directory and the publisher."""

from __future__ import annotations

from typing import Any, Protocol

from pxnote.records import IndexInfo, Record, SearchHit


class EngineError(Exception):
    """Raised by engine adapters when a call fails or is rejected."""


class SearchEngine(Protocol):
    """Narrow interface over a full-text search engine's index namespace."""

    def list_indices(self, prefix: str, timeout: float | None = None) -> list[IndexInfo]:
        """List physical indices whose names start with prefix + '_'."""
        ...

    def create_index(
        self,
        name: str,
        mapping: dict[str, Any],
        settings: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> None:
        """Create an empty, unsealed physical index."""
        ...

    def bulk_index(self, name: str, records: list[Record], timeout: float | None = None) -> None:
        """Write records into a physical index."""
        ...

    def seal_index(self, name: str, timeout: float | None = None) -> None:
        """Mark an index as completely populated."""
        ...

    def delete_index(self, name: str, timeout: float | None = None) -> None:
        """Delete a physical index."""
        ...

    def count(self, name: str) -> int:
        """Return the number of documents in a physical index."""
        ...

    def search(
        self,
        name: str,
        query: str,
        limit: int = 20,
        source_type: str | None = None,
    ) -> list[SearchHit]:
        """Full-text search over a physical index."""
        ...

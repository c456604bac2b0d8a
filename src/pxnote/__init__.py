"""
pxnote - rotating full-text index for notes.

Crawls pages, blocks and code snippets from content sources (Notion, markdown
files) and publishes them into a search engine through versioned index
generations, so that re-indexing never leaves readers with an empty index.

Stack:
- Elasticsearch or SQLite FTS5 (search engine)
- httpx (Elasticsearch and Notion HTTP clients)
- FastMCP (search tools over SSE)
"""

__version__ = "0.1.0"

from pxnote.directory import IndexDirectory
from pxnote.errors import (
    BulkWriteError,
    CreateError,
    DirectoryError,
    FetchError,
    ParseError,
    PublishError,
    RetireError,
    RotationCancelled,
)
from pxnote.naming import next_generation, parse_physical_name, physical_name
from pxnote.publisher import RotationPublisher, RotationResult, RotationState
from pxnote.records import INDEX_MAPPING, Record, SourceType

__all__ = [
    "BulkWriteError",
    "CreateError",
    "DirectoryError",
    "FetchError",
    "INDEX_MAPPING",
    "IndexDirectory",
    "ParseError",
    "PublishError",
    "Record",
    "RetireError",
    "RotationCancelled",
    "RotationPublisher",
    "RotationResult",
    "RotationState",
    "SourceType",
    "next_generation",
    "parse_physical_name",
    "physical_name",
]

"""Data models for indexed records and the physical index schema."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SourceType(str, Enum):
    """Tag identifying which producer created a record."""

    NOTION = "notion"
    FILE = "file"
    VUEPRESS = "vuepress"


# Block kinds shared by every producer
KIND_PAGE = "page"
KIND_TEXT = "text"
KIND_CODE = "code"

# Field mapping applied when a physical generation is created.
INDEX_MAPPING: dict[str, Any] = {
    "properties": {
        "source_type": {"type": "keyword"},
        "title": {"type": "text"},
        "alive": {"type": "boolean"},
        "position": {"type": "integer"},
        "page_id": {"type": "keyword"},
        "block_id": {"type": "keyword"},
        "content": {"type": "text"},
        "block_kind": {"type": "keyword"},
        "code_language": {"type": "keyword"},
        "last_edited_at": {"type": "date", "format": "epoch_second"},
        "created_at": {"type": "date", "format": "epoch_second"},
    }
}


def index_settings(shards: int = 1, replicas: int = 0) -> dict[str, Any]:
    """Build the index settings block with a fixed shard count."""
    return {"number_of_shards": shards, "number_of_replicas": replicas}


@dataclass
class Record:
    """One indexed unit: a page, or a block within a page."""

    source_type: SourceType
    page_id: str
    block_id: str
    position: int
    block_kind: str
    title: str = ""
    alive: bool = True
    content: str = ""
    code_language: str | None = None
    last_edited_at: int = 0
    created_at: int = 0

    def to_document(self) -> dict[str, Any]:
        """Serialize to the engine's document format."""
        doc: dict[str, Any] = {
            "source_type": SourceType(self.source_type).value,
            "title": self.title,
            "alive": self.alive,
            "position": self.position,
            "page_id": self.page_id,
            "block_id": self.block_id,
            "content": self.content,
            "block_kind": self.block_kind,
            "last_edited_at": self.last_edited_at,
            "created_at": self.created_at,
        }
        if self.code_language:
            doc["code_language"] = self.code_language
        return doc


@dataclass
class IndexInfo:
    """A physical index as reported by the search engine."""

    name: str
    sealed: bool = False


@dataclass
class SearchHit:
    """A search result read back from a physical generation."""

    block_id: str
    page_id: str
    title: str
    content: str
    snippet: str
    source_type: str
    block_kind: str
    position: int
    score: float

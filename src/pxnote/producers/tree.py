"""Recursive page-tree crawler that flattens nested pages into records."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol

from pxnote.producers.base import Producer
from pxnote.records import KIND_CODE, KIND_PAGE, Record, SourceType

logger = logging.getLogger(__name__)


@dataclass
class Block:
    """A single block of a downloaded page."""

    id: str
    kind: str
    alive: bool = True
    title: str = ""
    text_fragments: list[str] = field(default_factory=list)
    code: str = ""
    code_language: str | None = None
    created_at: int = 0
    last_edited_at: int = 0

    @property
    def is_code(self) -> bool:
        return self.kind == KIND_CODE


class PageTree(Protocol):
    """A downloaded page: its own blocks plus the ids of its sub-pages."""

    page_id: str
    title: str
    sub_page_ids: list[str]

    def iter_blocks(self) -> Iterator[Block]:
        """Yield the page's blocks depth-first in source order."""
        ...


class ContentSource(Protocol):
    """Content source a tree crawler walks."""

    def list_root_page_ids(self) -> list[str]:
        ...

    def download_page(self, page_id: str) -> PageTree:
        ...


@dataclass
class CrawlState:
    """Accumulator threaded through one crawl."""

    records: list[Record] = field(default_factory=list)
    visited: set[str] = field(default_factory=set)


def block_content(block: Block) -> tuple[str, str | None]:
    """Return (content, code_language) for a block.

    Code blocks keep their raw code; every other block joins its inline text
    fragments with a newline.
    """
    if block.is_code:
        return block.code, block.code_language or None
    return "\n".join(block.text_fragments), None


class TreeCrawler(Producer):
    """Producer that walks every root page of a content source."""

    def __init__(self, source: ContentSource, kind: SourceType):
        self._source = source
        self._kind = kind

    @property
    def kind(self) -> SourceType:
        return self._kind

    def fetch_index(self) -> list[Record]:
        root_ids = self._source.list_root_page_ids()
        logger.info("Crawling %d root pages for %s", len(root_ids), self._kind.value)

        state = CrawlState()
        for root_id in root_ids:
            self.crawl_page(root_id, state)

        logger.info("Crawled %d records from %d pages", len(state.records), len(state.visited))
        return state.records

    def crawl_page(self, page_id: str, state: CrawlState, inherited_title: str = "") -> CrawlState:
        """Append the records of a page and its sub-pages to state.

        Each downloaded page numbers its own blocks from 0. Sub-pages are
        crawled after all of the page's own blocks and inherit its title
        unless they carry one of their own.
        """
        if page_id in state.visited:
            logger.debug("Skipping already crawled page %s", page_id)
            return state
        state.visited.add(page_id)

        page = self._source.download_page(page_id)
        title = page.title or inherited_title

        position = 0
        for block in page.iter_blocks():
            # The page's own header block comes first and names the page
            if position == 0 and block.kind == KIND_PAGE and block.title:
                title = block.title

            content, code_language = block_content(block)
            state.records.append(
                Record(
                    source_type=self._kind,
                    title=title,
                    alive=block.alive,
                    position=position,
                    page_id=page_id,
                    block_id=block.id,
                    content=content,
                    block_kind=block.kind,
                    code_language=code_language,
                    last_edited_at=block.last_edited_at,
                    created_at=block.created_at,
                )
            )
            position += 1

        logger.debug("Page %s yielded %d records", page_id, position)

        for sub_page_id in page.sub_page_ids:
            self.crawl_page(sub_page_id, state, inherited_title=title)
        return state

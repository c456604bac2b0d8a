"""Producer for a directory of markdown notes."""

import logging
from pathlib import Path

from pxnote.producers.base import Producer
from pxnote.producers.chunker import first_heading, split_blocks
from pxnote.producers.parser import parse_frontmatter
from pxnote.producers.walker import NoteFile, walk_notes_root
from pxnote.records import KIND_PAGE, Record, SourceType

logger = logging.getLogger(__name__)


class FileProducer(Producer):
    """
    Produces records from every markdown file under a notes root.

    Each file is a page: a page block carrying the title at position 0,
    followed by its header, text and code blocks in document order.
    """

    def __init__(self, root: Path):
        self.root = root

    @property
    def kind(self) -> SourceType:
        return SourceType.FILE

    def fetch_index(self) -> list[Record]:
        # An empty result would publish an empty generation, so a missing root is an error
        if not self.root.is_dir():
            raise FileNotFoundError(f"Notes root not found: {self.root}")

        records: list[Record] = []
        pages = 0
        for note in walk_notes_root(self.root):
            records.extend(self.page_records(note))
            pages += 1

        logger.info("Read %d records from %d notes in %s", len(records), pages, self.root)
        return records

    def page_records(self, note: NoteFile) -> list[Record]:
        """Flatten one note into records numbered from 0."""
        content = note.path.read_text(encoding="utf-8")
        front_matter, body = parse_frontmatter(content, note.relative_path)
        segments = split_blocks(body)

        title = front_matter.title or first_heading(segments) or note.path.stem
        last_edited_at = int(note.mtime)
        created_at = front_matter.created if front_matter.created is not None else int(note.ctime)
        page_id = note.relative_path

        def record(position: int, block_kind: str, text: str, language: str | None = None) -> Record:
            return Record(
                source_type=SourceType.FILE,
                title=title,
                position=position,
                page_id=page_id,
                block_id=f"{page_id}#{position}",
                content=text,
                block_kind=block_kind,
                code_language=language,
                last_edited_at=last_edited_at,
                created_at=created_at,
            )

        records = [record(0, KIND_PAGE, title)]
        for position, segment in enumerate(segments, start=1):
            records.append(record(position, segment.kind, segment.content, segment.language))
        return records

"""Splitting of markdown bodies into header, text and code blocks."""

import re
from dataclasses import dataclass

from pxnote.records import KIND_CODE, KIND_TEXT

# Maximum characters per block (~1500 tokens)
MAX_BLOCK_CHARS = 6000

# Block kinds for headings, by level
HEADER_KINDS = {1: "header", 2: "sub_header"}
DEEP_HEADER_KIND = "sub_sub_header"

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
FENCE_OPEN_PATTERN = re.compile(r"^\s*(`{3,}|~{3,})\s*([\w+#.-]*)")


@dataclass
class Segment:
    """A block of a markdown body."""

    kind: str
    content: str
    language: str | None = None
    level: int = 0


def header_kind(level: int) -> str:
    return HEADER_KINDS.get(level, DEEP_HEADER_KIND)


def split_by_paragraphs(content: str, max_chars: int) -> list[str]:
    """Split content into chunks by paragraphs, respecting max_chars."""
    paragraphs = re.split(r"\n\n+", content)
    chunks: list[str] = []
    current: list[str] = []
    current_length = 0

    for para in paragraphs:
        para = para.strip()
        if not para:
            continue

        if len(para) > max_chars:
            if current:
                chunks.append("\n\n".join(current))
                current = []
                current_length = 0
            chunks.extend(split_by_lines(para, max_chars))
            continue

        new_length = current_length + len(para) + (2 if current else 0)
        if new_length > max_chars and current:
            chunks.append("\n\n".join(current))
            current = []
            new_length = len(para)

        current.append(para)
        current_length = new_length

    if current:
        chunks.append("\n\n".join(current))

    return chunks


def split_by_lines(content: str, max_chars: int) -> list[str]:
    """Split content by lines, truncating any single line over max_chars."""
    chunks: list[str] = []
    current: list[str] = []
    current_length = 0

    for line in content.split("\n"):
        if len(line) > max_chars:
            if current:
                chunks.append("\n".join(current))
                current = []
                current_length = 0
            chunks.append(line[:max_chars])
            continue

        new_length = current_length + len(line) + (1 if current else 0)
        if new_length > max_chars and current:
            chunks.append("\n".join(current))
            current = []
            new_length = len(line)

        current.append(line)
        current_length = new_length

    if current:
        chunks.append("\n".join(current))

    return chunks


def split_blocks(body: str, max_chars: int = MAX_BLOCK_CHARS) -> list[Segment]:
    """
    Split a markdown body into blocks in document order.

    Rules:
    1. Every heading (# to ######) is its own header block
    2. Fenced code (``` or ~~~) is a code block; the info string is its language
    3. Prose between them is a text block
    4. Oversized text is split by paragraphs, oversized code by lines
    """
    segments: list[Segment] = []
    prose: list[str] = []
    code: list[str] | None = None
    fence = ""
    language: str | None = None

    def flush_prose() -> None:
        text = "\n".join(prose).strip()
        prose.clear()
        if text:
            segments.extend(Segment(KIND_TEXT, part) for part in split_by_paragraphs(text, max_chars))

    def flush_code(lines: list[str]) -> None:
        text = "\n".join(lines)
        parts = split_by_lines(text, max_chars) if len(text) > max_chars else [text]
        segments.extend(Segment(KIND_CODE, part, language=language) for part in parts)

    for line in body.split("\n"):
        if code is not None:
            if line.strip().startswith(fence) and not line.strip().strip(fence[0]):
                flush_code(code)
                code = None
            else:
                code.append(line)
            continue

        fence_match = FENCE_OPEN_PATTERN.match(line)
        if fence_match:
            flush_prose()
            fence = fence_match.group(1)
            language = fence_match.group(2) or None
            code = []
            continue

        heading_match = HEADING_PATTERN.match(line)
        if heading_match:
            flush_prose()
            level = len(heading_match.group(1))
            segments.append(Segment(header_kind(level), heading_match.group(2), level=level))
            continue

        prose.append(line)

    # An unterminated fence runs to the end of the note
    if code is not None:
        flush_code(code)
    flush_prose()

    return segments


def first_heading(segments: list[Segment]) -> str | None:
    """Return the text of the first level 1 heading, if any."""
    for segment in segments:
        if segment.level == 1:
            return segment.content
    return None

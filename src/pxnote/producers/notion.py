"""Notion content source and the producer that crawls it.

Talks to the private v3 endpoints used by the Notion web client:
- loadUserContent: every root page the token can see
- loadPageChunk: the block records of a page, paged by cursor
"""

import logging
from collections.abc import Iterator
from typing import Any

import httpx

from pxnote.producers.tree import Block, TreeCrawler
from pxnote.records import KIND_CODE, KIND_PAGE, SourceType

logger = logging.getLogger(__name__)

NOTION_HOST = "https://www.notion.so"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_13_5) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/69.0.3483.0 Safari/537.36"
)
ACCEPT_LANGUAGE = "en-US,en;q=0.9"

DEFAULT_TIMEOUT = 20.0  # seconds

# Blocks requested per loadPageChunk call
CHUNK_LIMIT = 100

# Upper bound on chunk requests for a single page
MAX_PAGE_CHUNKS = 200


class NotionAPIError(Exception):
    """Raised when a Notion API call fails."""

    def __init__(self, message: str, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def _record_value(record: dict[str, Any]) -> dict[str, Any] | None:
    """Unwrap a recordMap entry to the block value."""
    value = record.get("value")
    # Newer responses wrap the block once more: {"value": {"value": {...}, "role": ...}}
    if isinstance(value, dict) and "id" not in value and isinstance(value.get("value"), dict):
        value = value["value"]
    return value if isinstance(value, dict) else None


def _text_fragments(spans: Any) -> list[str]:
    """Extract the plain text of each rich-text span."""
    if not isinstance(spans, list):
        return []
    return [str(span[0]) for span in spans if isinstance(span, list) and span]


def _millis_to_seconds(value: Any) -> int:
    try:
        return int(value) // 1000
    except (TypeError, ValueError):
        return 0


def to_block(value: dict[str, Any]) -> Block:
    """Convert a Notion block value into a Block."""
    properties = value.get("properties") or {}
    fragments = _text_fragments(properties.get("title"))
    kind = value.get("type", "")

    block = Block(
        id=value["id"],
        kind=kind,
        alive=bool(value.get("alive", True)),
        title="".join(fragments),
        text_fragments=fragments,
        created_at=_millis_to_seconds(value.get("created_time")),
        last_edited_at=_millis_to_seconds(value.get("last_edited_time")),
    )
    if kind == KIND_CODE:
        block.code = "".join(fragments)
        language = _text_fragments(properties.get("language"))
        block.code_language = language[0] if language else None
    return block


class NotionPage:
    """A downloaded Notion page.

    Child blocks that are pages themselves are sub-pages: they are reported
    in sub_page_ids and crawled with their own download instead of being
    yielded here.
    """

    def __init__(self, page_id: str, blocks: dict[str, dict[str, Any]]):
        self.page_id = page_id
        self._blocks = blocks
        root = blocks.get(page_id)
        self.title = to_block(root).title if root else ""
        self._order, self.sub_page_ids = self._walk()

    def _walk(self) -> tuple[list[str], list[str]]:
        order: list[str] = []
        sub_pages: list[str] = []
        seen: set[str] = set()
        stack = [self.page_id]
        while stack:
            block_id = stack.pop()
            if block_id in seen:
                continue
            seen.add(block_id)

            value = self._blocks.get(block_id)
            if value is None:
                logger.debug("Block %s of page %s was not loaded", block_id, self.page_id)
                continue
            if block_id != self.page_id and value.get("type") == KIND_PAGE:
                sub_pages.append(block_id)
                continue

            order.append(block_id)
            children = value.get("content") or []
            stack.extend(reversed(children))
        return order, sub_pages

    def iter_blocks(self) -> Iterator[Block]:
        for block_id in self._order:
            yield to_block(self._blocks[block_id])


class NotionClient:
    """Minimal client for the Notion v3 web API."""

    def __init__(
        self,
        auth_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ):
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "Accept-Language": ACCEPT_LANGUAGE,
        }
        if auth_token:
            headers["cookie"] = f"token_v2={auth_token}"
        self._client = client or httpx.Client(
            base_url=NOTION_HOST,
            headers=headers,
            timeout=timeout,
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, api_url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post(api_url, json=payload)
        except httpx.TimeoutException as e:
            raise NotionAPIError(f"POST {api_url} timed out", api_url) from e
        except httpx.RequestError as e:
            raise NotionAPIError(f"POST {api_url} failed: {e}", api_url) from e

        if response.status_code != 200:
            raise NotionAPIError(
                f"POST {api_url} returned non-200 status code of {response.status_code}",
                api_url,
                response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise NotionAPIError(f"POST {api_url} returned invalid JSON: {e}", api_url) from e

    def list_root_page_ids(self) -> list[str]:
        data = self._post("/api/v3/loadUserContent", {})
        blocks = (data.get("recordMap") or {}).get("block") or {}
        return list(blocks)

    def download_page(self, page_id: str) -> NotionPage:
        blocks: dict[str, dict[str, Any]] = {}
        stack: list = []
        for chunk_number in range(MAX_PAGE_CHUNKS):
            data = self._post(
                "/api/v3/loadPageChunk",
                {
                    "pageId": page_id,
                    "limit": CHUNK_LIMIT,
                    "cursor": {"stack": stack},
                    "chunkNumber": chunk_number,
                    "verticalColumns": False,
                },
            )
            for block_id, record in ((data.get("recordMap") or {}).get("block") or {}).items():
                value = _record_value(record)
                if value is not None:
                    blocks[block_id] = value

            stack = (data.get("cursor") or {}).get("stack") or []
            if not stack:
                break
        else:
            raise NotionAPIError(
                f"Page {page_id} did not finish loading within {MAX_PAGE_CHUNKS} chunks",
                "/api/v3/loadPageChunk",
            )

        logger.debug("Downloaded page %s (%d blocks)", page_id, len(blocks))
        return NotionPage(page_id, blocks)


class NotionProducer(TreeCrawler):
    """Tree crawler over every root page visible to a Notion token."""

    def __init__(self, client: NotionClient):
        super().__init__(client, SourceType.NOTION)

"""MCP tools for the pxnote server.

This module defines the tools exposed by the MCP server:
- search: Full-text search over the current generation
- index_status: Generations known for the logical index
- reindex: Run a rotation cycle now
"""

import logging
from collections.abc import Callable

from fastmcp import FastMCP

from pxnote.config import Config
from pxnote.directory import IndexDirectory
from pxnote.engine.base import SearchEngine
from pxnote.errors import PublishError
from pxnote.publisher import RotationResult

logger = logging.getLogger(__name__)


def rotation_summary(result: RotationResult) -> dict:
    """Describe a finished rotation cycle."""
    return {
        "status": "published",
        "index": result.index_name,
        "previous": result.previous_name,
        "records": result.record_counts,
        "retired": result.retired,
        "retire_errors": [str(e) for e in result.retire_errors],
    }


def register_tools(
    mcp: FastMCP,
    config: Config,
    engine: SearchEngine,
    run_rotation: Callable[[], RotationResult],
) -> None:
    """Register all tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        config: Config instance (index name, timeouts, read-only flag)
        engine: Search engine holding the generations
        run_rotation: Runs one rotation cycle
    """

    def current_directory() -> IndexDirectory:
        directory = IndexDirectory(engine, config.index_name, timeout=config.list_timeout)
        directory.refresh()
        return directory

    @mcp.tool()
    def search(
        query: str,
        source_type: str | None = None,
        limit: int = 20,
    ) -> list[dict]:
        """Search indexed notes using full-text search.

        Queries the current (most recently completed) generation of the index.

        Args:
            query: Search query
            source_type: Optional producer filter (notion, file)
            limit: Maximum number of results to return (default: 20)

        Returns:
            List of search results with:
            - title: Title of the page the block belongs to
            - page_id: Page identifier
            - block_id: Block identifier
            - block_kind: Block type (page, text, code, header, ...)
            - source_type: Producer that indexed the block
            - snippet: Contextual snippet with matches highlighted (>>>match<<<)
            - score: Relevance score (higher is better)
        """
        index_name = current_directory().current_name(config.index_name)
        if index_name is None:
            logger.info("Search for %r before any generation was published", query)
            return []

        hits = engine.search(index_name, query, limit=limit, source_type=source_type)
        return [
            {
                "title": hit.title,
                "page_id": hit.page_id,
                "block_id": hit.block_id,
                "block_kind": hit.block_kind,
                "source_type": hit.source_type,
                "snippet": hit.snippet,
                "score": round(hit.score, 2),
            }
            for hit in hits
        ]

    @mcp.tool()
    def index_status() -> dict:
        """Describe the generations of the logical index.

        Returns:
            Status with:
            - index: Logical index name
            - current: Physical generation readers are served from (or null)
            - documents: Document count of the current generation
            - generations: Every physical generation and whether it is sealed
        """
        directory = current_directory()
        snapshot = directory.snapshot().get(config.index_name, {})
        current = directory.current_name(config.index_name)
        return {
            "index": config.index_name,
            "current": current,
            "documents": engine.count(current) if current else 0,
            "generations": snapshot.get("generations", []),
        }

    @mcp.tool()
    def reindex() -> dict:
        """Rebuild the index from every content source.

        Builds a new generation, and once it is fully populated retires the
        previous one. On failure the previous generation keeps serving.

        Returns:
            Result with status "published", "failed" or "rejected"
        """
        if config.read_only:
            logger.warning("Reindex rejected: server is in read-only mode")
            return {"status": "rejected", "error": "Server is in read-only mode"}

        try:
            result = run_rotation()
        except PublishError as e:
            return {"status": "failed", "phase": e.phase, "index": e.index_name, "error": str(e)}
        return rotation_summary(result)

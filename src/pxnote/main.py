"""Main entry point for pxnote."""

import argparse
import json
import logging
import sys

from fastmcp import FastMCP

from pxnote.config import Config
from pxnote.directory import IndexDirectory
from pxnote.engine import ElasticsearchEngine, SearchEngine, SqliteEngine
from pxnote.errors import PublishError
from pxnote.producers import FileProducer, NotionClient, NotionProducer
from pxnote.publisher import RotationPublisher
from pxnote.records import index_settings
from pxnote.scheduler import RotationRunner, RotationScheduler
from pxnote.tools import register_tools, rotation_summary

logger = logging.getLogger(__name__)


def create_engine(config: Config) -> SearchEngine:
    """Create the search engine adapter selected by PXNOTE_BACKEND."""
    if config.backend == "sqlite":
        logger.info("Using SQLite engine at %s", config.db_path)
        engine = SqliteEngine(config.db_path)
        engine.initialize()
        return engine

    logger.info("Using Elasticsearch engine at %s", config.es_url)
    return ElasticsearchEngine(
        config.es_url,
        api_key=config.es_api_key,
        timeout=config.request_timeout,
    )


def create_publisher(config: Config, engine: SearchEngine) -> RotationPublisher:
    """Create the publisher with every configured producer registered."""
    publisher = RotationPublisher(
        engine,
        config.index_name,
        settings=index_settings(config.shards, config.replicas),
        batch_size=config.bulk_batch_size,
        timeout=config.request_timeout,
    )

    if config.notion_token:
        client = NotionClient(config.notion_token, timeout=config.notion_timeout)
        publisher.register(NotionProducer(client))
    if config.notes_root:
        publisher.register(FileProducer(config.notes_root))

    if not publisher.producers:
        logger.warning("No producers configured: set PXNOTE_NOTION_TOKEN or PXNOTE_NOTES_ROOT")
    else:
        logger.info(
            "Registered producers: %s",
            ", ".join(p.kind.value for p in publisher.producers),
        )
    return publisher


def create_runner(config: Config, engine: SearchEngine, publisher: RotationPublisher) -> RotationRunner:
    """Create the runner that serializes rotation cycles."""
    return RotationRunner(
        publisher,
        lambda: IndexDirectory(engine, config.index_name, timeout=config.list_timeout),
    )


def create_server(config: Config) -> tuple[FastMCP, RotationScheduler | None]:
    """Create and configure the MCP server with all components.

    Args:
        config: Configuration instance with all settings.

    Returns:
        The server and, when periodic rotation is enabled, its (not yet
        started) scheduler.
    """
    mcp = FastMCP(
        name="pxnote",
        instructions=(
            "pxnote provides full-text search over indexed notes: pages, text "
            "blocks and code snippets. Use the search tool to find content and "
            "index_status to see which index generation is serving."
        ),
    )

    engine = create_engine(config)
    publisher = create_publisher(config, engine)
    runner = create_runner(config, engine, publisher)

    # Publish a first generation if nothing is serving yet
    if not config.read_only and publisher.producers:
        directory = IndexDirectory(engine, config.index_name, timeout=config.list_timeout)
        try:
            directory.refresh()
            if directory.current_name(config.index_name) is None:
                logger.info("No published generation, performing initial index...")
                result = runner()
                logger.info("Initial index complete: %d records", result.total_records)
        except PublishError as e:
            logger.error("Initial index failed, serving without an index: %s", e)

    logger.info("Registering tools...")
    register_tools(mcp, config, engine, runner)

    scheduler: RotationScheduler | None = None
    if config.rotate_interval > 0 and not config.read_only and publisher.producers:
        scheduler = RotationScheduler(runner, config.rotate_interval)
    else:
        logger.info("Periodic rotation disabled")

    logger.info("Server configured successfully")
    return mcp, scheduler


def run_once(config: Config) -> int:
    """Run a single rotation cycle. Returns the process exit status."""
    engine = create_engine(config)
    publisher = create_publisher(config, engine)
    runner = create_runner(config, engine, publisher)
    try:
        result = runner()
    except PublishError as e:
        logger.error("Rotation failed, previous generation left in place: %s", e)
        return 1

    print(json.dumps(rotation_summary(result), indent=2))
    return 0


def show_status(config: Config) -> int:
    """Print the directory snapshot. Returns the process exit status."""
    engine = create_engine(config)
    directory = IndexDirectory(engine, config.index_name, timeout=config.list_timeout)
    try:
        directory.refresh()
    except PublishError as e:
        logger.error("Could not read index directory: %s", e)
        return 1

    print(json.dumps(directory.snapshot(), indent=2))
    return 0


def main() -> None:
    """Main function - runs a rotation, prints status, or starts the server."""
    # Configure logging here to avoid side effects on import
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="pxnote - rotating full-text index for notes")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one rotation cycle and exit",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Print the index generations and exit",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Serve searches only (no rotations)",
    )
    args = parser.parse_args()

    config = Config.from_env(read_only_override=True if args.read_only else None)

    logger.info("=" * 50)
    logger.info("pxnote starting...")
    logger.info("  BACKEND:   %s", config.backend)
    logger.info("  INDEX:     %s", config.index_name)
    logger.info("  NOTION:    %s", "enabled" if config.notion_token else "disabled")
    logger.info("  NOTES:     %s", config.notes_root or "disabled")
    logger.info("  READ_ONLY: %s", config.read_only)
    logger.info("=" * 50)

    if args.status:
        sys.exit(show_status(config))
    if args.once:
        sys.exit(run_once(config))

    scheduler: RotationScheduler | None = None
    try:
        mcp, scheduler = create_server(config)
        if scheduler is not None:
            scheduler.start()
        logger.info("Starting MCP server on port %s...", config.port)
        mcp.run(transport="sse", host="0.0.0.0", port=config.port)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)
    except Exception:
        logger.exception("Server error")
        sys.exit(1)
    finally:
        if scheduler is not None:
            scheduler.stop()


if __name__ == "__main__":
    main()

"""Example MCP server over a local notes directory.

Publishes a first generation of the notes into a SQLite index, then serves the
search tools. Every call to the reindex tool builds a new generation and
retires the previous one.

Run with: python examples/example_server.py ~/notes
"""

import logging
import sys
from pathlib import Path

from fastmcp import FastMCP

from pxnote.config import Config
from pxnote.directory import IndexDirectory
from pxnote.engine import SqliteEngine
from pxnote.producers import FileProducer
from pxnote.publisher import RotationPublisher
from pxnote.scheduler import RotationRunner
from pxnote.tools import register_tools

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

notes_root = Path(sys.argv[1] if len(sys.argv) > 1 else "~/notes").expanduser()
db_path = Path("/tmp/pxnote-example/index.db")

engine = SqliteEngine(db_path)
engine.initialize()

publisher = RotationPublisher(engine, "note_index")
publisher.register(FileProducer(notes_root))
runner = RotationRunner(publisher, lambda: IndexDirectory(engine, "note_index"))

config = Config.from_env()
config.index_name = "note_index"

mcp = FastMCP("pxnote-example")
register_tools(mcp, config, engine, runner)


if __name__ == "__main__":
    result = runner()
    print(f"Published {result.index_name} with {result.total_records} records from {notes_root}")
    print("\nAvailable tools:")
    print("  - search")
    print("  - index_status")
    print("  - reindex")
    print("\nPress Ctrl+C to stop")

    mcp.run()

"""Search engine adapters.

The rotation pipeline only talks to engines through the SearchEngine contract;
Elasticsearch is the production engine, SQLite FTS5 the local one.
"""

from pxnote.engine.base import EngineError, SearchEngine
from pxnote.engine.elasticsearch import ElasticsearchEngine
from pxnote.engine.sqlite import SqliteEngine

__all__ = [
    "ElasticsearchEngine",
    "EngineError",
    "SearchEngine",
    "SqliteEngine",
]

"""SQLite FTS5 search engine for local indexing and tests.

Each physical generation is a plain table whose columns are derived from the
index mapping, plus an FTS5 table over the mapping's text fields. A catalog
table records every generation and whether its population completed.
"""

import json
import logging
import re
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pxnote.engine.base import EngineError
from pxnote.records import IndexInfo, Record, SearchHit

logger = logging.getLogger(__name__)

CATALOG_SQL = """
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS indices (
    name        TEXT PRIMARY KEY,
    mapping     TEXT NOT NULL,
    sealed      INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

# Mapping field types stored as INTEGER; everything else is TEXT
INTEGER_TYPES = {"boolean", "integer", "long", "date"}

# Mapping field types indexed by FTS5
FULL_TEXT_TYPES = {"text"}

VALID_NAME = re.compile(r"^[A-Za-z0-9_]+$")


def _quote(identifier: str) -> str:
    if not VALID_NAME.match(identifier):
        raise EngineError(f"Invalid index or field name: {identifier!r}")
    return f'"{identifier}"'


class SqliteEngine:
    """Search engine backed by a single SQLite database file."""

    SNIPPET_HIGHLIGHT_START = ">>>"
    SNIPPET_HIGHLIGHT_END = "<<<"
    SNIPPET_ELLIPSIS = "..."
    SNIPPET_MAX_TOKENS = 64

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._local = threading.local()
        self._write_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._local.conn = sqlite3.connect(str(self.db_path))
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    @contextmanager
    def _read_cursor(self) -> Iterator[sqlite3.Cursor]:
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    @contextmanager
    def _write_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for write operations with locking."""
        with self._write_lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def initialize(self) -> None:
        """Create the index catalog."""
        try:
            with self._write_cursor() as cursor:
                cursor.executescript(CATALOG_SQL)
        except sqlite3.Error as e:
            raise EngineError(f"Failed to initialize {self.db_path}: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        if hasattr(self._local, "conn") and self._local.conn:
            self._local.conn.close()
            self._local.conn = None

    def _get_mapping(self, cursor: sqlite3.Cursor, name: str) -> dict[str, Any]:
        cursor.execute("SELECT mapping FROM indices WHERE name = ?", (name,))
        row = cursor.fetchone()
        if row is None:
            raise EngineError(f"No such index: {name}")
        return json.loads(row["mapping"])

    @staticmethod
    def _fields(mapping: dict[str, Any]) -> dict[str, str]:
        return {field: spec.get("type", "keyword") for field, spec in mapping["properties"].items()}

    # Index namespace operations

    def list_indices(self, prefix: str, timeout: float | None = None) -> list[IndexInfo]:
        try:
            with self._read_cursor() as cursor:
                cursor.execute("SELECT name, sealed FROM indices ORDER BY name")
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise EngineError(f"Failed to list indices for {prefix!r}: {e}") from e
        return [
            IndexInfo(name=row["name"], sealed=bool(row["sealed"]))
            for row in rows
            if row["name"].startswith(f"{prefix}_")
        ]

    def create_index(
        self,
        name: str,
        mapping: dict[str, Any],
        settings: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> None:
        table = _quote(name)
        fts_table = _quote(f"{name}_fts")
        fields = self._fields(mapping)
        columns = ", ".join(
            f"{_quote(field)} {'INTEGER' if kind in INTEGER_TYPES else 'TEXT'}"
            for field, kind in fields.items()
        )
        text_fields = [field for field, kind in fields.items() if kind in FULL_TEXT_TYPES]
        if not text_fields:
            raise EngineError(f"Mapping for {name} declares no text fields")
        fts_columns = ", ".join(_quote(f) for f in text_fields)
        new_values = ", ".join(f"NEW.{_quote(f)}" for f in text_fields)

        try:
            with self._write_cursor() as cursor:
                cursor.execute("SELECT 1 FROM indices WHERE name = ?", (name,))
                if cursor.fetchone():
                    raise EngineError(f"Index already exists: {name}")
                cursor.execute(
                    "INSERT INTO indices (name, mapping) VALUES (?, ?)",
                    (name, json.dumps(mapping)),
                )
                cursor.execute(f"CREATE TABLE {table} ({columns})")
                cursor.execute(
                    f"CREATE VIRTUAL TABLE {fts_table} USING fts5("
                    f"{fts_columns}, content={table}, content_rowid='rowid')"
                )
                cursor.execute(
                    f"CREATE TRIGGER {_quote(f'{name}_ai')} AFTER INSERT ON {table} BEGIN "
                    f"INSERT INTO {fts_table}(rowid, {fts_columns}) VALUES (NEW.rowid, {new_values}); "
                    "END"
                )
        except sqlite3.Error as e:
            raise EngineError(f"Failed to create index {name}: {e}") from e
        logger.debug("Created index %s with fields %s", name, ", ".join(fields))

    def bulk_index(self, name: str, records: list[Record], timeout: float | None = None) -> None:
        if not records:
            return
        try:
            with self._write_cursor() as cursor:
                fields = list(self._fields(self._get_mapping(cursor, name)))
                placeholders = ", ".join("?" for _ in fields)
                column_list = ", ".join(_quote(f) for f in fields)
                rows = []
                for record in records:
                    doc = record.to_document()
                    rows.append(
                        tuple(int(v) if isinstance(v, bool) else v for v in (doc.get(f) for f in fields))
                    )
                cursor.executemany(
                    f"INSERT INTO {_quote(name)} ({column_list}) VALUES ({placeholders})",
                    rows,
                )
        except sqlite3.Error as e:
            raise EngineError(f"Bulk write into {name} failed: {e}") from e

    def seal_index(self, name: str, timeout: float | None = None) -> None:
        try:
            with self._write_cursor() as cursor:
                cursor.execute("UPDATE indices SET sealed = 1 WHERE name = ?", (name,))
                if cursor.rowcount == 0:
                    raise EngineError(f"No such index: {name}")
        except sqlite3.Error as e:
            raise EngineError(f"Failed to seal index {name}: {e}") from e

    def delete_index(self, name: str, timeout: float | None = None) -> None:
        try:
            with self._write_cursor() as cursor:
                self._get_mapping(cursor, name)
                cursor.execute(f"DROP TABLE IF EXISTS {_quote(f'{name}_fts')}")
                cursor.execute(f"DROP TABLE IF EXISTS {_quote(name)}")
                cursor.execute("DELETE FROM indices WHERE name = ?", (name,))
        except sqlite3.Error as e:
            raise EngineError(f"Failed to delete index {name}: {e}") from e

    # Reader operations

    def count(self, name: str) -> int:
        try:
            with self._read_cursor() as cursor:
                self._get_mapping(cursor, name)
                cursor.execute(f"SELECT COUNT(*) AS n FROM {_quote(name)}")
                return cursor.fetchone()["n"]
        except sqlite3.Error as e:
            raise EngineError(f"Failed to count {name}: {e}") from e

    def search(
        self,
        name: str,
        query: str,
        limit: int = 20,
        source_type: str | None = None,
    ) -> list[SearchHit]:
        """Search a generation, best bm25 matches first.

        Returns contextual snippets using the FTS5 snippet() function.
        """
        table = _quote(name)
        fts_table = _quote(f"{name}_fts")
        try:
            with self._read_cursor() as cursor:
                fields = self._fields(self._get_mapping(cursor, name))
                text_fields = [f for f, kind in fields.items() if kind in FULL_TEXT_TYPES]
                snippet_column = text_fields.index("content") if "content" in text_fields else 0
                snippet_func = (
                    f"snippet({fts_table}, {snippet_column}, "
                    f"'{self.SNIPPET_HIGHLIGHT_START}', '{self.SNIPPET_HIGHLIGHT_END}', "
                    f"'{self.SNIPPET_ELLIPSIS}', {self.SNIPPET_MAX_TOKENS})"
                )
                search_query = f"""
                    SELECT t.*, {snippet_func} AS snippet, bm25({fts_table}) AS bm25_score
                    FROM {fts_table}
                    JOIN {table} t ON {fts_table}.rowid = t.rowid
                    WHERE {fts_table} MATCH ?
                """
                params: list = [query]
                if source_type:
                    search_query += " AND t.source_type = ?"
                    params.append(source_type)
                # bm25() is negative; more negative is a better match
                search_query += " ORDER BY bm25_score LIMIT ?"
                params.append(limit)

                cursor.execute(search_query, params)
                return [
                    SearchHit(
                        block_id=row["block_id"],
                        page_id=row["page_id"],
                        title=row["title"] or "",
                        content=row["content"] or "",
                        snippet=row["snippet"] or "",
                        source_type=row["source_type"],
                        block_kind=row["block_kind"],
                        position=row["position"],
                        score=-row["bm25_score"],
                    )
                    for row in cursor.fetchall()
                ]
        except sqlite3.Error as e:
            raise EngineError(f"Search on {name} failed: {e}") from e

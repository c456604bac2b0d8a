"""Tests for MCP tools."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastmcp import FastMCP

from pxnote.config import Config
from pxnote.errors import FetchError
from pxnote.main import create_engine, create_publisher, create_runner
from pxnote.tools import register_tools

FIXTURES_NOTES = Path(__file__).parent / "fixtures" / "notes"


def get_tool(mcp: FastMCP, name: str):
    """Get a registered tool function by name."""
    for tool in mcp._tool_manager._tools.values():
        if tool.fn.__name__ == name:
            return tool.fn
    raise AssertionError(f"Tool {name} not registered")


@pytest.fixture
def config(tmp_path, monkeypatch) -> Config:
    """Config for a SQLite engine indexing the fixture notes."""
    monkeypatch.setenv("PXNOTE_BACKEND", "sqlite")
    monkeypatch.setenv("PXNOTE_DB", str(tmp_path / "index.db"))
    monkeypatch.setenv("PXNOTE_NOTES_ROOT", str(FIXTURES_NOTES))
    monkeypatch.delenv("PXNOTE_NOTION_TOKEN", raising=False)
    monkeypatch.delenv("PXNOTE_INDEX_NAME", raising=False)
    monkeypatch.delenv("PXNOTE_READ_ONLY", raising=False)
    return Config.from_env()


@pytest.fixture
def mcp(config) -> FastMCP:
    """Server with tools registered over a real rotation runner."""
    engine = create_engine(config)
    runner = create_runner(config, engine, create_publisher(config, engine))
    server = FastMCP()
    register_tools(server, config, engine, runner)
    return server


class TestSearch:
    def test_search_before_first_rotation(self, mcp):
        search = get_tool(mcp, "search")
        assert search(query="pip") == []

    def test_search_current_generation(self, mcp):
        get_tool(mcp, "reindex")()
        search = get_tool(mcp, "search")

        results = search(query="pip")

        assert {r["block_id"] for r in results} == {"guides/setup.md#2", "guides/setup.md#3"}
        assert all(">>>pip<<<" in r["snippet"] for r in results)
        result = next(r for r in results if r["block_kind"] == "code")
        assert result["block_id"] == "guides/setup.md#3"
        assert result["page_id"] == "guides/setup.md"
        assert result["title"] == "Setup Guide"
        assert result["block_kind"] == "code"
        assert result["source_type"] == "file"

    def test_search_source_type_filter(self, mcp):
        get_tool(mcp, "reindex")()
        search = get_tool(mcp, "search")

        assert search(query="rotation", source_type="notion") == []
        assert len(search(query="rotation", source_type="file")) == 1

    def test_search_limit(self, mcp):
        get_tool(mcp, "reindex")()
        search = get_tool(mcp, "search")

        assert len(search(query="Setup", limit=2)) == 2


class TestIndexStatus:
    def test_status_before_first_rotation(self, mcp):
        status = get_tool(mcp, "index_status")()

        assert status == {"index": "note_index", "current": None, "documents": 0, "generations": []}

    def test_status_after_rotation(self, mcp):
        get_tool(mcp, "reindex")()

        status = get_tool(mcp, "index_status")()

        assert status["current"] == "note_index_0"
        assert status["documents"] == 11
        assert status["generations"] == [{"name": "note_index_0", "sealed": True}]


class TestReindex:
    def test_reindex_publishes(self, mcp):
        reindex = get_tool(mcp, "reindex")

        first = reindex()
        second = reindex()

        assert first["status"] == "published"
        assert first["index"] == "note_index_0"
        assert first["records"] == {"file": 11}
        assert second["index"] == "note_index_1"
        assert second["previous"] == "note_index_0"
        assert second["retired"] == ["note_index_0"]
        assert second["retire_errors"] == []

    def test_reindex_rejected_when_read_only(self, config):
        config.read_only = True
        run_rotation = MagicMock()
        server = FastMCP()
        register_tools(server, config, MagicMock(), run_rotation)

        result = get_tool(server, "reindex")()

        assert result["status"] == "rejected"
        run_rotation.assert_not_called()

    def test_reindex_failure_reports_phase(self, config):
        run_rotation = MagicMock(side_effect=FetchError("Producer file failed", "note_index_1", kind="file"))
        server = FastMCP()
        register_tools(server, config, MagicMock(), run_rotation)

        result = get_tool(server, "reindex")()

        assert result == {
            "status": "failed",
            "phase": "populating",
            "index": "note_index_1",
            "error": "Producer file failed",
        }

    def test_failed_reindex_keeps_serving(self, mcp, config, tmp_path):
        get_tool(mcp, "reindex")()

        # Point a second server at a notes root that no longer exists
        config.notes_root = tmp_path / "gone"
        engine = create_engine(config)
        failing = FastMCP()
        register_tools(failing, config, engine, create_runner(config, engine, create_publisher(config, engine)))

        result = get_tool(failing, "reindex")()

        assert result["status"] == "failed"
        assert result["index"] == "note_index_1"
        assert get_tool(mcp, "index_status")()["current"] == "note_index_0"
        assert len(get_tool(mcp, "search")(query="pip")) == 2

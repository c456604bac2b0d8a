"""Tests for main module."""

import json
import logging
from pathlib import Path

import pytest

from pxnote.config import Config
from pxnote.engine import ElasticsearchEngine, SqliteEngine
from pxnote.main import create_engine, create_publisher, create_server, run_once, show_status

FIXTURES_NOTES = Path(__file__).parent / "fixtures" / "notes"


@pytest.fixture
def env(tmp_path, monkeypatch):
    """SQLite backend over the fixture notes."""
    monkeypatch.setenv("PXNOTE_BACKEND", "sqlite")
    monkeypatch.setenv("PXNOTE_DB", str(tmp_path / "index.db"))
    monkeypatch.setenv("PXNOTE_NOTES_ROOT", str(FIXTURES_NOTES))
    for name in ("PXNOTE_NOTION_TOKEN", "PXNOTE_INDEX_NAME", "PXNOTE_READ_ONLY", "PXNOTE_ROTATE_INTERVAL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_create_server(env, caplog):
    """Test create_server initializes all components."""
    config = Config.from_env()

    with caplog.at_level(logging.INFO):
        mcp, scheduler = create_server(config)

    assert mcp is not None
    assert mcp.name == "pxnote"
    assert scheduler is not None
    assert scheduler._thread is None

    log_messages = [record.message for record in caplog.records]
    assert any("Registering tools" in msg for msg in log_messages)
    assert any("Server configured successfully" in msg for msg in log_messages)


def test_create_server_indexes_empty_engine(env, caplog):
    """Test that create_server publishes a first generation when none exists."""
    config = Config.from_env()

    with caplog.at_level(logging.INFO):
        create_server(config)

    log_messages = [record.message for record in caplog.records]
    assert any("No published generation, performing initial index" in msg for msg in log_messages)
    assert any("Initial index complete: 11 records" in msg for msg in log_messages)

    engine = SqliteEngine(config.db_path)
    assert [info.name for info in engine.list_indices("note_index")] == ["note_index_0"]
    engine.close()


def test_create_server_skips_initial_index_when_published(env, caplog):
    """Test that an existing generation is served as is."""
    config = Config.from_env()
    assert run_once(config) == 0

    caplog.clear()
    with caplog.at_level(logging.INFO):
        create_server(config)

    log_messages = [record.message for record in caplog.records]
    assert not any("performing initial index" in msg for msg in log_messages)


def test_create_server_read_only(env, caplog):
    """Test read-only servers never rotate."""
    config = Config.from_env(read_only_override=True)

    with caplog.at_level(logging.INFO):
        _, scheduler = create_server(config)

    assert scheduler is None
    log_messages = [record.message for record in caplog.records]
    assert not any("performing initial index" in msg for msg in log_messages)
    assert any("Periodic rotation disabled" in msg for msg in log_messages)


def test_create_server_rotation_disabled(env):
    """Test PXNOTE_ROTATE_INTERVAL=0 disables the scheduler."""
    env.setenv("PXNOTE_ROTATE_INTERVAL", "0")
    _, scheduler = create_server(Config.from_env())
    assert scheduler is None


def test_create_server_survives_failed_initial_index(env, tmp_path, caplog):
    """Test a failed first rotation is logged and the server still starts."""
    env.setenv("PXNOTE_NOTES_ROOT", str(tmp_path / "missing"))
    config = Config.from_env()

    with caplog.at_level(logging.INFO):
        mcp, _ = create_server(config)

    assert mcp is not None
    assert any("Initial index failed" in record.message for record in caplog.records)


def test_run_once(env, capsys):
    """Test a single rotation prints its summary."""
    assert run_once(Config.from_env()) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["status"] == "published"
    assert summary["index"] == "note_index_0"
    assert summary["records"] == {"file": 11}


def test_run_once_failure(env, tmp_path):
    """Test a failed rotation exits non-zero."""
    env.setenv("PXNOTE_NOTES_ROOT", str(tmp_path / "missing"))
    assert run_once(Config.from_env()) == 1


def test_show_status(env, capsys):
    """Test status prints the directory snapshot."""
    config = Config.from_env()
    run_once(config)
    capsys.readouterr()

    assert show_status(config) == 0

    snapshot = json.loads(capsys.readouterr().out)
    assert snapshot["note_index"]["current"] == "note_index_0"
    assert snapshot["note_index"]["next"] == "note_index_1"


def test_create_engine_elasticsearch(monkeypatch):
    """Test the default backend is Elasticsearch."""
    monkeypatch.delenv("PXNOTE_BACKEND", raising=False)
    engine = create_engine(Config.from_env())
    assert isinstance(engine, ElasticsearchEngine)
    engine.close()


def test_create_publisher_without_sources(env, caplog):
    """Test a publisher with no producers is created with a warning."""
    env.delenv("PXNOTE_NOTES_ROOT")
    config = Config.from_env()

    with caplog.at_level(logging.INFO):
        publisher = create_publisher(config, create_engine(config))

    assert publisher.producers == []
    assert any("No producers configured" in record.message for record in caplog.records)

"""Configuration module for pxnote.

Loads configuration from environment variables with sensible defaults.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path

BACKENDS = ("elasticsearch", "sqlite")

INDEX_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_]*$")


def _parse_int(name: str, default: str, minimum: int) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
        if value < minimum:
            raise ValueError(f"must be >= {minimum}, got {value}")
    except ValueError as e:
        raise ValueError(f"Invalid {name} value '{raw}': {e}") from e
    return value


def _parse_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
        if value <= 0:
            raise ValueError(f"must be positive, got {value}")
    except ValueError as e:
        raise ValueError(f"Invalid {name} value '{raw}': {e}") from e
    return value


def _parse_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


@dataclass
class Config:
    """Application configuration."""

    backend: str
    es_url: str
    es_api_key: str | None
    db_path: Path
    index_name: str
    shards: int
    replicas: int
    list_timeout: float
    request_timeout: float
    bulk_batch_size: int
    notion_token: str | None
    notion_timeout: float
    notes_root: Path | None
    port: int
    rotate_interval: int
    read_only: bool

    @classmethod
    def from_env(cls, read_only_override: bool | None = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            read_only_override: If provided, overrides the PXNOTE_READ_ONLY env var.
        """
        backend = os.getenv("PXNOTE_BACKEND", "elasticsearch").lower()
        if backend not in BACKENDS:
            raise ValueError(
                f"Invalid PXNOTE_BACKEND value '{backend}': expected one of {', '.join(BACKENDS)}"
            )

        default_db = str(Path.home() / ".pxnote" / "index.db")
        db_path = Path(os.getenv("PXNOTE_DB", default_db)).expanduser()

        index_name = os.getenv("PXNOTE_INDEX_NAME", "note_index")
        if not INDEX_NAME_PATTERN.match(index_name):
            raise ValueError(
                f"Invalid PXNOTE_INDEX_NAME value '{index_name}': "
                "use lowercase letters, digits and underscores"
            )

        port = _parse_int("PXNOTE_PORT", "8080", 1)
        if port > 65535:
            raise ValueError(f"Invalid PXNOTE_PORT value '{port}': Port must be between 1 and 65535")

        notes_root_env = os.getenv("PXNOTE_NOTES_ROOT")
        notes_root = Path(notes_root_env).expanduser() if notes_root_env else None

        if read_only_override is not None:
            read_only = read_only_override
        else:
            read_only = _parse_flag("PXNOTE_READ_ONLY")

        return cls(
            backend=backend,
            es_url=os.getenv("PXNOTE_ES_URL", "http://localhost:9200"),
            es_api_key=os.getenv("PXNOTE_ES_API_KEY") or None,
            db_path=db_path,
            index_name=index_name,
            shards=_parse_int("PXNOTE_SHARDS", "1", 1),
            replicas=_parse_int("PXNOTE_REPLICAS", "0", 0),
            list_timeout=_parse_float("PXNOTE_LIST_TIMEOUT", "5"),
            request_timeout=_parse_float("PXNOTE_REQUEST_TIMEOUT", "30"),
            bulk_batch_size=_parse_int("PXNOTE_BULK_BATCH_SIZE", "500", 1),
            notion_token=os.getenv("PXNOTE_NOTION_TOKEN") or None,
            notion_timeout=_parse_float("PXNOTE_NOTION_TIMEOUT", "20"),
            notes_root=notes_root,
            port=port,
            rotate_interval=_parse_int("PXNOTE_ROTATE_INTERVAL", "3600", 0),
            read_only=read_only,
        )


"""Parser for YAML front matter in markdown notes."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

import yaml

logger = logging.getLogger(__name__)


@dataclass
class FrontMatter:
    """Parsed front matter data."""

    title: str | None = None
    created: int | None = None  # Epoch seconds
    raw: dict | None = None


def _to_epoch_seconds(value: object) -> int | None:
    """Convert a YAML date, datetime or epoch number to epoch seconds."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())
    if isinstance(value, str):
        try:
            return _to_epoch_seconds(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None


def parse_frontmatter(content: str, file_path: str) -> tuple[FrontMatter, str]:
    """
    Parse YAML front matter from markdown content.

    Invalid YAML is logged and treated as body text.

    Args:
        content: The full markdown content
        file_path: Path used in log messages

    Returns:
        Tuple of (FrontMatter, content_without_front_matter)
    """
    data = FrontMatter()
    body = content

    if content.startswith("---"):
        parts = content.split("---", 2)
        if len(parts) >= 3:
            try:
                raw = yaml.safe_load(parts[1])
            except yaml.YAMLError as e:
                logger.debug("Invalid YAML front matter in %s: %s", file_path, e)
                return data, body

            if raw is None:
                raw = {}
            if isinstance(raw, dict):
                data.raw = raw
                title = raw.get("title")
                if title is not None:
                    data.title = str(title).strip() or None
                data.created = _to_epoch_seconds(raw.get("created"))

                body = parts[2].lstrip("\n")

    return data, body

"""Snapshot of the physical generations that exist on the search engine."""

import logging
from dataclasses import dataclass, field

from pxnote.engine.base import EngineError, SearchEngine
from pxnote.errors import DirectoryError
from pxnote.naming import next_generation, parse_physical_name, physical_name

logger = logging.getLogger(__name__)

# Directory listing is a cheap metadata call; keep it short
LIST_TIMEOUT = 5.0


@dataclass
class LogicalIndex:
    """Generations known for one logical index name."""

    name: str
    generations: list[int] = field(default_factory=list)
    sealed: set[int] = field(default_factory=set)

    @property
    def highest(self) -> int | None:
        return self.generations[-1] if self.generations else None

    @property
    def current(self) -> int | None:
        """Highest generation whose population completed."""
        return max(self.sealed) if self.sealed else None


class IndexDirectory:
    """Caller-owned view of the engine's index namespace under one prefix.

    The snapshot is rebuilt from scratch on every refresh(), so it always
    reflects what the engine holds, including stray generations left behind
    by a crashed or failed cycle.
    """

    def __init__(self, engine: SearchEngine, prefix: str, timeout: float = LIST_TIMEOUT):
        self._engine = engine
        self.prefix = prefix
        self.timeout = timeout
        self._indices: dict[str, LogicalIndex] = {}

    def refresh(self) -> None:
        """Rebuild the snapshot from the engine.

        Raises:
            DirectoryError: If listing fails or any matching name cannot be
                parsed. The previous snapshot is kept in that case.
        """
        try:
            infos = self._engine.list_indices(self.prefix, timeout=self.timeout)
        except EngineError as e:
            raise DirectoryError(f"Listing indices for prefix {self.prefix!r} failed: {e}") from e

        indices: dict[str, LogicalIndex] = {}
        for info in infos:
            # A skipped stale generation would later collide on creation
            logical, generation = parse_physical_name(info.name)
            entry = indices.setdefault(logical, LogicalIndex(name=logical))
            entry.generations.append(generation)
            if info.sealed:
                entry.sealed.add(generation)

        for entry in indices.values():
            entry.generations.sort()

        self._indices = indices
        logger.debug(
            "Directory refreshed for %r: %s",
            self.prefix,
            {name: entry.generations for name, entry in indices.items()},
        )

    def logical_names(self) -> list[str]:
        return sorted(self._indices)

    def generations(self, logical: str) -> list[int]:
        entry = self._indices.get(logical)
        return list(entry.generations) if entry else []

    def current_generation(self, logical: str) -> int | None:
        entry = self._indices.get(logical)
        return entry.current if entry else None

    def current_name(self, logical: str) -> str | None:
        """Physical name readers should query, or None if nothing is published."""
        generation = self.current_generation(logical)
        if generation is None:
            return None
        return physical_name(logical, generation)

    def next_name(self, logical: str) -> str:
        """Physical name for the next generation.

        Counts unsealed orphans too, so a failed generation is never reused.
        """
        entry = self._indices.get(logical)
        return physical_name(logical, next_generation(entry.highest if entry else None))

    def physical_names(self, logical: str) -> list[str]:
        """Every known generation of logical, sealed or not, oldest first."""
        return [physical_name(logical, g) for g in self.generations(logical)]

    def snapshot(self) -> dict[str, dict]:
        """Describe every logical index, for status reporting."""
        return {
            logical: {
                "current": self.current_name(logical),
                "next": self.next_name(logical),
                "generations": [
                    {"name": physical_name(logical, g), "sealed": g in entry.sealed}
                    for g in entry.generations
                ],
            }
            for logical, entry in sorted(self._indices.items())
        }

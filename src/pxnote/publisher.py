"""Zero-downtime rotation of a logical index across physical generations.

One rotation cycle:

    IDLE -> PREPARING -> CREATING -> POPULATING -> SWAPPED -> RETIRING -> IDLE
                 \\            \\            \\
                  +------------+------------+--> FAILED

The prior generation is only deleted after the new one is fully populated and
sealed. Any failure before that leaves the prior generation untouched and
serving; a partially populated new generation is left on the engine for
inspection rather than deleted.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pxnote.directory import IndexDirectory
from pxnote.engine.base import EngineError, SearchEngine
from pxnote.errors import (
    BulkWriteError,
    CreateError,
    FetchError,
    PublishError,
    RetireError,
    RotationCancelled,
)
from pxnote.producers.base import Producer
from pxnote.records import INDEX_MAPPING, Record, SourceType, index_settings

logger = logging.getLogger(__name__)

# Documents per bulk request
BULK_BATCH_SIZE = 500


class RotationState(str, Enum):
    """States of a rotation cycle."""

    IDLE = "idle"
    PREPARING = "preparing"
    CREATING = "creating"
    POPULATING = "populating"
    SWAPPED = "swapped"
    RETIRING = "retiring"
    FAILED = "failed"


@dataclass
class RotationResult:
    """Outcome of a successful rotation cycle."""

    logical_name: str
    index_name: str
    previous_name: str | None
    record_counts: dict[str, int] = field(default_factory=dict)
    retired: list[str] = field(default_factory=list)
    retire_errors: list[RetireError] = field(default_factory=list)
    states: list[RotationState] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return sum(self.record_counts.values())


class RotationPublisher:
    """Publishes records from every registered producer into a fresh generation.

    The publisher holds no directory state between cycles: the caller owns the
    IndexDirectory and passes it to every index_all() call. Cycles for the same
    logical name must not run concurrently.
    """

    def __init__(
        self,
        engine: SearchEngine,
        logical_name: str,
        settings: dict[str, Any] | None = None,
        mapping: dict[str, Any] | None = None,
        batch_size: int = BULK_BATCH_SIZE,
        timeout: float | None = None,
    ):
        """
        Args:
            engine: Search engine holding the generations
            logical_name: Stable name readers address, e.g. "note_index"
            settings: Index settings for new generations (shard counts)
            mapping: Field mapping for new generations
            batch_size: Documents per bulk request
            timeout: Timeout for create, bulk, seal and delete calls
        """
        if batch_size <= 0:
            raise ValueError(f"Batch size must be positive, got {batch_size}")
        self._engine = engine
        self.logical_name = logical_name
        self.settings = settings if settings is not None else index_settings()
        self.mapping = mapping if mapping is not None else INDEX_MAPPING
        self.batch_size = batch_size
        self.timeout = timeout
        self._producers: dict[SourceType, Producer] = {}

    def register(self, producer: Producer) -> None:
        """Register a producer under its kind, replacing any earlier one."""
        if producer.kind in self._producers:
            logger.info("Replacing producer registered for %s", producer.kind.value)
        self._producers[producer.kind] = producer

    @property
    def producers(self) -> list[Producer]:
        """Registered producers in registration order."""
        return list(self._producers.values())

    def index_all(
        self,
        directory: IndexDirectory,
        cancel: threading.Event | None = None,
    ) -> RotationResult:
        """Run one rotation cycle.

        Args:
            directory: Caller-owned directory, refreshed as the first step
            cancel: Optional event; once set, the cycle aborts before the
                next producer or bulk batch

        Returns:
            RotationResult describing the new generation. Failures to delete
            stale generations are reported in retire_errors.

        Raises:
            DirectoryError, CreateError, FetchError, BulkWriteError,
            RotationCancelled: The cycle failed and the previously published
                generation is untouched.
        """
        if self.logical_name != directory.prefix and not self.logical_name.startswith(f"{directory.prefix}_"):
            raise ValueError(
                f"Directory prefix {directory.prefix!r} does not cover {self.logical_name!r}"
            )
        # Publishing nothing would retire the live generation in favour of an empty one
        if not self._producers:
            raise PublishError(f"No producers registered for {self.logical_name}")

        states: list[RotationState] = []

        def enter(state: RotationState) -> None:
            states.append(state)
            logger.info("Rotation of %s: %s", self.logical_name, state.value)

        try:
            enter(RotationState.PREPARING)
            directory.refresh()
            previous_name = directory.current_name(self.logical_name)
            stale_names = directory.physical_names(self.logical_name)
            index_name = directory.next_name(self.logical_name)

            enter(RotationState.CREATING)
            self._create(index_name)

            enter(RotationState.POPULATING)
            counts = self._populate(index_name, cancel)
            self._seal(index_name)
        except PublishError as e:
            enter(RotationState.FAILED)
            logger.error("Rotation of %s failed while %s: %s", self.logical_name, e.phase, e)
            raise

        enter(RotationState.SWAPPED)
        result = RotationResult(
            logical_name=self.logical_name,
            index_name=index_name,
            previous_name=previous_name,
            record_counts=counts,
            states=states,
        )

        enter(RotationState.RETIRING)
        self._retire(stale_names, result)

        enter(RotationState.IDLE)
        logger.info(
            "Rotation of %s complete: %s is live with %d records (previous: %s)",
            self.logical_name,
            index_name,
            result.total_records,
            previous_name or "none",
        )
        return result

    def _create(self, index_name: str) -> None:
        try:
            self._engine.create_index(index_name, self.mapping, self.settings, timeout=self.timeout)
        except EngineError as e:
            raise CreateError(f"Creating {index_name} failed: {e}", index_name) from e

    def _populate(self, index_name: str, cancel: threading.Event | None) -> dict[str, int]:
        counts: dict[str, int] = {}
        for producer in self.producers:
            kind = producer.kind.value
            self._check_cancelled(cancel, index_name)

            try:
                records = producer.fetch_index()
            except Exception as e:
                raise FetchError(
                    f"Producer {kind} failed while populating {index_name}: {e}",
                    index_name,
                    kind=kind,
                ) from e

            for record in records:
                if record.source_type != producer.kind:
                    raise FetchError(
                        f"Producer {kind} returned record {record.block_id} "
                        f"tagged {SourceType(record.source_type).value}",
                        index_name,
                        kind=kind,
                    )

            self._write(index_name, records, cancel)
            counts[kind] = len(records)
            logger.info("Wrote %d %s records into %s", len(records), kind, index_name)
        return counts

    def _write(self, index_name: str, records: list[Record], cancel: threading.Event | None) -> None:
        for start in range(0, len(records), self.batch_size):
            self._check_cancelled(cancel, index_name)
            batch = records[start : start + self.batch_size]
            try:
                self._engine.bulk_index(index_name, batch, timeout=self.timeout)
            except EngineError as e:
                raise BulkWriteError(f"Bulk write into {index_name} failed: {e}", index_name) from e

    def _seal(self, index_name: str) -> None:
        try:
            self._engine.seal_index(index_name, timeout=self.timeout)
        except EngineError as e:
            raise BulkWriteError(f"Sealing {index_name} failed: {e}", index_name) from e

    def _retire(self, stale_names: list[str], result: RotationResult) -> None:
        for name in stale_names:
            try:
                self._engine.delete_index(name, timeout=self.timeout)
            except EngineError as e:
                error = RetireError(f"Deleting stale generation {name} failed: {e}", name)
                error.__cause__ = e
                result.retire_errors.append(error)
                logger.warning("%s (new generation %s stays live)", error, result.index_name)
                continue
            result.retired.append(name)
            logger.info("Retired %s", name)

    @staticmethod
    def _check_cancelled(cancel: threading.Event | None, index_name: str) -> None:
        if cancel is not None and cancel.is_set():
            raise RotationCancelled(f"Rotation into {index_name} was cancelled", index_name)

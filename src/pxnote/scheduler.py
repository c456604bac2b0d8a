"""Background scheduler for periodic rotation cycles.

Runs a daemon thread that calls the rotation cycle at a fixed interval. Cycles
run one after another on that single thread, so a rotation never overlaps
with itself.
"""

import logging
import threading
from collections.abc import Callable

from pxnote.directory import IndexDirectory
from pxnote.errors import PublishError
from pxnote.publisher import RotationPublisher, RotationResult

logger = logging.getLogger(__name__)


class RotationRunner:
    """Runs rotation cycles one at a time.

    Every cycle gets a freshly created directory. A cycle requested while
    another one is running is refused rather than queued.
    """

    def __init__(
        self,
        publisher: RotationPublisher,
        directory_factory: Callable[[], IndexDirectory],
    ):
        self._publisher = publisher
        self._directory_factory = directory_factory
        self._lock = threading.Lock()

    def __call__(self, cancel: threading.Event | None = None) -> RotationResult:
        if not self._lock.acquire(blocking=False):
            raise PublishError(f"A rotation of {self._publisher.logical_name} is already running")
        try:
            return self._publisher.index_all(self._directory_factory(), cancel=cancel)
        finally:
            self._lock.release()


class RotationScheduler:
    """Runs rotation cycles periodically in a background thread.

    A failed cycle is logged and retried at the next interval; the previously
    published generation keeps serving in the meantime.
    """

    def __init__(self, run_cycle: Callable[[threading.Event], RotationResult], interval: int):
        """Initialize the scheduler.

        Args:
            run_cycle: Runs one rotation cycle; receives the stop event as its
                cancellation signal.
            interval: Seconds between cycles. Must be > 0.
        """
        if interval <= 0:
            raise ValueError(f"Rotation interval must be positive, got {interval}")

        self._run_cycle = run_cycle
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the background rotation thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Rotation thread already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._rotation_loop,
            name="pxnote-rotation",
            daemon=True,
        )
        self._thread.start()
        logger.info("Rotation scheduler started (interval: %ds)", self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """Stop the background thread.

        Sets the stop event, which also cancels a cycle in progress, then waits
        for the thread to exit.
        """
        if self._thread is None or not self._thread.is_alive():
            return

        self._stop_event.set()
        self._thread.join(timeout=timeout if timeout is not None else self._interval + 1)
        if self._thread.is_alive():
            logger.warning("Rotation thread did not stop cleanly")
        else:
            logger.info("Rotation scheduler stopped")
        self._thread = None

    def _rotation_loop(self) -> None:
        logger.debug("Rotation loop started")

        while not self._stop_event.is_set():
            # Wait first, then rotate (allows immediate shutdown on start)
            if self._stop_event.wait(timeout=self._interval):
                break

            try:
                result = self._run_cycle(self._stop_event)
                if result.retire_errors:
                    logger.warning(
                        "Scheduled rotation published %s with %d retire errors",
                        result.index_name,
                        len(result.retire_errors),
                    )
            except PublishError as e:
                logger.error("Scheduled rotation failed, will retry next interval: %s", e)
            except Exception:
                logger.exception("Unexpected error during scheduled rotation")

        logger.debug("Rotation loop stopped")

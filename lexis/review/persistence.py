"""
Fire-and-forget persistence of schedule updates.

The review session applies every grade locally and hands the resulting state
to a PersistenceWorker. The worker writes it to the store on a background
thread so the reviewer never waits on I/O. Failed writes are logged and
counted, never raised back into the session; the next fetch from the store
reconciles whatever was lost.

Usage:
    worker = PersistenceWorker(store)
    worker.start()
    worker.dispatch(PersistRequest(...))
    # ... session runs ...
    worker.stop()
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Protocol

from loguru import logger

from .grades import ReviewGrade
from .state import ScheduleState

if TYPE_CHECKING:
    from .store import ScheduleStore


@dataclass(frozen=True)
class PersistRequest:
    """A complete schedule update for one item."""

    user_id: str
    item_id: str
    state: ScheduleState
    grade: ReviewGrade
    session_id: str | None = None


class PersistenceDispatcher(Protocol):
    """Anything that accepts persistence requests without blocking."""

    def dispatch(self, request: PersistRequest) -> None: ...


@dataclass
class PersistenceStatus:
    """Running totals for the worker."""

    is_running: bool = False
    dispatched: int = 0
    persisted: int = 0
    failed: int = 0
    log_failed: int = 0
    last_error: str | None = None
    last_failed_item: str | None = None
    last_persisted_at: datetime | None = None


# Queue sentinel that tells the thread to exit
_STOP = object()


@dataclass
class PersistenceWorker:
    """
    Background writer for schedule updates.

    Requests are processed in FIFO order on a single daemon thread. Each
    request carries the full state of one item, so a late or repeated write
    never corrupts another item.
    """

    store: ScheduleStore
    log_reviews: bool = True
    on_failure: Callable[[PersistRequest, Exception], None] | None = None

    # Internal state
    _status: PersistenceStatus = field(default_factory=PersistenceStatus)
    _queue: queue.Queue = field(default_factory=queue.Queue, repr=False)
    _thread: threading.Thread | None = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def status(self) -> PersistenceStatus:
        """Get current worker status."""
        return self._status

    @property
    def pending(self) -> int:
        """Approximate number of queued requests."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the background thread (no-op if already running)."""
        if self._status.is_running:
            logger.debug("Persistence worker already running")
            return

        self._status.is_running = True
        self._thread = threading.Thread(
            target=self._run,
            name="lexis-persistence",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Persistence worker started")

    def dispatch(self, request: PersistRequest) -> None:
        """
        Queue a request and return immediately.

        Starts the worker on first use.
        """
        if not self._status.is_running:
            self.start()
        with self._lock:
            self._status.dispatched += 1
        self._queue.put(request)

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait until every queued request has been processed.

        Args:
            timeout: Seconds to wait (None waits indefinitely)

        Returns:
            True if the queue drained, False on timeout
        """
        if timeout is None:
            self._queue.join()
            return True

        # Condition.wait_for re-checks unfinished_tasks on every task_done
        with self._queue.all_tasks_done:
            drained = self._queue.all_tasks_done.wait_for(
                lambda: not self._queue.unfinished_tasks, timeout
            )
        if not drained:
            logger.warning(
                "Persistence flush timed out after {}s with {} request(s) pending",
                timeout,
                self.pending,
            )
        return drained

    def stop(self, timeout: float | None = 5.0) -> None:
        """Drain outstanding requests and stop the thread."""
        if not self._status.is_running:
            return

        self._queue.put(_STOP)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

        self._status.is_running = False
        logger.debug(
            "Persistence worker stopped: persisted={}, failed={}, log_failed={}",
            self._status.persisted,
            self._status.failed,
            self._status.log_failed,
        )

    def __enter__(self) -> PersistenceWorker:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _run(self) -> None:
        while True:
            request = self._queue.get()
            try:
                if request is _STOP:
                    return
                self._process(request)
            finally:
                self._queue.task_done()

    def _process(self, request: PersistRequest) -> None:
        try:
            self.store.persist_schedule_state(request.user_id, request.item_id, request.state)
        except Exception as exc:
            with self._lock:
                self._status.failed += 1
                self._status.last_error = str(exc)
                self._status.last_failed_item = request.item_id
            logger.warning("Failed to persist schedule for {}: {}", request.item_id, exc)

            if self.on_failure:
                try:
                    self.on_failure(request, exc)
                except Exception as callback_exc:
                    logger.warning("Persistence failure callback failed: {}", callback_exc)
            return

        with self._lock:
            self._status.persisted += 1
            self._status.last_persisted_at = datetime.now(timezone.utc)
        logger.trace("Persisted schedule for {}", request.item_id)

        if self.log_reviews:
            self._log_review(request)

    def _log_review(self, request: PersistRequest) -> None:
        # The schedule is already saved; a lost log entry only costs history
        try:
            self.store.log_review(
                request.user_id,
                request.item_id,
                request.grade,
                request.state,
                request.session_id,
            )
        except Exception as exc:
            with self._lock:
                self._status.log_failed += 1
                self._status.last_error = str(exc)
            logger.warning("Failed to log review for {}: {}", request.item_id, exc)

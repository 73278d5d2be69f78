"""Background persistence of dirty cache entries.

Cache writes must never wait on file I/O. :class:`SyncScheduler` decouples
them from the disk tier:

* :meth:`SyncScheduler.mark_dirty` records the entry in the dirty map
  (one slot per primary key, later writes replace earlier ones) and queues
  an immediate background write. The caller returns right away.
* A timer thread wakes every ``interval_seconds`` and queues a
  :meth:`~SyncScheduler.flush` of everything still dirty, which picks up
  keys whose earlier write failed or was superseded mid-flight.
* :meth:`SyncScheduler.shutdown` queues a final flush and waits for it, but
  never longer than the given budget.

All disk work runs on one daemon worker thread draining a task queue, so
writes, flushes and cleanups never interleave with each other, and a write
stuck in I/O cannot hold the process open past the shutdown budget. A key leaves the dirty map only after
the exact entry that was written is still the one recorded, so a key
re-dirtied during a flush stays dirty for the next round.
"""

from __future__ import annotations

import concurrent.futures
import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Iterable, Optional

from foxdoc.cache.disk import DiskTier
from foxdoc.models import CacheEntry

logger = logging.getLogger(__name__)

_Task = tuple[Future, Callable[..., Any], tuple[Any, ...]]


class SyncScheduler:
    """Dirty-entry tracker and single-writer flush worker for a :class:`DiskTier`.

    Args:
        disk: The tier to persist into.
        interval_seconds: Period of the background flush timer.

    Example::

        scheduler = SyncScheduler(disk, interval_seconds=30)
        scheduler.start()
        scheduler.mark_dirty("api:1:42", entry)   # returns immediately
        ...
        scheduler.shutdown(timeout=5)
    """

    def __init__(self, disk: DiskTier, interval_seconds: float) -> None:
        self._disk = disk
        self._interval = interval_seconds
        self._dirty: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        # None is the stop sentinel for the worker.
        self._tasks: queue.Queue[Optional[_Task]] = queue.Queue()
        self._stop = threading.Event()
        self._timer: Optional[threading.Thread] = None
        self._closed = False
        self._worker = threading.Thread(target=self._drain, name="foxdoc-sync", daemon=True)
        self._worker.start()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Start the periodic flush timer. Calling it twice is a no-op."""
        if self._timer is not None or self._closed:
            return
        self._timer = threading.Thread(
            target=self._tick, name="foxdoc-sync-timer", daemon=True
        )
        self._timer.start()

    def shutdown(self, timeout: float) -> bool:
        """Stop the timer, flush what is still dirty and wait up to *timeout*.

        Returns:
            ``True`` if the final flush completed within the budget.
        """
        if self._closed:
            return True
        self._stop.set()
        if self._timer is not None:
            self._timer.join(timeout=1)

        pending = len(self.dirty_keys())
        if pending:
            logger.info("Flushing %d dirty cache entries to disk", pending)
        future = self.submit(self.flush)
        with self._lock:
            self._closed = True
        self._tasks.put(None)
        if future is None:
            return True
        try:
            future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            logger.warning(
                "Final cache flush did not finish within %.1fs; %d entries may be lost",
                timeout,
                len(self.dirty_keys()),
            )
            return False
        return True

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._stop.is_set()

    # ------------------------------------------------------------------ #
    # Dirty tracking
    # ------------------------------------------------------------------ #

    def mark_dirty(self, key: str, entry: CacheEntry) -> None:
        """Record *entry* as unflushed and queue a background write for it."""
        with self._lock:
            self._dirty[key] = entry
        self.submit(self._write_one, key, entry)

    def discard(self, keys: Iterable[str]) -> None:
        """Forget pending writes for *keys* (used when entries are cleared).

        Hold :attr:`DiskTier.lock` while calling this together with the
        matching disk removal so an in-flight write cannot resurrect them.
        """
        with self._lock:
            for key in keys:
                self._dirty.pop(key, None)

    def discard_prefix(self, prefix: str) -> list[str]:
        with self._lock:
            doomed = [k for k in self._dirty if k.startswith(prefix)]
            for key in doomed:
                del self._dirty[key]
        return doomed

    def discard_all(self) -> None:
        with self._lock:
            self._dirty.clear()

    def dirty_keys(self) -> set[str]:
        with self._lock:
            return set(self._dirty)

    def pending(self, key: str) -> Optional[CacheEntry]:
        """The unflushed entry recorded for *key*, if any."""
        with self._lock:
            return self._dirty.get(key)

    # ------------------------------------------------------------------ #
    # Flushing
    # ------------------------------------------------------------------ #

    def flush(self) -> int:
        """Write every dirty entry to disk. Runs on the worker thread.

        Also trims the disk tier when it has grown past its capacity.

        Returns:
            Number of entries written.
        """
        with self._lock:
            batch = list(self._dirty.items())
        if batch:
            logger.debug("Syncing %d dirty keys to disk", len(batch))
        written = sum(1 for key, entry in batch if self._write_one(key, entry))
        if self._disk.size() > self._disk.capacity():
            self._disk.cleanup()
        return written

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every task queued so far has run.

        Returns:
            ``False`` if *timeout* elapsed first.
        """
        future = self.submit(lambda: None)
        if future is None:
            return True
        try:
            future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            return False
        return True

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _write_one(self, key: str, entry: CacheEntry) -> bool:
        with self._disk.lock:
            with self._lock:
                if self._dirty.get(key) is not entry:
                    # Superseded by a newer put, or cleared.
                    return False
            if not self._disk.write(key, entry):
                return False
            with self._lock:
                if self._dirty.get(key) is entry:
                    del self._dirty[key]
        return True

    def _tick(self) -> None:
        while not self._stop.wait(self._interval):
            self.submit(self.flush)

    def submit(self, fn: Callable[..., Any], *args: Any) -> Optional[Future]:
        """Queue *fn(*args)* on the worker thread.

        Returns:
            A future for the call, or ``None`` once the scheduler is shut down.
        """
        with self._lock:
            if self._closed:
                return None
            future: Future = Future()
            self._tasks.put((future, fn, args))
        return future

    def _drain(self) -> None:
        while True:
            task = self._tasks.get()
            if task is None:
                return
            future, fn, args = task
            if future.set_running_or_notify_cancel():
                future.set_result(self._run_logged(fn, *args))

    @staticmethod
    def _run_logged(fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception:
            logger.exception("Background cache sync task failed")
            return None

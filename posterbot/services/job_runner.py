"""In-process background task runner."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class JobRunner:
    """Thread pool for work that must outlive the request that started it.

    Each submitted task returns a ``Future`` so callers (and tests) can
    observe completion.  Uncaught exceptions are logged when the task ends.
    """

    def __init__(self, max_workers: int = 4, name: str = "posterbot-worker"):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future = self._executor.submit(fn, *args, **kwargs)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._done)
        return future

    def join(self, timeout: Optional[float] = None) -> None:
        """Block until every task submitted so far has finished."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_tasks)

    def _done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)

"""Publication progress events and the channel that streams them.

The publication runs in a worker thread; the HTTP handler drains the
channel as server-sent events.  When the client goes away the handler
closes the channel: later events are dropped, the publication itself
keeps running to completion.
"""

import asyncio
import json
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Literal, Optional

logger = logging.getLogger(__name__)

StepStatus = Literal["in_progress", "completed", "error"]

# How often the stream checks for a disconnected client while idle.
POLL_INTERVAL = 0.5


@dataclass(frozen=True)
class ProgressEvent:
    step: str
    status: StepStatus
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        event = {"step": self.step, "status": self.status, "message": self.message}
        if self.data is not None:
            event["data"] = self.data
        return event

    def to_sse(self) -> str:
        """Render as one ``text/event-stream`` frame."""
        return f"data: {json.dumps(self.to_dict())}\n\n"


class ProgressChannel:
    """Thread-safe one-way queue of progress events.

    Producer side: :meth:`send` then :meth:`finish`.  Consumer side:
    :meth:`stream`, or :meth:`close` to stop listening.
    """

    _END = object()

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, event: ProgressEvent) -> None:
        if self.closed:
            logger.debug("Progress channel closed, dropping %s/%s", event.step, event.status)
            return
        self._queue.put(event)

    def finish(self) -> None:
        """Mark the end of the stream (producer side)."""
        self._queue.put(self._END)

    def close(self) -> None:
        """Stop delivering events (consumer side). Idempotent."""
        self._closed.set()

    def get(self, timeout: Optional[float] = None) -> Optional[ProgressEvent]:
        """Next event, or None once the stream is finished or closed.

        Raises:
            queue.Empty: Nothing arrived within *timeout*
        """
        if self.closed:
            return None
        item = self._queue.get(timeout=timeout)
        if item is self._END:
            return None
        return item

    async def stream(
        self, is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None
    ) -> AsyncIterator[str]:
        """Yield SSE frames until the producer finishes or the client leaves.

        Args:
            is_disconnected: Coroutine function reporting client disconnect
                (``Request.is_disconnected``)
        """
        try:
            while not self.closed:
                try:
                    event = await asyncio.to_thread(self.get, POLL_INTERVAL)
                except queue.Empty:
                    if is_disconnected is not None and await is_disconnected():
                        logger.info("Progress stream client disconnected")
                        break
                    continue
                if event is None:
                    break
                yield event.to_sse()
        finally:
            self.close()

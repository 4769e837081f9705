"""Error sink shared by concurrent build tasks.

Many tasks write into the sink, a single consumer reads from it. The sink
is unbounded so writers never block, which also lets the consumer stop
reading after the first error without stranding any writer.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator

from multiarch_build.errors import BuildError


class SinkClosedError(RuntimeError):
    """Raised when writing to a sink that has already been closed."""


_CLOSED = object()


class ErrorSink:
    """Many-producer, single-consumer channel of build errors."""

    def __init__(self) -> None:
        self._queue: queue.Queue[object] = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def count(self) -> int:
        """Number of errors written so far."""
        with self._lock:
            return self._count

    def put(self, error: BuildError) -> None:
        """Write an error.

        Raises:
            SinkClosedError: If the sink was already closed.
        """
        with self._lock:
            if self._closed:
                raise SinkClosedError(f"Error sink closed, dropping: {error}")
            self._count += 1
            self._queue.put_nowait(error)

    def close(self) -> None:
        """Signal that no further errors will be written. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __iter__(self) -> Iterator[BuildError]:
        """Yield errors as they arrive until the sink is closed."""
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # Leave the marker for any later iteration
                self._queue.put_nowait(_CLOSED)
                return
            yield item  # type: ignore[misc]

    def drain(self) -> list[BuildError]:
        """Block until closed and return every error written."""
        return list(self)


__all__ = ["ErrorSink", "SinkClosedError"]

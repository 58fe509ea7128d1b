"""
Buffered Request Logger Adapter.

Collects not-found misses in memory and writes them to a sink in
batches on a background thread, so logging never blocks a response.

Key behaviors:
- log_request() only appends under a lock and returns
- Once `threshold` entries are pending the worker is woken to flush
- The worker also flushes every `flush_interval` seconds, so a short
  burst below the threshold is not held in memory indefinitely
- The buffer holds at most `buffer_size` entries; further misses are
  dropped with a warning until the worker catches up
- Sink failures are logged and the batch is dropped, never retried
- close() stops the worker and flushes what is left
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from src.adapters.clock import ClockPort, SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotFoundRequest:
    """One logged miss."""

    url: str
    referrer: str
    requested_at: datetime


class NotFoundLogSinkPort(Protocol):
    """Durable storage for logged misses."""

    def save_many(self, entries: list[NotFoundRequest]) -> None:
        """Persist a batch of misses."""
        ...


class BufferedRequestLogger:
    """
    Fire-and-forget miss logger (implements MissLoggerPort).

    Thread-safe; one worker thread per instance once started.
    """

    def __init__(
        self,
        sink: NotFoundLogSinkPort,
        buffer_size: int = 30,
        threshold: int = 5,
        clock: ClockPort | None = None,
        flush_interval: float = 30.0,
    ) -> None:
        self._sink = sink
        self._buffer_size = max(1, buffer_size)
        self._threshold = max(1, min(threshold, self._buffer_size))
        self._clock = clock or SystemClock()
        self._flush_interval = flush_interval
        self._pending: list[NotFoundRequest] = []
        self._lock = threading.Lock()
        self._wake = threading.Event()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._dropped = 0

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def dropped_count(self) -> int:
        return self._dropped

    @property
    def flush_requested(self) -> bool:
        return self._wake.is_set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def log_request(self, url: str, referrer: str) -> None:
        entry = NotFoundRequest(url=url, referrer=referrer, requested_at=self._clock.now_utc())
        with self._lock:
            if len(self._pending) >= self._buffer_size:
                self._dropped += 1
                logger.warning(
                    "Not-found log buffer full (%d entries), dropping %s",
                    self._buffer_size,
                    url,
                )
                return
            self._pending.append(entry)
            reached = len(self._pending) >= self._threshold

        if reached:
            self._wake.set()

    def flush(self) -> int:
        """Write all pending entries to the sink now. Returns the batch size."""
        with self._lock:
            batch = self._pending
            self._pending = []
            self._wake.clear()

        if not batch:
            return 0

        try:
            self._sink.save_many(batch)
        except Exception:
            logger.exception("Failed to write %d not-found log entries", len(batch))
            return 0

        logger.debug("Flushed %d not-found log entries", len(batch))
        return len(batch)

    def start(self) -> None:
        """Start the background flush worker."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._flush_loop,
            name="notfound-request-logger",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "Request logger started (buffer size: %d, threshold: %d)",
            self._buffer_size,
            self._threshold,
        )

    def close(self) -> None:
        """Stop the worker and flush remaining entries."""
        if self._thread is not None:
            self._stop_event.set()
            self._wake.set()
            self._thread.join(timeout=5.0)
            self._thread = None
        self.flush()

    def _flush_loop(self) -> None:
        while not self._stop_event.is_set():
            self._wake.wait(timeout=self._flush_interval)
            if self._stop_event.is_set():
                break
            try:
                self.flush()
            except Exception:
                logger.exception("Error in request logger flush loop")

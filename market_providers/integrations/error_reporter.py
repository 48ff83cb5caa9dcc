"""
Market Providers - Error Reporting
==================================
Fire-and-forget sink for unexpected provider failures (transport errors,
malformed payloads, rate-limit notices).

The default reporter just logs.  ``CallbackErrorReporter`` hands events to a
daemon worker thread so a slow or failing sink never blocks the provider
call that produced the event.

Usage:
    from market_providers.integrations.error_reporter import (
        CallbackErrorReporter, set_error_reporter,
    )

    set_error_reporter(CallbackErrorReporter(my_sink.capture))
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional


@dataclass(frozen=True)
class ErrorEvent:
    """Structured failure event forwarded to an observability sink."""
    provider: str
    operation: str
    kind: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    upstream_message: Optional[str] = None
    occurred_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'provider': self.provider,
            'operation': self.operation,
            'kind': self.kind,
            'message': self.message,
            'upstream_message': self.upstream_message,
            'context': dict(self.context),
            'occurred_at': self.occurred_at.isoformat(),
        }


class ErrorReporter:
    """Interface: ``report()`` must return quickly and never raise."""

    def report(self, event: ErrorEvent):
        raise NotImplementedError


class LoggingErrorReporter(ErrorReporter):
    """Writes events to the ``market_providers.errors`` logger."""

    def __init__(self, logger: logging.Logger = None):
        self._logger = logger or logging.getLogger('market_providers.errors')

    def report(self, event: ErrorEvent):
        self._logger.warning(
            "[%s] %s.%s: %s | context=%s",
            event.kind,
            event.provider,
            event.operation,
            event.message,
            event.context,
        )


class CallbackErrorReporter(ErrorReporter):
    """Dispatches events to *callback* on a background daemon thread.

    Events are dropped (and counted) when the queue is full.
    """

    def __init__(
        self,
        callback: Callable[[ErrorEvent], None],
        max_queue_size: int = 1000,
        logger: logging.Logger = None,
    ):
        self._callback = callback
        self._queue: "queue.Queue[Optional[ErrorEvent]]" = queue.Queue(maxsize=max_queue_size)
        self._logger = logger or logging.getLogger('market_providers.errors')
        self._dropped = 0
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None

    @property
    def dropped(self) -> int:
        return self._dropped

    def report(self, event: ErrorEvent):
        self._ensure_worker()
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                self._dropped += 1
            self._logger.debug("Error queue full, dropped event from %s", event.provider)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued event has been handed to the callback."""
        if self._worker is None:
            return True
        done = threading.Event()

        def _wait():
            self._queue.join()
            done.set()

        threading.Thread(target=_wait, daemon=True).start()
        return done.wait(timeout)

    def close(self, timeout: float = 5.0):
        """Stop the worker after draining pending events."""
        with self._lock:
            worker = self._worker
            self._worker = None
        if worker is not None:
            self._queue.put(None)
            worker.join(timeout)

    def _ensure_worker(self):
        if self._worker is not None:
            return
        with self._lock:
            if self._worker is None:
                self._worker = threading.Thread(
                    target=self._run,
                    name="error-reporter",
                    daemon=True,
                )
                self._worker.start()

    def _run(self):
        while True:
            event = self._queue.get()
            try:
                if event is None:
                    return
                self._callback(event)
            except Exception as exc:
                self._logger.warning("Error reporter callback failed: %s", exc)
            finally:
                self._queue.task_done()


_default_reporter: ErrorReporter = LoggingErrorReporter()


def get_error_reporter() -> ErrorReporter:
    return _default_reporter


def set_error_reporter(reporter: Optional[ErrorReporter]) -> ErrorReporter:
    """Install the process-wide reporter.  ``None`` restores the logging default.

    Returns the previously installed reporter.
    """
    global _default_reporter
    previous = _default_reporter
    _default_reporter = reporter or LoggingErrorReporter()
    return previous

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Event debouncer for buildwatch.

Collapses bursts of raw change notifications into single ChangeSignals.
One dedicated thread owns the quiet-period timer; producers only put
items on a queue, so timer state is never shared between threads.
"""

import itertools
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Set

from buildwatch.filters import PathFilter
from buildwatch.schemas import ChangeSignal

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD = 0.3  # seconds

_STOP = object()


@dataclass(frozen=True)
class _Notification:
    path: Optional[str]
    event_kind: Optional[str]
    timestamp: float


class EventDebouncer:
    """Turns raw path notifications into sparse ChangeSignals."""

    def __init__(
        self,
        quiet_period: float,
        emit: Callable[[ChangeSignal], object],
        path_filter: Optional[PathFilter] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        """
        Initialize debouncer.

        Args:
            quiet_period: Seconds without notifications before a signal fires
            emit: Receives each ChangeSignal (normally orchestrator.submit)
            path_filter: Drops excluded paths before they are queued
            on_error: Called once with the fatal error from `fail()`
        """
        if quiet_period <= 0:
            raise ValueError(f"quiet_period must be positive, got: {quiet_period}")
        self.quiet_period = quiet_period
        self.path_filter = path_filter
        self.error: Optional[BaseException] = None
        self._emit = emit
        self._on_error = on_error
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._sequence = itertools.count(1)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="buildwatch-debouncer", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the timer thread. A burst still waiting is dropped."""
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)

    def notify(
        self,
        path: str,
        event_kind: Optional[str] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        """
        Feed one raw notification. Safe to call from any thread.

        Returns:
            False if the path was filtered out, True if it was queued
        """
        if self.path_filter is not None and not self.path_filter.accepts(path):
            logger.debug(f"Ignoring {event_kind or 'change'}: {path}")
            return False
        if timestamp is None:
            timestamp = time.time()
        self._queue.put(_Notification(path, event_kind, timestamp))
        return True

    def trigger(self) -> None:
        """Queue a change not tied to any path (e.g. run on start)."""
        self._queue.put(_Notification(None, None, time.time()))

    def fail(self, error: BaseException) -> None:
        """Report that the notification source is gone for good."""
        self._queue.put(error)

    def _loop(self) -> None:
        deadline: Optional[float] = None
        burst: Set[str] = set()

        while True:
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                item = self._queue.get(timeout=timeout)
            except queue.Empty:
                signal = ChangeSignal(sequence=next(self._sequence), paths=frozenset(burst))
                logger.debug(f"Change #{signal.sequence} covering {len(burst)} path(s)")
                deadline = None
                burst = set()
                try:
                    self._emit(signal)
                except Exception as e:
                    self._record_failure(e)
                    return
                continue

            if item is _STOP:
                return

            if isinstance(item, BaseException):
                self._record_failure(item)
                return

            if item.path is not None:
                burst.add(item.path)
            deadline = time.monotonic() + self.quiet_period

    def _record_failure(self, error: BaseException) -> None:
        """Remember a fatal error; no further signals are emitted after this."""
        self.error = error
        logger.error(f"Change notifications stopped: {error}")
        if self._on_error is not None:
            self._on_error(error)

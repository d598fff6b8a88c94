# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Cycle orchestrator - one build → test cycle per logical change.

State machine per cycle:
    IDLE → BUILDING → TESTING → (DONE | FAILED | CANCELLED) → PUBLISHING → IDLE
    BUILDING → FAILED (build failed, test skipped)
    BUILDING | TESTING → CANCELLED (superseded by a newer change)

Signals are accepted from any thread via submit(); cycles run on a single
worker thread, so results are produced (and recorded) in cycle order.
Only the newest pending signal is kept; older ones are discarded unstarted.
A signal arriving while a result is being published supersedes nothing.
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple

from buildwatch.cancellation import CancellationToken
from buildwatch.runner import CommandRunner
from buildwatch.schemas import (
    ChangeSignal,
    CommandName,
    CommandOutcome,
    CommandSpec,
    CycleReport,
    CycleResult,
    CycleStatus,
    OutcomeKind,
)
from buildwatch.stats import StatisticsTracker

logger = logging.getLogger(__name__)

Consumer = Callable[[CycleReport], None]


class CycleState(Enum):
    IDLE = "idle"
    BUILDING = "building"
    TESTING = "testing"
    PUBLISHING = "publishing"


# States in which a new signal cancels the running cycle
_CANCELLABLE = (CycleState.BUILDING, CycleState.TESTING)


class CycleOrchestrator:
    """Drives build → test cycles and owns every cancellation token."""

    def __init__(
        self,
        build: CommandSpec,
        test: CommandSpec,
        runner: CommandRunner,
        tracker: StatisticsTracker,
        consumers: Iterable[Consumer] = (),
        start_delay: float = 0.0,
        on_cycle_start: Optional[Callable[[int], None]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            build: Build command (must be enabled)
            test: Test command (may be disabled)
            runner: Executes commands; anything with run(spec, token)
            tracker: Receives every result before the consumers do
            consumers: Called with each CycleReport, in order
            start_delay: Cancellable settle time before Build starts
            on_cycle_start: Called with the cycle number as a cycle begins
        """
        if build.name is not CommandName.BUILD or not build.enabled:
            raise ValueError("build command must be an enabled Build spec")
        self.build = build
        self.test = test
        self.runner = runner
        self.tracker = tracker
        self.consumers = list(consumers)
        self.start_delay = start_delay
        self.on_cycle_start = on_cycle_start
        self.error: Optional[BaseException] = None

        self._cond = threading.Condition()
        self._state = CycleState.IDLE
        self._pending: Optional[ChangeSignal] = None
        self._last_sequence = 0
        self._token: Optional[CancellationToken] = None
        self._cycle_number = 0
        self._stopped = False
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> CycleState:
        with self._cond:
            return self._state

    @property
    def cycle_number(self) -> int:
        """Number of the most recently started cycle (0 before the first)."""
        with self._cond:
            return self._cycle_number

    # -------------------------------------------------------------------------
    # Signal intake
    # -------------------------------------------------------------------------

    def submit(self, signal: ChangeSignal) -> bool:
        """
        Hand over a new logical change. Never blocks on a running command.

        Returns:
            False if the signal was stale and ignored
        """
        with self._cond:
            if signal.sequence <= self._last_sequence:
                logger.debug(
                    f"Ignoring stale change #{signal.sequence} (last #{self._last_sequence})"
                )
                return False
            self._last_sequence = signal.sequence

            if self._pending is not None:
                logger.debug(f"Change #{self._pending.sequence} superseded before starting")
            self._pending = signal

            if self._state in _CANCELLABLE and self._token is not None:
                logger.info(f"Change detected, cancelling cycle {self._cycle_number}")
                self._token.cancel()

            self._cond.notify_all()
        return True

    # -------------------------------------------------------------------------
    # Worker lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="buildwatch-orchestrator", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel any running cycle and stop the worker."""
        with self._cond:
            self._stopped = True
            self._pending = None
            if self._token is not None:
                self._token.cancel()
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)

    def _loop(self) -> None:
        try:
            while True:
                cycle = self._next_cycle()
                if cycle is None:
                    return
                self._run(*cycle)
        except Exception as e:
            logger.exception("Orchestrator stopped on unexpected error")
            self.error = e

    def _next_cycle(self) -> Optional[Tuple[ChangeSignal, int, CancellationToken]]:
        """Wait for a pending signal and open its cycle in one step."""
        with self._cond:
            while self._pending is None and not self._stopped:
                self._cond.wait()
            if self._stopped:
                return None
            return self._open_cycle()

    def _open_cycle(self) -> Tuple[ChangeSignal, int, CancellationToken]:
        # Caller holds self._cond
        signal = self._pending
        self._pending = None
        if self._token is not None:
            self._token.cancel()
        self._token = CancellationToken()
        self._cycle_number += 1
        self._state = CycleState.BUILDING
        return signal, self._cycle_number, self._token

    # -------------------------------------------------------------------------
    # Cycle execution
    # -------------------------------------------------------------------------

    def run_cycle(self, signal: ChangeSignal) -> CycleResult:
        """Run one cycle for `signal` on the calling thread and publish it."""
        with self._cond:
            if signal.sequence > self._last_sequence:
                self._last_sequence = signal.sequence
            self._pending = signal
            cycle = self._open_cycle()
        return self._run(*cycle)

    def _run(self, signal: ChangeSignal, number: int, token: CancellationToken) -> CycleResult:
        logger.info(f"Cycle {number} started (change #{signal.sequence})")
        if self.on_cycle_start is not None:
            self.on_cycle_start(number)

        result = self._execute(number, token)

        with self._cond:
            self._state = CycleState.PUBLISHING
            self._token = None

        try:
            self._publish(result)
        finally:
            with self._cond:
                self._state = CycleState.IDLE
        return result

    def _execute(self, number: int, token: CancellationToken) -> CycleResult:
        build = self._delay(token) or self.runner.run(self.build, token)

        if build.kind is OutcomeKind.CANCELLED:
            return CycleResult(number, build, CommandOutcome.skipped(), CycleStatus.CANCELLED)
        if build.kind is not OutcomeKind.SUCCEEDED:
            return CycleResult(number, build, CommandOutcome.skipped(), CycleStatus.FAILED)

        with self._cond:
            self._state = CycleState.TESTING

        test = self.runner.run(self.test, token)
        if test.kind is OutcomeKind.CANCELLED:
            status = CycleStatus.CANCELLED
        elif test.kind is OutcomeKind.FAILED:
            status = CycleStatus.FAILED
        else:
            status = CycleStatus.DONE
        return CycleResult(number, build, test, status)

    def _delay(self, token: CancellationToken) -> Optional[CommandOutcome]:
        """Sleep start_delay; return a Cancelled outcome if superseded meanwhile."""
        if self.start_delay <= 0:
            return None
        start = time.monotonic()
        if token.wait(self.start_delay):
            return CommandOutcome(kind=OutcomeKind.CANCELLED, elapsed=time.monotonic() - start)
        return None

    def _publish(self, result: CycleResult) -> None:
        if result.overall_status is CycleStatus.CANCELLED:
            logger.info(f"Cycle {result.cycle_number} cancelled")
        else:
            logger.info(f"Cycle {result.cycle_number} {result.overall_status.value}")

        report = self.tracker.record(result)
        for consumer in self.consumers:
            consumer(report)

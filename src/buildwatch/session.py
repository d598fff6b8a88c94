# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Watch session - wires watcher, debouncer, orchestrator and reporters.

Data flow:
    watchdog events → EventDebouncer → CycleOrchestrator → CommandRunner
    → StatisticsTracker → Reporter, Notifier
"""

import logging
import signal
import threading
from typing import Optional

from buildwatch.config import WatchConfig
from buildwatch.debouncer import EventDebouncer
from buildwatch.filters import PathFilter
from buildwatch.notifier import Notifier
from buildwatch.orchestrator import CycleOrchestrator
from buildwatch.reporter import Reporter
from buildwatch.runner import CommandRunner
from buildwatch.stats import StatisticsTracker
from buildwatch.watcher import TreeWatcher, WatchLostError

logger = logging.getLogger(__name__)

SUPERVISE_INTERVAL = 0.5  # seconds between watch health checks


class WatchSession:
    """One process-lifetime watch over a source tree."""

    def __init__(self, config: WatchConfig):
        self.config = config
        self.tracker = StatisticsTracker()
        self.reporter = Reporter(clear_screen=config.clear_screen)
        self.notifier = Notifier(enabled=config.notify)
        self.runner = CommandRunner(
            cwd=config.build_dir,
            stream_output=not config.quiet_output,
            kill_grace=config.kill_grace,
        )
        self.orchestrator = CycleOrchestrator(
            build=config.build,
            test=config.test,
            runner=self.runner,
            tracker=self.tracker,
            consumers=[self.reporter, self.notifier],
            start_delay=config.start_delay,
            on_cycle_start=self.reporter.on_cycle_start,
        )

        # Keep build output inside the tree from retriggering builds
        exclude_paths = []
        if config.build_dir != config.watch_dir:
            exclude_paths.append(config.build_dir)
        self.path_filter = PathFilter(
            config.watch_dir,
            extensions=config.extensions,
            exclude=config.exclude,
            exclude_paths=exclude_paths,
        )
        self.debouncer = EventDebouncer(
            config.quiet_period,
            emit=self.orchestrator.submit,
            path_filter=self.path_filter,
        )
        self.watcher = TreeWatcher(config.watch_dir, self.debouncer)
        self._stop = threading.Event()

    def request_stop(self, *_args) -> None:
        """Ask run() to return. Usable as a signal handler."""
        self._stop.set()

    def install_signal_handlers(self) -> None:
        """Stop gracefully on SIGINT/SIGTERM. Main thread only."""
        signal.signal(signal.SIGINT, self.request_stop)
        signal.signal(signal.SIGTERM, self.request_stop)

    def start(self) -> None:
        self.orchestrator.start()
        self.debouncer.start()
        self.watcher.start()
        if self.config.run_on_start:
            self.debouncer.trigger()

    def check(self) -> None:
        """
        Raise if any part of the pipeline has failed for good.

        Raises:
            WatchLostError: If the watch source is gone
            RuntimeError: If the orchestrator worker died
        """
        if self.debouncer.error is not None:
            raise WatchLostError(str(self.debouncer.error)) from self.debouncer.error
        self.watcher.check()
        if self.orchestrator.error is not None:
            raise RuntimeError(f"Orchestrator failed: {self.orchestrator.error}") from self.orchestrator.error

    def run(self, supervise_interval: float = SUPERVISE_INTERVAL) -> None:
        """Watch until stopped or until the watch is lost."""
        self.start()
        try:
            while not self._stop.wait(supervise_interval):
                self.check()
        finally:
            self.shutdown()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        logger.info("Stopping watch")
        self.watcher.stop()
        self.debouncer.stop(timeout)
        self.orchestrator.stop(timeout)

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Filesystem watch source.

Subscribes to recursive change events under the watched root with
watchdog and forwards file writes, creations and renames to the debouncer.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from buildwatch.debouncer import EventDebouncer

logger = logging.getLogger(__name__)

WATCHED_EVENT_TYPES = frozenset({EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED})


class WatchLostError(Exception):
    """Raised when the watched root or the observer goes away."""
    pass


class ChangeHandler(FileSystemEventHandler):
    """Forwards relevant watchdog events to the debouncer."""

    def __init__(self, debouncer: EventDebouncer):
        super().__init__()
        self.debouncer = debouncer

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type not in WATCHED_EVENT_TYPES:
            return

        # Editors often save via write-then-rename; the destination is what changed
        path = getattr(event, "dest_path", "") or event.src_path
        if isinstance(path, bytes):
            path = path.decode(errors="replace")
        self.debouncer.notify(path, event.event_type)


class TreeWatcher:
    """Recursive watch of one root directory."""

    def __init__(
        self,
        root: Path,
        debouncer: EventDebouncer,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.root = Path(root).resolve()
        self.debouncer = debouncer
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        """
        Start watching.

        Raises:
            WatchLostError: If the root is missing or cannot be watched
        """
        if not self.root.is_dir():
            raise WatchLostError(f"Watch directory does not exist: {self.root}")

        observer = self._observer_factory()
        try:
            observer.schedule(ChangeHandler(self.debouncer), str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            raise WatchLostError(f"Cannot watch {self.root}: {e}") from e

        self._observer = observer
        logger.info(f"Watching {self.root}")

    def check(self) -> None:
        """
        Verify the watch is still alive.

        Raises:
            WatchLostError: If the root vanished or the observer died
        """
        if not self.root.is_dir():
            error = WatchLostError(f"Watch directory is no longer accessible: {self.root}")
        elif self._observer is None or not self._observer.is_alive():
            error = WatchLostError(f"File watcher stopped unexpectedly for {self.root}")
        else:
            return
        self.debouncer.fail(error)
        raise error

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None

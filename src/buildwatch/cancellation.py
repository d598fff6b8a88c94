# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Per-cycle cooperative cancellation."""

import threading
from typing import Optional


class CancellationToken:
    """Handle shared between the orchestrator and the running command.

    Only the orchestrator cancels; the runner observes via `cancelled`
    or blocks on `wait()`. Cancelling is idempotent.
    """

    def __init__(self):
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to `timeout` seconds; return True if cancelled."""
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"

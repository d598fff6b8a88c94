# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Desktop notifications via notify-send.

Delivery problems are never fatal: the first failure is logged as a
warning and notifications are switched off for the rest of the session.
"""

import logging
import shutil
import subprocess

from buildwatch.schemas import CycleReport, CycleStatus

APP_NAME = "buildwatch"
SHOW_TIMEOUT_MS = 3000

ICONS = {
    CycleStatus.DONE: "emblem-checked",
    CycleStatus.FAILED: "emblem-error",
}


class Notifier:
    """Shows a short alert for every completed (non-cancelled) cycle."""

    def __init__(self, enabled: bool = True, command: str = "notify-send"):
        self.enabled = enabled
        self.command = command
        self.logger = logging.getLogger(__name__)

    def __call__(self, report: CycleReport) -> None:
        self.notify(report.result.cycle_number, report.result.overall_status)

    def notify(self, cycle_number: int, status: CycleStatus) -> bool:
        """
        Show the alert for one cycle.

        Returns:
            True if notify-send ran successfully
        """
        if not self.enabled or status is CycleStatus.CANCELLED:
            return False

        executable = shutil.which(self.command)
        if executable is None:
            self._disable(f"{self.command} not found")
            return False

        body = f"Build {cycle_number} {status.value}"
        try:
            subprocess.run(
                [
                    executable,
                    "--app-name", APP_NAME,
                    "--icon", ICONS[status],
                    "--expire-time", str(SHOW_TIMEOUT_MS),
                    APP_NAME,
                    body,
                ],
                check=True,
                capture_output=True,
                text=True,
                timeout=5,
            )
        except subprocess.CalledProcessError as e:
            self._disable(f"{self.command} exited with code {e.returncode}: {e.stderr.strip()}")
            return False
        except (OSError, subprocess.TimeoutExpired) as e:
            self._disable(str(e))
            return False
        return True

    def _disable(self, reason: str) -> None:
        self.logger.warning(f"Desktop notifications disabled: {reason}")
        self.enabled = False

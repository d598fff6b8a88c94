"""
Command runner for buildwatch.

Spawns the configured build or test command, waits for it while watching
the cycle's cancellation token, and reports how it ended.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import logging
import os
import signal
import subprocess
import time
from pathlib import Path
from typing import Optional

from buildwatch.cancellation import CancellationToken
from buildwatch.schemas import CommandOutcome, CommandSpec, OutcomeKind

# Exit status reported when the shell itself cannot be started
SPAWN_FAILED_EXIT_CODE = 127


class CommandRunner:
    """Executes one shell command per call, cancellable via a token."""

    def __init__(
        self,
        cwd: Optional[Path] = None,
        stream_output: bool = True,
        poll_interval: float = 0.1,
        kill_grace: float = 2.0,
    ):
        """
        Initialize command runner.

        Args:
            cwd: Working directory for commands (the build dir)
            stream_output: Pass child output through; False discards it
            poll_interval: Seconds between cancellation checks
            kill_grace: Seconds to wait after each terminate/kill signal
        """
        self.cwd = cwd
        self.stream_output = stream_output
        self.poll_interval = poll_interval
        self.kill_grace = kill_grace
        self.logger = logging.getLogger(__name__)

    def run(self, spec: CommandSpec, token: CancellationToken) -> CommandOutcome:
        """
        Execute a command until it exits or the token is cancelled.

        Args:
            spec: Command to run; disabled specs are skipped
            token: Cancellation token of the current cycle

        Returns:
            CommandOutcome with wall-clock elapsed seconds
        """
        if not spec.enabled:
            self.logger.debug(f"{spec.name.value} disabled, skipping")
            return CommandOutcome.skipped()

        if token.cancelled:
            self.logger.info(f"{spec.name.value} cancelled before start")
            return CommandOutcome(kind=OutcomeKind.CANCELLED)

        command = spec.command_line
        if len(command) > 100:
            log_msg = f"{spec.name.value}: {command[:100]}..."
        else:
            log_msg = f"{spec.name.value}: {command}"
        self.logger.info(log_msg)

        output = None if self.stream_output else subprocess.DEVNULL
        start = time.monotonic()
        try:
            process = subprocess.Popen(
                command,
                shell=True,
                cwd=str(self.cwd) if self.cwd else None,
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=output,
                start_new_session=True,
            )
        except OSError as e:
            elapsed = time.monotonic() - start
            self.logger.error(f"{spec.name.value} could not be started: {e}")
            return CommandOutcome(
                kind=OutcomeKind.FAILED, elapsed=elapsed, exit_code=SPAWN_FAILED_EXIT_CODE
            )

        while True:
            try:
                returncode = process.wait(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                pass
            if token.cancelled:
                self._terminate(process, spec)
                elapsed = time.monotonic() - start
                self.logger.info(f"{spec.name.value} cancelled after {elapsed:.2f}s")
                return CommandOutcome(kind=OutcomeKind.CANCELLED, elapsed=elapsed)

        elapsed = time.monotonic() - start
        if returncode == 0:
            return CommandOutcome(kind=OutcomeKind.SUCCEEDED, elapsed=elapsed, exit_code=0)

        self.logger.info(f"{spec.name.value} failed with exit code {returncode}")
        return CommandOutcome(kind=OutcomeKind.FAILED, elapsed=elapsed, exit_code=returncode)

    def _terminate(self, process: subprocess.Popen, spec: CommandSpec) -> None:
        """Stop the child and its whole process group, escalating to SIGKILL.

        The shell leader may die on SIGTERM while other group members
        ignore it, so the group itself is checked before giving up on SIGKILL.
        """
        pgid = process.pid  # leader of its own session, see Popen call
        for sig in (signal.SIGTERM, signal.SIGKILL):
            self._signal_group(process, pgid, sig)
            if self._wait_group(process, pgid, self.kill_grace):
                return

        self.logger.warning(
            f"{spec.name.value} (process group {pgid}) did not exit within "
            f"{2 * self.kill_grace:.1f}s of being killed; continuing anyway"
        )

    def _wait_group(self, process: subprocess.Popen, pgid: int, timeout: float) -> bool:
        """Wait for the leader and then every other group member to exit."""
        deadline = time.monotonic() + timeout
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        while _group_alive(pgid):
            if time.monotonic() >= deadline:
                return False
            time.sleep(min(self.poll_interval, 0.05))
        return True

    def _signal_group(self, process: subprocess.Popen, pgid: int, sig: int) -> None:
        try:
            os.killpg(pgid, sig)
        except ProcessLookupError:
            pass
        except PermissionError:
            process.send_signal(sig)


def _group_alive(pgid: int) -> bool:
    """True while any process in the group still exists."""
    try:
        os.killpg(pgid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True

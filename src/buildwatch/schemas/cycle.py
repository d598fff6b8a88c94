# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Cycle schemas for buildwatch.

Follows the watch loop:
- raw events → debounce → ChangeSignal
- ChangeSignal → orchestrate → CycleResult
- CycleResult → record → CycleReport (result + RunningStats snapshot)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional


class CommandName(Enum):
    """The two phases of a cycle."""

    BUILD = "Build"
    TEST = "Test"


class OutcomeKind(Enum):
    """How a single command invocation ended."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


class CycleStatus(Enum):
    """Overall status of a build → test cycle."""

    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ChangeSignal:
    """One debounced logical change under the watched root."""
    sequence: int
    paths: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class CommandSpec:
    """A configured command. Test may be disabled, Build never is."""
    name: CommandName
    command_line: str
    enabled: bool = True

    @classmethod
    def from_command_line(cls, name: CommandName, command_line: Optional[str]) -> "CommandSpec":
        """Build a spec, disabling it when the command line is empty."""
        command_line = (command_line or "").strip()
        return cls(name=name, command_line=command_line, enabled=bool(command_line))


@dataclass(frozen=True)
class CommandOutcome:
    """Result of running (or not running) one command."""
    kind: OutcomeKind
    elapsed: float = 0.0  # seconds
    exit_code: Optional[int] = None

    @classmethod
    def skipped(cls) -> "CommandOutcome":
        return cls(kind=OutcomeKind.SKIPPED)

    @property
    def ran_to_completion(self) -> bool:
        """True when the command exited on its own (pass or fail)."""
        return self.kind in (OutcomeKind.SUCCEEDED, OutcomeKind.FAILED)


@dataclass(frozen=True)
class CycleResult:
    """Immutable outcome of one orchestration cycle."""
    cycle_number: int
    build: CommandOutcome
    test: CommandOutcome
    overall_status: CycleStatus

    @property
    def elapsed(self) -> float:
        return self.build.elapsed + self.test.elapsed


@dataclass(frozen=True)
class RunningStats:
    """Snapshot of the process-wide aggregates.

    Averages are in seconds. `total_completed` counts DONE and FAILED
    cycles; `cancelled` counts interrupted cycles, which never reach the
    averages or the pass ratio.
    """
    build_count: int = 0
    build_avg: float = 0.0
    test_count: int = 0
    test_avg: float = 0.0
    passes: int = 0
    total_completed: int = 0
    cancelled: int = 0

    @property
    def pass_ratio(self) -> float:
        if self.total_completed == 0:
            return 0.0
        return self.passes / self.total_completed


@dataclass(frozen=True)
class CycleReport:
    """What consumers receive after a cycle is recorded.

    `stats` is the snapshot taken right after `result` was recorded; the
    deltas compare each phase against the average *before* the update.
    A delta is None when the phase had no earlier sample or did not count.
    """
    result: CycleResult
    stats: RunningStats
    build_delta: Optional[float] = None
    test_delta: Optional[float] = None

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""buildwatch cycle schemas."""

from buildwatch.schemas.cycle import (
    ChangeSignal,
    CommandName,
    CommandOutcome,
    CommandSpec,
    CycleReport,
    CycleResult,
    CycleStatus,
    OutcomeKind,
    RunningStats,
)

__all__ = [
    "ChangeSignal",
    "CommandName",
    "CommandOutcome",
    "CommandSpec",
    "CycleReport",
    "CycleResult",
    "CycleStatus",
    "OutcomeKind",
    "RunningStats",
]

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Statistics tracker - rolling aggregates across cycles.

Averages are incremental means (avg += (x - avg) / n), so no sample
history is kept. State lives for the process lifetime only.
"""

import threading
from dataclasses import replace
from typing import Optional, Tuple

from buildwatch.schemas import (
    CommandOutcome,
    CycleReport,
    CycleResult,
    CycleStatus,
    RunningStats,
)


def _update_mean(count: int, avg: float, outcome: CommandOutcome) -> Tuple[int, float, Optional[float]]:
    """Fold one sample into (count, avg); return the new pair and the delta.

    Outcomes that were skipped or cancelled leave the aggregate untouched.
    """
    if not outcome.ran_to_completion:
        return count, avg, None
    # No delta for the first sample: there is no earlier average to compare with
    delta = outcome.elapsed - avg if count else None
    count += 1
    avg += (outcome.elapsed - avg) / count
    return count, avg, delta


class StatisticsTracker:
    """Sole owner of the live RunningStats."""

    def __init__(self):
        self._lock = threading.Lock()
        self._stats = RunningStats()
        self._last_cycle = 0

    def record(self, result: CycleResult) -> CycleReport:
        """
        Fold a finished cycle into the aggregates.

        Args:
            result: Cycle result; cycle numbers must strictly increase

        Returns:
            CycleReport pairing the result with the post-update snapshot

        Raises:
            ValueError: If results arrive out of cycle order
        """
        with self._lock:
            if result.cycle_number <= self._last_cycle:
                raise ValueError(
                    f"Cycle {result.cycle_number} recorded after cycle {self._last_cycle}"
                )
            self._last_cycle = result.cycle_number
            stats = self._stats

            if result.overall_status is CycleStatus.CANCELLED:
                self._stats = replace(stats, cancelled=stats.cancelled + 1)
                return CycleReport(result=result, stats=self._stats)

            build_count, build_avg, build_delta = _update_mean(
                stats.build_count, stats.build_avg, result.build
            )
            test_count, test_avg, test_delta = _update_mean(
                stats.test_count, stats.test_avg, result.test
            )
            passed = result.overall_status is CycleStatus.DONE

            self._stats = replace(
                stats,
                build_count=build_count,
                build_avg=build_avg,
                test_count=test_count,
                test_avg=test_avg,
                passes=stats.passes + int(passed),
                total_completed=stats.total_completed + 1,
            )
            return CycleReport(
                result=result,
                stats=self._stats,
                build_delta=build_delta,
                test_delta=test_delta,
            )

    def get_snapshot(self) -> RunningStats:
        """Return the current aggregates. RunningStats is frozen."""
        with self._lock:
            return self._stats

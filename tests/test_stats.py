"""Tests for the statistics tracker."""

import statistics
import threading

import pytest

from buildwatch.schemas import CommandOutcome, CycleStatus, RunningStats
from buildwatch.stats import StatisticsTracker

from builders import cancelled, cycle, failed, succeeded


class TestRecord:
    """Tests for StatisticsTracker.record."""

    def test_initial_snapshot_is_empty(self):
        """A fresh tracker has no samples and a zero pass ratio."""
        snapshot = StatisticsTracker().get_snapshot()
        assert snapshot == RunningStats()
        assert snapshot.pass_ratio == 0.0

    def test_successful_cycle(self):
        """Build 500ms + Test 100ms success → averages match, ratio 1/1."""
        tracker = StatisticsTracker()
        report = tracker.record(cycle(1, succeeded(0.5), succeeded(0.1), CycleStatus.DONE))

        stats = tracker.get_snapshot()
        assert stats.build_count == 1
        assert stats.build_avg == pytest.approx(0.5)
        assert stats.test_count == 1
        assert stats.test_avg == pytest.approx(0.1)
        assert stats.passes == 1
        assert stats.total_completed == 1
        assert stats.pass_ratio == 1.0
        assert report.stats == stats

    def test_failed_build(self):
        """Build fails in 300ms → build_avg 300ms, no test sample, ratio 0/1."""
        tracker = StatisticsTracker()
        tracker.record(cycle(1, failed(0.3), CommandOutcome.skipped(), CycleStatus.FAILED))

        stats = tracker.get_snapshot()
        assert stats.build_avg == pytest.approx(0.3)
        assert stats.build_count == 1
        assert stats.test_count == 0
        assert stats.passes == 0
        assert stats.total_completed == 1
        assert stats.pass_ratio == 0.0

    def test_failed_test_counts_its_duration(self):
        """A failing test run still contributes a test sample."""
        tracker = StatisticsTracker()
        tracker.record(cycle(1, succeeded(0.2), failed(0.4, 2), CycleStatus.FAILED))

        stats = tracker.get_snapshot()
        assert stats.test_count == 1
        assert stats.test_avg == pytest.approx(0.4)
        assert stats.passes == 0

    def test_cancelled_cycle_only_counts_as_interrupted(self):
        """Cancelled cycles never touch averages or the pass ratio."""
        tracker = StatisticsTracker()
        tracker.record(cycle(1, succeeded(1.0), succeeded(1.0), CycleStatus.DONE))
        report = tracker.record(cycle(2, cancelled(5.0), CommandOutcome.skipped(), CycleStatus.CANCELLED))

        stats = tracker.get_snapshot()
        assert stats.build_count == 1
        assert stats.build_avg == pytest.approx(1.0)
        assert stats.total_completed == 1
        assert stats.cancelled == 1
        assert report.build_delta is None
        assert report.test_delta is None

    def test_cancelled_test_discards_completed_build_duration(self):
        """A cycle cancelled during Test leaves build_avg untouched too."""
        tracker = StatisticsTracker()
        tracker.record(cycle(1, succeeded(0.7), cancelled(0.1), CycleStatus.CANCELLED))

        stats = tracker.get_snapshot()
        assert stats.build_count == 0
        assert stats.cancelled == 1

    def test_rolling_average_matches_mean(self):
        """After n samples the rolling average equals the arithmetic mean."""
        durations = [0.31, 1.2, 0.05, 0.9, 2.75, 0.4, 0.6]
        tracker = StatisticsTracker()
        for number, duration in enumerate(durations, 1):
            tracker.record(cycle(number, succeeded(duration), CommandOutcome.skipped(), CycleStatus.DONE))

        stats = tracker.get_snapshot()
        assert stats.build_count == len(durations)
        assert stats.build_avg == pytest.approx(statistics.mean(durations))
        assert stats.test_count == 0

    def test_delta_uses_average_before_update(self):
        """delta = elapsed - avg before this sample; None for the first sample."""
        tracker = StatisticsTracker()
        first = tracker.record(cycle(1, succeeded(1.0), succeeded(0.5), CycleStatus.DONE))
        second = tracker.record(cycle(2, succeeded(1.5), succeeded(0.25), CycleStatus.DONE))

        assert first.build_delta is None
        assert first.test_delta is None
        assert second.build_delta == pytest.approx(0.5)
        assert second.test_delta == pytest.approx(-0.25)
        assert second.stats.build_avg == pytest.approx(1.25)

    def test_pass_ratio_excludes_cancelled(self):
        """Ratio is passes over DONE + FAILED cycles only."""
        tracker = StatisticsTracker()
        tracker.record(cycle(1, succeeded(0.1), succeeded(0.1), CycleStatus.DONE))
        tracker.record(cycle(2, failed(0.1), CommandOutcome.skipped(), CycleStatus.FAILED))
        tracker.record(cycle(3, cancelled(), CommandOutcome.skipped(), CycleStatus.CANCELLED))
        tracker.record(cycle(4, succeeded(0.1), succeeded(0.1), CycleStatus.DONE))

        stats = tracker.get_snapshot()
        assert stats.passes == 2
        assert stats.total_completed == 3
        assert stats.pass_ratio == pytest.approx(2 / 3)

    def test_out_of_order_cycle_rejected(self):
        """Results must be recorded in strictly increasing cycle order."""
        tracker = StatisticsTracker()
        tracker.record(cycle(2, succeeded(0.1), succeeded(0.1), CycleStatus.DONE))

        with pytest.raises(ValueError, match="Cycle 2 recorded after cycle 2"):
            tracker.record(cycle(2, succeeded(0.1), succeeded(0.1), CycleStatus.DONE))
        with pytest.raises(ValueError):
            tracker.record(cycle(1, succeeded(0.1), succeeded(0.1), CycleStatus.DONE))

    def test_skipped_test_leaves_test_count_at_zero(self):
        """With Test disabled, only Build decides the status."""
        tracker = StatisticsTracker()
        tracker.record(cycle(1, succeeded(0.2), CommandOutcome.skipped(), CycleStatus.DONE))
        tracker.record(cycle(2, failed(0.2), CommandOutcome.skipped(), CycleStatus.FAILED))

        stats = tracker.get_snapshot()
        assert stats.test_count == 0
        assert stats.passes == 1
        assert stats.total_completed == 2


class TestSnapshot:
    """Tests for get_snapshot consistency."""

    def test_snapshot_is_immutable(self):
        """Snapshots are frozen copies."""
        snapshot = StatisticsTracker().get_snapshot()
        with pytest.raises(AttributeError):
            snapshot.build_count = 5

    def test_old_snapshot_unchanged_by_later_records(self):
        """A snapshot taken earlier does not see later updates."""
        tracker = StatisticsTracker()
        before = tracker.get_snapshot()
        tracker.record(cycle(1, succeeded(0.1), succeeded(0.1), CycleStatus.DONE))
        assert before.build_count == 0
        assert tracker.get_snapshot().build_count == 1

    def test_concurrent_readers_never_see_partial_update(self):
        """Every snapshot read during updates is internally consistent."""
        tracker = StatisticsTracker()
        inconsistent = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                s = tracker.get_snapshot()
                # Every recorded cycle is DONE with both phases sampled
                if not (s.build_count == s.test_count == s.passes == s.total_completed):
                    inconsistent.append(s)

        thread = threading.Thread(target=reader)
        thread.start()
        for number in range(1, 501):
            tracker.record(cycle(number, succeeded(0.01), succeeded(0.02), CycleStatus.DONE))
        done.set()
        thread.join()

        assert inconsistent == []

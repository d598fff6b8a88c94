"""Tests for the event debouncer."""

import queue
import time

import pytest

from buildwatch.debouncer import EventDebouncer
from buildwatch.filters import PathFilter

QUIET = 0.1


@pytest.fixture
def signals():
    return queue.Queue()


@pytest.fixture
def debouncer(signals):
    d = EventDebouncer(QUIET, emit=signals.put)
    d.start()
    yield d
    d.stop(timeout=2)


def drain(q, wait: float = QUIET * 4):
    """Collect everything emitted within `wait` seconds."""
    items = []
    deadline = time.monotonic() + wait
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return items
        try:
            items.append(q.get(timeout=remaining))
        except queue.Empty:
            return items


class TestEventDebouncer:
    """Tests for burst coalescing."""

    def test_single_notification_emits_one_signal(self, debouncer, signals):
        debouncer.notify("/src/main.c", "modified")
        emitted = drain(signals)

        assert len(emitted) == 1
        assert emitted[0].sequence == 1
        assert emitted[0].paths == frozenset({"/src/main.c"})

    def test_burst_coalesces_into_one_signal(self, debouncer, signals):
        """N notifications closer than the quiet period ⇒ exactly one signal."""
        for i in range(20):
            debouncer.notify(f"/src/file{i % 3}.c", "modified")
            time.sleep(QUIET / 10)

        emitted = drain(signals)

        assert len(emitted) == 1
        assert emitted[0].paths == frozenset({"/src/file0.c", "/src/file1.c", "/src/file2.c"})

    def test_quiet_period_restarts_on_each_notification(self, debouncer, signals):
        """Nothing is emitted while notifications keep arriving."""
        start = time.monotonic()
        for _ in range(6):
            debouncer.notify("/src/main.c")
            time.sleep(QUIET / 2)

        signal = signals.get(timeout=2)
        assert time.monotonic() - start >= 6 * (QUIET / 2)
        assert signal.sequence == 1

    def test_separate_bursts_get_increasing_sequences(self, debouncer, signals):
        debouncer.notify("/src/a.c")
        first = signals.get(timeout=2)
        debouncer.notify("/src/b.c")
        second = signals.get(timeout=2)
        debouncer.notify("/src/c.c")
        third = signals.get(timeout=2)

        assert [first.sequence, second.sequence, third.sequence] == [1, 2, 3]

    def test_trigger_emits_signal_without_paths(self, debouncer, signals):
        debouncer.trigger()
        signal = signals.get(timeout=2)
        assert signal.paths == frozenset()

    def test_excluded_paths_never_reach_the_timer(self, signals, tmp_path):
        d = EventDebouncer(QUIET, emit=signals.put, path_filter=PathFilter(tmp_path))
        d.start()
        try:
            assert d.notify(str(tmp_path / ".git" / "index.c")) is False
            assert d.notify(str(tmp_path / "notes.md")) is False
            assert drain(signals) == []
            assert d.notify(str(tmp_path / "main.cpp")) is True
            assert len(drain(signals)) == 1
        finally:
            d.stop(timeout=2)

    def test_fail_surfaces_error_and_stops_emitting(self, signals):
        errors = []
        d = EventDebouncer(QUIET, emit=signals.put, on_error=errors.append)
        d.start()
        try:
            error = OSError("watch lost")
            d.fail(error)
            time.sleep(QUIET)
            d.notify("/src/main.c")

            assert drain(signals) == []
            assert errors == [error]
            assert d.error is error
        finally:
            d.stop(timeout=2)

    def test_emit_error_is_recorded(self):
        """A receiver that raises stops the debouncer with a visible error."""
        errors = []
        boom = RuntimeError("receiver gone")

        def emit(signal):
            raise boom

        d = EventDebouncer(QUIET, emit=emit, on_error=errors.append)
        d.start()
        try:
            d.notify("/src/main.c")
            deadline = time.monotonic() + 2
            while d.error is None and time.monotonic() < deadline:
                time.sleep(0.01)

            assert d.error is boom
            assert errors == [boom]
        finally:
            d.stop(timeout=2)

    def test_zero_timestamp_is_kept(self, signals):
        """An explicit timestamp of 0.0 is not replaced by the current time."""
        d = EventDebouncer(QUIET, emit=signals.put)
        d.notify("/src/main.c", "modified", timestamp=0.0)

        assert d._queue.get_nowait().timestamp == 0.0

    def test_stop_drops_pending_burst(self, signals):
        d = EventDebouncer(QUIET, emit=signals.put)
        d.start()
        d.notify("/src/main.c")
        d.stop(timeout=2)

        assert drain(signals) == []

    def test_rejects_non_positive_quiet_period(self, signals):
        with pytest.raises(ValueError):
            EventDebouncer(0, emit=signals.put)

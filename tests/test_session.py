"""End-to-end tests for WatchSession with real commands and a real watch."""

import time

import pytest

from buildwatch.config import build_config
from buildwatch.schemas import CycleStatus
from buildwatch.session import WatchSession
from buildwatch.watcher import WatchLostError


def wait_for(predicate, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.05)


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "build").mkdir(parents=True)
    return root


def make_session(root, **settings):
    settings.setdefault("notify", False)
    settings.setdefault("quiet_period", 0.1)
    settings.setdefault("quiet_output", True)
    session = WatchSession(build_config(str(root), settings))
    reports = []
    session.orchestrator.consumers.append(reports.append)
    return session, reports


class TestWatchSession:
    def test_change_triggers_build_and_test(self, project):
        session, reports = make_session(
            project,
            build_command="touch build/built",
            test_command="test -f build/built",
        )
        session.start()
        try:
            (project / "main.c").write_text("int x;\n")
            wait_for(lambda: len(reports) == 1)
        finally:
            session.shutdown(timeout=5)

        result = reports[0].result
        assert result.cycle_number == 1
        assert result.overall_status is CycleStatus.DONE
        assert reports[0].stats.pass_ratio == 1.0

    def test_build_output_does_not_retrigger(self, project):
        """Writes under build/ are excluded, so one edit means one cycle."""
        session, reports = make_session(project, build_command="touch build/out.c", test_command="")
        session.start()
        try:
            (project / "main.c").write_text("int x;\n")
            wait_for(lambda: len(reports) == 1)
            time.sleep(0.5)
        finally:
            session.shutdown(timeout=5)

        assert len(reports) == 1

    def test_run_on_start(self, project):
        session, reports = make_session(
            project, build_command="exit 1", test_command="true", run_on_start=True
        )
        session.start()
        try:
            wait_for(lambda: len(reports) == 1)
        finally:
            session.shutdown(timeout=5)

        assert reports[0].result.overall_status is CycleStatus.FAILED

    def test_lost_root_is_fatal(self, project):
        session, _ = make_session(project, build_command="true")
        session.start()
        try:
            (project / "build").rmdir()
            project.rmdir()
            with pytest.raises(WatchLostError):
                session.check()
        finally:
            session.shutdown(timeout=5)

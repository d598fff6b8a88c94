"""Shared fixtures for buildwatch tests."""

import pytest

from buildwatch.schemas import CommandName, CommandSpec


@pytest.fixture
def build_cmd():
    return CommandSpec.from_command_line(CommandName.BUILD, "make -j4")


@pytest.fixture
def test_cmd():
    return CommandSpec.from_command_line(CommandName.TEST, "make test")


@pytest.fixture
def disabled_test_cmd():
    return CommandSpec.from_command_line(CommandName.TEST, "")

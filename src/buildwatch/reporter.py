# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Terminal report for each finished cycle."""

from typing import Optional

import typer

from buildwatch.schemas import (
    CommandName,
    CommandOutcome,
    CycleReport,
    CycleStatus,
    OutcomeKind,
)

LINE = "=" * 40
LABEL_WIDTH = 24


def _ms(seconds: float) -> int:
    return int(round(seconds * 1000))


def _field(label: str) -> str:
    return f"{label: <{LABEL_WIDTH}}"


def ratio_color(percent: int) -> str:
    if percent < 50:
        return typer.colors.BRIGHT_RED
    if percent < 80:
        return typer.colors.BRIGHT_YELLOW
    return typer.colors.BRIGHT_GREEN


def format_delta(delta: Optional[float]) -> str:
    if delta is None:
        return "n/a"
    ms = _ms(delta)
    text = f"{ms:+d} ms" if ms else "0 ms"
    color = typer.colors.BRIGHT_GREEN if ms <= 0 else typer.colors.BRIGHT_YELLOW
    return typer.style(text, fg=color)


def format_status(status: CycleStatus) -> str:
    color = typer.colors.BRIGHT_GREEN if status is CycleStatus.DONE else typer.colors.BRIGHT_RED
    return typer.style(status.value, fg=color, bold=True)


class Reporter:
    """Prints the cycle summary: durations, averages, deltas, pass ratio."""

    def __init__(self, clear_screen: bool = False):
        self.clear_screen = clear_screen

    def on_cycle_start(self, cycle_number: int) -> None:
        if self.clear_screen:
            typer.clear()

    def __call__(self, report: CycleReport) -> None:
        self.render(report)

    def render(self, report: CycleReport) -> None:
        result = report.result
        if result.overall_status is CycleStatus.CANCELLED:
            typer.echo(f"Build {result.cycle_number} {typer.style('cancelled', fg=typer.colors.YELLOW)}")
            return

        stats = report.stats
        typer.echo(LINE)
        typer.echo(f"Build {result.cycle_number}")
        typer.echo(LINE)
        self._render_phase(CommandName.BUILD, result.build, stats.build_avg, report.build_delta)
        self._render_phase(CommandName.TEST, result.test, stats.test_avg, report.test_delta)

        percent = int(stats.pass_ratio * 100)
        ratio = typer.style(str(percent), fg=ratio_color(percent))
        typer.echo(f"{_field('Pass ratio:')} {ratio} % [{stats.passes}/{stats.total_completed}]")
        typer.echo(LINE)
        typer.echo(f"Status: {format_status(result.overall_status)}")
        typer.echo(LINE)

    def _render_phase(
        self,
        name: CommandName,
        outcome: CommandOutcome,
        avg: float,
        delta: Optional[float],
    ) -> None:
        if outcome.kind is OutcomeKind.SKIPPED:
            return
        phase = name.value
        typer.echo(f"{_field(f'{phase} duration:')} {_ms(outcome.elapsed)} ms")
        typer.echo(f"{_field(f'{phase} duration avg:')} {_ms(avg)} ms")
        typer.echo(f"{_field(f'{phase} duration delta:')} {format_delta(delta)}")
        if outcome.kind is OutcomeKind.FAILED:
            typer.echo(f"{_field(f'{phase} exit code:')} {outcome.exit_code}")
        typer.echo()

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Main CLI entry point for buildwatch.

Parses options, resolves configuration and hands over to a WatchSession.
"""

import logging
from typing import List, Optional

import typer

from buildwatch import __version__
from buildwatch.config import ConfigError, resolve_config
from buildwatch.session import WatchSession
from buildwatch.watcher import WatchLostError


app = typer.Typer(
    name="buildwatch",
    help="Rebuild and retest on every source change",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@app.command()
def watch(
    watch_dir: str = typer.Argument(..., help="Source tree to watch"),
    build_dir: Optional[str] = typer.Option(None, "--build-dir", help="Directory commands run in (default: watch dir)"),
    build_command: Optional[str] = typer.Option(None, "--build-command", "-b", help="Build command (default: make -j4)"),
    test_command: Optional[str] = typer.Option(None, "--test-command", "-t", help="Test command (default: make test)"),
    no_test: bool = typer.Option(False, "--no-test", help="Disable the test step"),
    delay: Optional[float] = typer.Option(None, "--delay", "-d", help="Seconds to wait before each build"),
    quiet_period: Optional[float] = typer.Option(None, "--quiet-period", help="Debounce window in seconds"),
    ext: Optional[List[str]] = typer.Option(None, "--ext", "-e", help="Watched file extension (repeatable)"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-x", help="Directory name to ignore (repeatable)"),
    no_notify: bool = typer.Option(False, "--no-notify", help="Disable desktop notifications"),
    clear: bool = typer.Option(False, "--clear", help="Clear the terminal before each cycle"),
    quiet_output: bool = typer.Option(False, "--quiet-output", "-q", help="Hide build and test output"),
    run_on_start: bool = typer.Option(False, "--run-on-start", help="Run a cycle immediately"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Watch a source tree and rebuild/retest on every change."""
    _configure_logging(verbose)

    overrides = {
        "build_dir": build_dir,
        "build_command": build_command,
        "test_command": "" if no_test else test_command,
        "start_delay": delay,
        "quiet_period": quiet_period,
        "extensions": ext or None,
        "exclude": exclude or None,
        # Flags only override the file when set
        "notify": False if no_notify else None,
        "clear_screen": True if clear else None,
        "quiet_output": True if quiet_output else None,
        "run_on_start": True if run_on_start else None,
    }

    try:
        config = resolve_config(watch_dir, config_path, overrides)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except ConfigError as e:
        typer.echo(f"Config error: {e}", err=True)
        raise typer.Exit(1)

    session = WatchSession(config)
    session.install_signal_handlers()
    try:
        session.run()
    except WatchLostError as e:
        typer.echo(f"Watch lost: {e}", err=True)
        raise typer.Exit(2)
    except RuntimeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    typer.echo(f"buildwatch version {__version__}")


from buildwatch.commands import config

app.add_typer(config.app, name="config")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

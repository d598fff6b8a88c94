# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Config command for buildwatch.

Resolves and prints the effective configuration for a watch directory.
"""

import typer

from buildwatch.config import ConfigError, find_config, expand_path, resolve_config

app = typer.Typer(help="Inspect and validate configuration")


@app.command()
def validate(
    watch_dir: str = typer.Argument(".", help="Directory that would be watched"),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """
    Validate configuration.

    Loads the config file (if any), applies defaults and checks that the
    watch and build directories exist and a build command is set.
    """
    typer.echo("Validating configuration...")
    typer.echo()

    try:
        source = find_config(expand_path(watch_dir), config_path)
        config = resolve_config(watch_dir, config_path)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except ConfigError as e:
        typer.echo(f"Validation failed: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Config file: {source or '(none, using defaults)'}")
    typer.echo(f"Watch dir: {config.watch_dir}")
    typer.echo(f"Build dir: {config.build_dir}")
    typer.echo(f"Build command: {config.build.command_line}")
    if config.test.enabled:
        typer.echo(f"Test command: {config.test.command_line}")
    else:
        typer.echo("Test command: (disabled)")
    typer.echo(f"Quiet period: {config.quiet_period}s")
    if config.start_delay:
        typer.echo(f"Start delay: {config.start_delay}s")
    extensions = ", ".join(config.extensions) if config.extensions else "(all files)"
    typer.echo(f"Extensions: {extensions}")
    typer.echo(f"Excluded: {', '.join(config.exclude)}")
    typer.echo(f"Notifications: {'on' if config.notify else 'off'}")
    typer.echo()
    typer.echo("Configuration validation complete!")

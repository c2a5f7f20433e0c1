# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main CLI entry point for the speed monitor.
"""

import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from . import __version__
from .commands import (
    init_db,
    submit,
    results,
    stats,
    health,
)
from .context import CLIContext
from ..processing.service import setup_logging
from ..shared.config import Config

# Create console for rich output
console = Console()


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit"
)
@click.option(
    "--db",
    "db_path",
    envvar="SPEED_MONITOR_DB_PATH",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Telemetry database path (overrides config)"
)
@click.option(
    "--config-dir",
    envvar="SPEED_MONITOR_CONFIG_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory containing config.yaml"
)
@click.option(
    "--format",
    envvar="SPEED_MONITOR_FORMAT",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Default output format"
)
@click.option(
    "--debug",
    envvar="SPEED_MONITOR_DEBUG",
    is_flag=True,
    help="Enable debug logging"
)
@click.option(
    "--no-color",
    envvar="NO_COLOR",
    is_flag=True,
    help="Disable colored output"
)
@click.pass_context
def cli(
    ctx,
    version: bool,
    db_path: Optional[Path],
    config_dir: Optional[Path],
    format: str,
    debug: bool,
    no_color: bool
):
    """
    Speed Monitor - network quality telemetry from your fleet.

    Store speed test results submitted by devices and inspect per-device
    health, access point quality, VPN impact and jitter.

    Examples:
        speed-monitor init
        speed-monitor submit result.json
        speed-monitor stats overall
        speed-monitor health mac-1234
    """
    if version:
        click.echo(f"Speed Monitor version {__version__}")
        ctx.exit()

    config = Config(config_dir=config_dir)
    setup_logging("DEBUG" if debug else config.get("logging.level", "INFO"))

    ctx.obj = CLIContext(
        config=config,
        db_path=db_path,
        default_format=format,
        debug=debug,
        no_color=no_color,
    )

    # If no subcommand, show help
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Add commands
cli.add_command(init_db.init)
cli.add_command(submit.submit)
cli.add_command(results.results)
cli.add_command(results.device)
cli.add_command(stats.stats)
cli.add_command(health.health)
cli.add_command(health.status)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("SPEED_MONITOR_DEBUG"):
            console.print_exception()
        else:
            console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Stats command group: aggregate views over stored results.
"""

import click
from rich.console import Console

from ...shared.errors import SpeedMonitorError
from ..context import CLIContext
from ..formatters import get_formatter

console = Console()

format_option = click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)


def _show(ctx: CLIContext, format: str, fetch, render: str) -> None:
    """Fetch an aggregate view from the service and render it."""
    formatter = get_formatter(format or ctx.default_format, no_color=ctx.no_color)

    try:
        with console.status("Computing stats..."):
            data = fetch(ctx.service)
    except SpeedMonitorError as e:
        formatter.format_error(e.message, code=e.code)
        raise click.Abort()

    getattr(formatter, render)(data)


@click.group()
def stats():
    """
    Aggregated network quality statistics.

    Examples:
        speed-monitor stats overall
        speed-monitor stats wifi -f json
    """


@stats.command()
@format_option
@click.pass_obj
def overall(ctx: CLIContext, format: str):
    """Overall, per-device and hourly statistics."""
    _show(ctx, format, lambda service: service.get_overall_stats(), "format_overall_stats")


@stats.command()
@format_option
@click.pass_obj
def wifi(ctx: CLIContext, format: str):
    """Access point, SSID and band statistics."""
    _show(ctx, format, lambda service: service.get_wifi_stats(), "format_wifi_stats")


@stats.command()
@format_option
@click.pass_obj
def vpn(ctx: CLIContext, format: str):
    """VPN usage and VPN On/Off comparison."""
    _show(ctx, format, lambda service: service.get_vpn_stats(), "format_vpn_stats")


@stats.command()
@format_option
@click.pass_obj
def jitter(ctx: CLIContext, format: str):
    """Jitter distribution and problem devices."""
    _show(ctx, format, lambda service: service.get_jitter_stats(), "format_jitter_stats")

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Health and status commands.
"""

import sys

import click

from ...shared.errors import SpeedMonitorError
from ..context import CLIContext
from ..formatters import get_formatter


@click.command()
@click.argument("device_id")
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def health(ctx: CLIContext, device_id: str, format: str):
    """
    Show health summary and recent tests for a device.

    Examples:
        speed-monitor health mac-1234
    """
    formatter = get_formatter(format or ctx.default_format, no_color=ctx.no_color)

    try:
        data = ctx.service.get_device_health(device_id)
    except SpeedMonitorError as e:
        formatter.format_error(e.message, code=e.code)
        raise click.Abort()

    formatter.format_device_health(data)


@click.command()
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def status(ctx: CLIContext, format: str):
    """Show service status and the number of stored results."""
    formatter = get_formatter(format or ctx.default_format, no_color=ctx.no_color)

    try:
        result = ctx.service.get_service_status()
    except SpeedMonitorError as e:
        formatter.format_error(e.message, code=e.code)
        raise click.Abort()

    formatter.format_status(result)
    if result.get("status") != "ok":
        sys.exit(1)

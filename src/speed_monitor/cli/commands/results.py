# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Results and device listing commands.
"""

import click
from rich.console import Console

from ...shared.errors import SpeedMonitorError
from ...shared.record_schema import VPN_STATUSES
from ..context import CLIContext
from ..formatters import get_formatter

console = Console()


@click.command()
@click.option(
    "--device-id", "-d",
    help="Filter by device ID"
)
@click.option(
    "--ssid",
    help="Filter by network name"
)
@click.option(
    "--vpn-status",
    type=click.Choice(VPN_STATUSES),
    help="Filter by VPN status"
)
@click.option(
    "--limit", "-n",
    type=int,
    help="Number of results to show (default 100, max 1000)"
)
@click.option(
    "--offset",
    type=int,
    default=0,
    help="Offset for pagination"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def results(
    ctx: CLIContext,
    device_id: str,
    ssid: str,
    vpn_status: str,
    limit: int,
    offset: int,
    format: str
):
    """
    List stored speed test results, newest first.

    Examples:
        speed-monitor results                          # Latest 100 results
        speed-monitor results -n 20 --offset 20        # Second page of 20
        speed-monitor results --ssid Office --vpn-status connected
    """
    output_format = format or ctx.default_format
    formatter = get_formatter(output_format, no_color=ctx.no_color)

    filters = {"device_id": device_id, "ssid": ssid, "vpn_status": vpn_status}

    try:
        with console.status("Fetching results..."):
            records = ctx.service.list_records(filters, limit=limit, offset=offset)
    except SpeedMonitorError as e:
        formatter.format_error(e.message, code=e.code)
        raise click.Abort()

    formatter.format_records(records)


@click.command()
@click.argument("device_id")
@click.option(
    "--limit", "-n",
    type=int,
    help="Number of results to show (default 50, max 500)"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def device(ctx: CLIContext, device_id: str, limit: int, format: str):
    """
    List one device's results, newest first.

    Examples:
        speed-monitor device mac-1234
        speed-monitor device mac-1234 -n 10 -f json
    """
    output_format = format or ctx.default_format
    formatter = get_formatter(output_format, no_color=ctx.no_color)

    try:
        records = ctx.service.list_device_records(device_id, limit=limit)
    except SpeedMonitorError as e:
        formatter.format_error(e.message, code=e.code)
        raise click.Abort()

    formatter.format_records(records, title=f"Results for {device_id}")

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Submit command implementation.
"""

import click

from ...shared.errors import SpeedMonitorError
from ..context import CLIContext
from ..formatters import get_formatter


@click.command()
@click.argument(
    "source",
    type=click.File("r"),
    default="-"
)
@click.option(
    "--jsonl",
    is_flag=True,
    help="Treat each line as a separate submission"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def submit(ctx: CLIContext, source, jsonl: bool, format: str):
    """
    Submit speed test results from a file or stdin.

    Examples:
        speed-monitor submit result.json
        cat results.jsonl | speed-monitor submit --jsonl
    """
    output_format = format or ctx.default_format
    formatter = get_formatter(output_format, no_color=ctx.no_color)

    try:
        service = ctx.service

        if not jsonl:
            result = service.submit_record(source.read())
            formatter.format_submission(result)
            return

        summary = {"submitted": 0, "ids": [], "errors": []}
        for line_number, line in enumerate(source, start=1):
            if not line.strip():
                continue
            summary["submitted"] += 1
            try:
                summary["ids"].append(service.submit_record(line)["id"])
            except SpeedMonitorError as e:
                if e.http_status >= 500:
                    raise
                summary["errors"].append({"line": line_number, "code": e.code, "message": e.message})

    except SpeedMonitorError as e:
        formatter.format_error(e.message, code=e.code)
        raise click.Abort()

    formatter.format_batch_submission(summary)
    if summary["errors"]:
        raise click.exceptions.Exit(1)

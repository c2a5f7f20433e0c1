# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Init command implementation.
"""

import click

from ...shared.errors import SpeedMonitorError
from ..context import CLIContext
from ..formatters import get_formatter


@click.command(name="init")
@click.pass_obj
def init(ctx: CLIContext):
    """
    Create the telemetry database and schema.

    Safe to run repeatedly; existing data is left untouched.
    """
    formatter = get_formatter(ctx.default_format, no_color=ctx.no_color)

    try:
        service = ctx.service
        version = service.get_schema_version()
    except SpeedMonitorError as e:
        formatter.format_error(e.message, code=e.code)
        raise click.Abort()

    formatter.format_success(f"Database ready at {service.db_path} (schema version {version})")

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
JSON formatter for structured output.
"""

import json
from typing import Any, Dict, List, Optional
from rich.console import Console
from rich.syntax import Syntax

from .base import BaseFormatter

console = Console()


class JSONFormatter(BaseFormatter):
    """Format output as JSON for scripting and automation."""

    def __init__(self, pretty: bool = True, colored: bool = True):
        """Initialize JSON formatter.

        Args:
            pretty: Whether to pretty-print JSON
            colored: Whether to use syntax highlighting (terminals only)
        """
        self.pretty = pretty
        self.colored = colored

    def format_records(self, records: List[Dict[str, Any]], title: str = "Speed Test Results"):
        """Format records as JSON."""
        self._print_json({"results": records, "count": len(records)})

    def format_submission(self, result: Dict[str, Any]):
        """Format a submission outcome as JSON."""
        self._print_json(result)

    def format_batch_submission(self, summary: Dict[str, Any]):
        """Format a multi-record submission summary as JSON."""
        self._print_json(summary)

    def format_overall_stats(self, data: Dict[str, Any]):
        """Format overall stats as JSON."""
        self._print_json(data)

    def format_wifi_stats(self, data: Dict[str, Any]):
        """Format WiFi stats as JSON."""
        self._print_json(data)

    def format_vpn_stats(self, data: Dict[str, Any]):
        """Format VPN stats as JSON."""
        self._print_json(data)

    def format_jitter_stats(self, data: Dict[str, Any]):
        """Format jitter stats as JSON."""
        self._print_json(data)

    def format_device_health(self, data: Dict[str, Any]):
        """Format device health as JSON."""
        self._print_json(data)

    def format_status(self, status: Dict[str, Any]):
        """Format service status as JSON."""
        self._print_json(status)

    def format_error(self, error: str, code: Optional[str] = None):
        """Format error message as JSON."""
        output = {
            "error": {"code": code or "error", "message": error},
            "success": False
        }
        self._print_json(output)

    def _print_json(self, data: Any):
        """Print JSON with optional formatting and coloring."""
        if self.pretty:
            json_str = json.dumps(data, indent=2, sort_keys=False, default=str)
        else:
            json_str = json.dumps(data, default=str)

        if self.colored and console.is_terminal:
            syntax = Syntax(json_str, "json", theme="monokai")
            console.print(syntax)
        else:
            print(json_str)

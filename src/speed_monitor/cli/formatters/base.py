# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Base formatter class for output formatting.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from rich.console import Console

console = Console()


class BaseFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def format_records(self, records: List[Dict[str, Any]], title: str = "Speed Test Results"):
        """Format a list of telemetry records for output."""
        pass

    @abstractmethod
    def format_submission(self, result: Dict[str, Any]):
        """Format the outcome of a submission for output."""
        pass

    @abstractmethod
    def format_batch_submission(self, summary: Dict[str, Any]):
        """Format the outcome of a multi-record submission for output."""
        pass

    @abstractmethod
    def format_overall_stats(self, data: Dict[str, Any]):
        """Format overall, per-device and hourly stats for output."""
        pass

    @abstractmethod
    def format_wifi_stats(self, data: Dict[str, Any]):
        """Format access point, SSID and band stats for output."""
        pass

    @abstractmethod
    def format_vpn_stats(self, data: Dict[str, Any]):
        """Format VPN distribution and comparison for output."""
        pass

    @abstractmethod
    def format_jitter_stats(self, data: Dict[str, Any]):
        """Format jitter distribution and problem devices for output."""
        pass

    @abstractmethod
    def format_device_health(self, data: Dict[str, Any]):
        """Format a device health summary for output."""
        pass

    @abstractmethod
    def format_status(self, status: Dict[str, Any]):
        """Format service status for output."""
        pass

    @abstractmethod
    def format_error(self, error: str, code: Optional[str] = None):
        """Format error message for output."""
        pass

    def format_success(self, message: str):
        """Format success message for output."""
        console.print(f"[green]✓[/green] {message}")

    def format_warning(self, message: str):
        """Format warning message for output."""
        console.print(f"[yellow]⚠[/yellow] {message}")

    def _format_number(self, value: Optional[float], decimals: int = 2) -> str:
        """Format a number with fixed decimal places; missing values render as '-'."""
        if value is None:
            return "-"
        if decimals == 0:
            return f"{int(value):,}"
        return f"{value:,.{decimals}f}"

    def _format_text(self, value: Any) -> str:
        """Format an optional text value."""
        if value is None or value == "":
            return "-"
        return str(value)

    def _get_jitter_color(self, jitter_ms: Optional[float]) -> str:
        """Get color for a jitter value by severity."""
        if jitter_ms is None:
            return "dim"
        if jitter_ms < 10:
            return "green"
        if jitter_ms < 20:
            return "yellow"
        return "red"

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Table formatter using Rich for terminal output.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .base import BaseFormatter

console = Console()

# (key, header, decimals or None for text)
Column = Tuple[str, str, Optional[int]]


class TableFormatter(BaseFormatter):
    """Format output as tables using Rich."""

    def format_records(self, records: List[Dict[str, Any]], title: str = "Speed Test Results"):
        """Format records as a table."""
        if not records:
            console.print("[yellow]No results found[/yellow]")
            return

        table = Table(title=title, show_header=True, header_style="bold magenta")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Device", style="cyan", no_wrap=True)
        table.add_column("Timestamp (UTC)", style="dim")
        table.add_column("SSID", style="blue")
        table.add_column("Down", justify="right")
        table.add_column("Up", justify="right")
        table.add_column("Latency", justify="right")
        table.add_column("Jitter", justify="right")
        table.add_column("Loss %", justify="right")
        table.add_column("VPN", justify="center")
        table.add_column("Status", justify="center")

        for record in records:
            jitter = record.get("jitter_ms")
            color = self._get_jitter_color(jitter)
            status = record.get("status", "unknown")
            status_color = "green" if status == "success" else "red"
            vpn = record.get("vpn_name") if record.get("vpn_status") == "connected" else "off"

            table.add_row(
                str(record.get("id", "")),
                self._format_text(record.get("device_id")),
                self._format_text(record.get("timestamp_utc"))[:19],
                self._format_text(record.get("ssid")),
                self._format_number(record.get("download_mbps")),
                self._format_number(record.get("upload_mbps")),
                self._format_number(record.get("latency_ms")),
                f"[{color}]{self._format_number(jitter)}[/{color}]",
                self._format_number(record.get("packet_loss_pct")),
                self._format_text(vpn),
                f"[{status_color}]{status}[/{status_color}]",
            )

        console.print(table)

    def format_submission(self, result: Dict[str, Any]):
        """Format a submission outcome."""
        self.format_success(f"Result stored with id {result.get('id')}")

    def format_batch_submission(self, summary: Dict[str, Any]):
        """Format a multi-record submission summary."""
        for failure in summary.get("errors", []):
            self.format_error(f"line {failure['line']}: {failure['message']}", code=failure.get("code"))

        stored = len(summary.get("ids", []))
        message = f"Stored {stored} of {summary.get('submitted', 0)} results"
        if summary.get("errors"):
            self.format_warning(message)
        else:
            self.format_success(message)

    def format_overall_stats(self, data: Dict[str, Any]):
        """Format overall stats, per-device stats and the hourly trend."""
        overall = data.get("overall") or {}
        lines = [
            f"Tests: [bold]{overall.get('total_tests', 0)}[/bold]   "
            f"Devices: [bold]{overall.get('total_devices', 0)}[/bold]",
            f"Download: {self._format_number(overall.get('avg_download'))} Mbps avg "
            f"({self._format_number(overall.get('min_download'))} - "
            f"{self._format_number(overall.get('max_download'))})",
            f"Upload: {self._format_number(overall.get('avg_upload'))} Mbps avg",
            f"Latency: {self._format_number(overall.get('avg_latency'))} ms   "
            f"Jitter: {self._format_number(overall.get('avg_jitter'))} ms   "
            f"Loss: {self._format_number(overall.get('avg_packet_loss'))} %",
        ]
        console.print(Panel("\n".join(lines), title="Overall", border_style="blue"))

        self._print_rows("Per Device", data.get("per_device", []), [
            ("device_id", "Device", None),
            ("hostname", "Hostname", None),
            ("test_count", "Tests", 0),
            ("avg_download", "Down", 2),
            ("avg_upload", "Up", 2),
            ("avg_latency", "Latency", 2),
            ("avg_jitter", "Jitter", 2),
            ("vpn_status", "VPN", None),
            ("last_test", "Last Test", None),
        ])
        self._print_rows("Hourly (last 24h)", data.get("hourly", []), [
            ("hour", "Hour", None),
            ("test_count", "Tests", 0),
            ("avg_download", "Down", 2),
            ("avg_upload", "Up", 2),
            ("avg_jitter", "Jitter", 2),
        ])

    def format_wifi_stats(self, data: Dict[str, Any]):
        """Format access point, SSID and band stats."""
        self._print_rows("Access Points", data.get("by_access_point", []), [
            ("bssid", "BSSID", None),
            ("ssid", "SSID", None),
            ("band", "Band", None),
            ("channel", "Ch", 0),
            ("test_count", "Tests", 0),
            ("device_count", "Devices", 0),
            ("avg_download", "Down", 2),
            ("avg_upload", "Up", 2),
            ("avg_rssi", "RSSI", 0),
            ("avg_jitter", "Jitter", 2),
            ("avg_packet_loss", "Loss %", 2),
        ])
        self._print_rows("Networks", data.get("by_ssid", []), [
            ("ssid", "SSID", None),
            ("test_count", "Tests", 0),
            ("device_count", "Devices", 0),
            ("ap_count", "APs", 0),
            ("avg_download", "Down", 2),
            ("avg_upload", "Up", 2),
            ("avg_rssi", "RSSI", 0),
        ])
        self._print_rows("Bands", data.get("band_distribution", []), [
            ("band", "Band", None),
            ("count", "Tests", 0),
            ("avg_download", "Down", 2),
        ])

    def format_vpn_stats(self, data: Dict[str, Any]):
        """Format VPN distribution and comparison."""
        self._print_rows("VPN Comparison", data.get("comparison", []), [
            ("mode", "Mode", None),
            ("test_count", "Tests", 0),
            ("avg_download", "Down", 2),
            ("avg_upload", "Up", 2),
            ("avg_latency", "Latency", 2),
            ("avg_jitter", "Jitter", 2),
            ("avg_packet_loss", "Loss %", 2),
        ])
        self._print_rows("VPN Usage", data.get("distribution", []), [
            ("vpn_status", "Status", None),
            ("vpn_name", "Name", None),
            ("count", "Tests", 0),
            ("avg_download", "Down", 2),
            ("avg_upload", "Up", 2),
            ("avg_latency", "Latency", 2),
            ("avg_jitter", "Jitter", 2),
        ])

    def format_jitter_stats(self, data: Dict[str, Any]):
        """Format jitter distribution and problem devices."""
        self._print_rows("Jitter Distribution", data.get("distribution", []), [
            ("bucket", "Bucket", None),
            ("count", "Tests", 0),
            ("avg_download", "Down", 2),
        ])
        self._print_rows("Problem Devices", data.get("problem_devices", []), [
            ("device_id", "Device", None),
            ("hostname", "Hostname", None),
            ("test_count", "Tests", 0),
            ("avg_jitter", "Jitter", 2),
            ("avg_packet_loss", "Loss %", 2),
            ("last_test", "Last Test", None),
        ])

    def format_device_health(self, data: Dict[str, Any]):
        """Format a device health summary followed by its recent tests."""
        health = data.get("health") or {}
        if not health.get("total_tests"):
            console.print(f"[yellow]No results for device {health.get('device_id')}[/yellow]")
            return

        vpn = health.get("current_vpn_status")
        if vpn == "connected":
            vpn = f"connected ({health.get('current_vpn_name')})"

        lines = [
            f"Hostname: {self._format_text(health.get('hostname'))}   "
            f"OS: {self._format_text(health.get('os_version'))}   "
            f"App: {self._format_text(health.get('app_version'))}",
            f"Tests: {health.get('total_tests')} ({health.get('successful_tests')} successful)   "
            f"Last seen: {self._format_text(health.get('last_seen'))}",
            f"Download: {self._format_number(health.get('avg_download'))} Mbps   "
            f"Upload: {self._format_number(health.get('avg_upload'))} Mbps",
            f"Latency: {self._format_number(health.get('avg_latency'))} ms   "
            f"Jitter: {self._format_number(health.get('avg_jitter'))} ms   "
            f"Loss: {self._format_number(health.get('avg_packet_loss'))} %",
            f"WiFi: {self._format_text(health.get('current_ssid'))} "
            f"({self._format_text(health.get('current_band'))})   VPN: {self._format_text(vpn)}",
        ]
        console.print(Panel(escape("\n".join(lines)), title=f"Device {health.get('device_id')}", border_style="blue"))
        self.format_records(data.get("recent_tests", []), title="Recent Tests")

    def format_status(self, status: Dict[str, Any]):
        """Format service status."""
        if status.get("status") == "ok":
            console.print(
                f"[green]✓[/green] Speed monitor v{status.get('version')} ok, "
                f"{status.get('total_results')} results stored ({status.get('timestamp')})"
            )
        else:
            error = status.get("error") or {}
            self.format_error(error.get("message", "unknown error"), code=error.get("code"))

    def format_error(self, error: str, code: Optional[str] = None):
        """Format error message."""
        prefix = f"Error [{code}]" if code else "Error"
        console.print(f"[red]{escape(prefix)}:[/red] {escape(error)}")

    def _print_rows(self, title: str, rows: List[Dict[str, Any]], columns: Sequence[Column]):
        """Print a list of aggregate rows as a table."""
        if not rows:
            console.print(f"[dim]{title}: no data[/dim]")
            return

        table = Table(title=title, show_header=True, header_style="bold magenta")
        for index, (_, header, decimals) in enumerate(columns):
            if index == 0:
                table.add_column(header, style="cyan", no_wrap=True)
            else:
                table.add_column(header, justify="left" if decimals is None else "right")

        for row in rows:
            table.add_row(*[
                self._format_text(row.get(key)) if decimals is None
                else self._format_number(row.get(key), decimals)
                for key, _, decimals in columns
            ])

        console.print(table)

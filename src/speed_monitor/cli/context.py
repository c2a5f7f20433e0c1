# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared state passed to CLI commands through the click context.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..processing.service import SpeedMonitorService
from ..shared.config import Config


@dataclass
class CLIContext:
    """CLI state container."""

    config: Config
    db_path: Optional[Path] = None
    default_format: str = "table"
    debug: bool = False
    no_color: bool = False
    _service: Optional[SpeedMonitorService] = field(default=None, repr=False)

    @property
    def service(self) -> SpeedMonitorService:
        """Service bound to the configured database, initialized on first use."""
        if self._service is None:
            self._service = SpeedMonitorService(config=self.config, db_path=self.db_path)
            self._service.initialize()
        return self._service

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Structured errors raised across the speed monitor core boundary.

Every error carries a stable machine-readable code, a human-readable message
and the HTTP status a transport layer should answer with.
"""

from typing import Any, Dict, Optional


class SpeedMonitorError(Exception):
    """Base class for all errors surfaced by the core."""

    code = "internal_error"
    http_status = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as a response body."""
        return {"error": {"code": self.code, "message": self.message}}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(SpeedMonitorError):
    """Submission rejected before any storage interaction."""

    code = "validation_error"
    http_status = 400


class StorageError(SpeedMonitorError):
    """Persistence-layer fault on append or query."""

    code = "storage_error"


class InternalError(SpeedMonitorError):
    """Unexpected fault caught at the service boundary."""

    code = "internal_error"


MISSING_DEVICE_ID = "missing_device_id"
INVALID_PAYLOAD = "invalid_payload"

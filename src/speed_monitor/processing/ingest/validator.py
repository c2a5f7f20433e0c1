# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Ingestion validator.

Turns a loosely-typed submission into a TelemetryRecord. device_id is the only
mandatory field; every other field gets an explicit default when it is absent,
null or of the wrong type. The submission itself is kept verbatim in
raw_payload.
"""

import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from ...shared.errors import INVALID_PAYLOAD, MISSING_DEVICE_ID, ValidationError
from ...shared.record_schema import (
    FLOAT_FIELDS,
    INTEGER_FIELDS,
    PLACEHOLDER_NONE,
    STATUS_SUCCESS,
    TEXT_FIELDS,
    VPN_DISCONNECTED,
    VPN_STATUSES,
    TelemetryRecord,
)

logger = logging.getLogger(__name__)

# SQLite INTEGER range
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_payload(raw: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Decode a submission into a dictionary.

    Args:
        raw: JSON text/bytes or an already-decoded mapping

    Raises:
        ValidationError: if the submission is not a JSON object
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise ValidationError(f"Request body is not valid JSON: {e}", code=INVALID_PAYLOAD) from e

    if not isinstance(raw, dict):
        raise ValidationError(
            f"Request body must be a JSON object, got {type(raw).__name__}",
            code=INVALID_PAYLOAD,
        )
    return raw


def _is_text(value: Any) -> bool:
    """Non-blank string that is storable as UTF-8 (no lone surrogates)."""
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _text(value: Any) -> Optional[str]:
    return value if _is_text(value) else None


def _integer(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and INT64_MIN <= value <= INT64_MAX:
        return value
    return 0


def _float(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if not isinstance(value, (int, float)):
        return 0.0
    try:
        value = float(value)
    except OverflowError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def _timestamp(value: Any, now: datetime) -> str:
    """Canonicalize an ISO-8601 timestamp to UTC, or use the ingestion time."""
    moment = now
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            moment = parsed.astimezone(timezone.utc)
        except (ValueError, OverflowError):
            logger.debug(f"Unparseable timestamp_utc {value!r}, using ingestion time")

    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _vpn_status(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in VPN_STATUSES:
        return value.strip().lower()
    return VPN_DISCONNECTED


def normalize(
    raw: Union[str, bytes, Dict[str, Any]],
    clock: Callable[[], datetime] = _utc_now,
) -> TelemetryRecord:
    """
    Normalize a raw submission into a TelemetryRecord.

    Args:
        raw: JSON text/bytes or decoded mapping as sent by the device
        clock: Source of the ingestion time (UTC)

    Returns:
        TelemetryRecord ready to append (no id, no created_at)

    Raises:
        ValidationError: missing_device_id or invalid_payload
    """
    data = parse_payload(raw)

    device_id = data.get("device_id")
    if not _is_text(device_id):
        raise ValidationError("device_id is required", code=MISSING_DEVICE_ID)

    values: Dict[str, Any] = {name: _text(data.get(name)) for name in TEXT_FIELDS}
    values.update({name: _integer(data.get(name)) for name in INTEGER_FIELDS})
    values.update({name: _float(data.get(name)) for name in FLOAT_FIELDS})

    return TelemetryRecord(
        device_id=device_id,
        user_id=_text(data.get("user_id")) or device_id,
        timestamp_utc=_timestamp(data.get("timestamp_utc"), clock()),
        vpn_status=_vpn_status(data.get("vpn_status")),
        vpn_name=_text(data.get("vpn_name")) or PLACEHOLDER_NONE,
        status=_text(data.get("status")) or STATUS_SUCCESS,
        raw_payload=json.dumps(data, separators=(',', ':'), default=str),
        **values,
    )

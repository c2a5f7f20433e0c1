# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Ingestion of raw telemetry submissions."""

from .validator import normalize, parse_payload

__all__ = ['normalize', 'parse_payload']

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Analytics over stored telemetry.

Provides the aggregation views: overall, per-device, hourly trend, WiFi,
VPN, jitter distribution, problem devices and device health.
"""

from .aggregations import JITTER_BUCKETS, AggregationEngine

__all__ = ['AggregationEngine', 'JITTER_BUCKETS']

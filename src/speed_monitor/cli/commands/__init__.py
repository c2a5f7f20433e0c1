# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Command modules for the CLI."""

from . import init_db
from . import submit
from . import results
from . import stats
from . import health

__all__ = ["init_db", "submit", "results", "stats", "health"]

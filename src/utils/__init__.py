# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware calendar boundaries (day, week)
- numbers: Half-up rounding and finite-safe numeric conversion
"""

from src.utils.datetime import (
    ensure_utc,
    local_date,
    local_midnight,
    parse_iso,
    resolve_timezone,
    start_of_day,
    start_of_week,
    utc_now,
    week_bounds,
    week_start_date,
)
from src.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    run_context,
    setup_logging,
)
from src.utils.numbers import round_half_up, to_float

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "run_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "parse_iso",
    "resolve_timezone",
    "local_date",
    "local_midnight",
    "start_of_day",
    "start_of_week",
    "week_start_date",
    "week_bounds",
    # Numbers
    "round_half_up",
    "to_float",
]

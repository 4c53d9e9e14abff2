# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for the ranking engine.

This module defines the exception hierarchy for ranking operations:
- RankingError: Base exception for all ranking-related errors
- SnapshotExistsError: A snapshot for the (scope, week) key is already stored

Malformed session data never raises; it is clamped or dropped during
aggregation. Session Store and Student Directory failures are not wrapped
and reach the caller unchanged.
"""

from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.domains.ranking.models import RankingSnapshot, ScopeKey


class RankingError(Exception):
    """Base exception for all ranking-related errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None):
        """Initialize ranking error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class SnapshotExistsError(RankingError):
    """A snapshot already exists for the scope and week.

    Snapshots are idempotent by rejection: the stored snapshot is never
    replaced. Callers that retry can treat this as success and use
    ``existing``.

    Attributes:
        scope: Scope of the rejected write.
        week_start: Week of the rejected write.
        existing: The snapshot already stored for the key.
    """

    def __init__(
        self,
        scope: "ScopeKey",
        week_start: date,
        existing: "RankingSnapshot",
    ):
        """Initialize snapshot exists error.

        Args:
            scope: Scope of the rejected write.
            week_start: Week of the rejected write.
            existing: The snapshot already stored for the key.
        """
        self.scope = scope
        self.week_start = week_start
        self.existing = existing
        super().__init__(
            f"Snapshot already exists for {scope} week {week_start}",
            details={"snapshot_id": existing.id},
        )

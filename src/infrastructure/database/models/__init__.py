# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the snapshot database."""

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.ranking import (
    RankingSnapshotEntryRecord,
    RankingSnapshotRecord,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "RankingSnapshotRecord",
    "RankingSnapshotEntryRecord",
]

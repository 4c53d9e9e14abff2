# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Weekly ranking snapshot tables.

- ranking_snapshots: one row per (scope_type, scope_id, week_start)
- ranking_snapshot_entries: one row per ranked student in a snapshot

The unique key on ranking_snapshots serializes concurrent writers: the
first transaction to commit wins and later ones fail with IntegrityError.
"""

from datetime import date
from uuid import uuid4

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin


class RankingSnapshotRecord(Base, TimestampMixin):
    """Archived ranking of one scope for one week."""

    __tablename__ = "ranking_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "scope_type",
            "scope_id",
            "week_start",
            name="uq_ranking_snapshots_scope_week",
        ),
        Index("ix_ranking_snapshots_week", "week_start"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    scope_type: Mapped[str] = mapped_column(String(20), nullable=False)
    scope_id: Mapped[str] = mapped_column(String(100), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    week_end: Mapped[date] = mapped_column(Date, nullable=False)
    student_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    entries: Mapped[list["RankingSnapshotEntryRecord"]] = relationship(
        back_populates="snapshot",
        cascade="all, delete-orphan",
        order_by="RankingSnapshotEntryRecord.rank",
        lazy="selectin",
    )


class RankingSnapshotEntryRecord(Base):
    """One student's position in an archived ranking."""

    __tablename__ = "ranking_snapshot_entries"
    __table_args__ = (
        UniqueConstraint("snapshot_id", "student_id", name="uq_snapshot_entries_student"),
        UniqueConstraint("snapshot_id", "rank", name="uq_snapshot_entries_rank"),
        Index("ix_snapshot_entries_student", "student_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snapshot_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("ranking_snapshots.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id: Mapped[str] = mapped_column(String(100), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    avg_improvement: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    daily_study_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekly_study_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    snapshot: Mapped[RankingSnapshotRecord] = relationship(back_populates="entries")

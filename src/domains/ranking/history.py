# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Weekly ranking history snapshots.

This module archives Ranker output as immutable weekly records:
- One snapshot per (scope, week_start), written in a single transaction
- Re-snapshotting an existing key is rejected with SnapshotExistsError
- Snapshots are never updated or deleted here

It also serves the history views: a scope's past snapshots and a
student's week-by-week ranks across scopes.

Usage:
    from src.domains.ranking import HistorySnapshotter

    snapshotter = HistorySnapshotter(get_sessionmaker())
    try:
        snapshot = await snapshotter.snapshot_week(scope, start, end, ranking)
    except SnapshotExistsError as e:
        snapshot = e.existing
"""

import logging
from collections.abc import Iterable
from datetime import date
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domains.ranking.exceptions import SnapshotExistsError
from src.domains.ranking.models import (
    RankedStudent,
    RankingSnapshot,
    ScopeKey,
    ScopeType,
    StudentMetrics,
    StudentWeekHistory,
)
from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.database.models import (
    RankingSnapshotEntryRecord,
    RankingSnapshotRecord,
)
from src.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


def _validate_entries(entries: tuple[RankedStudent, ...]) -> None:
    ranks = sorted(entry.rank for entry in entries)
    if ranks != list(range(1, len(entries) + 1)):
        raise ValueError("Ranks must be a permutation of 1..N")
    if len({entry.student_id for entry in entries}) != len(entries):
        raise ValueError("Student ids must be unique within a snapshot")


def _to_domain(record: RankingSnapshotRecord) -> RankingSnapshot:
    return RankingSnapshot(
        id=record.id,
        scope=ScopeKey(scope_type=ScopeType(record.scope_type), scope_id=record.scope_id),
        week_start=record.week_start,
        week_end=record.week_end,
        created_at=ensure_utc(record.created_at),
        entries=tuple(
            RankedStudent(
                student_id=entry.student_id,
                rank=entry.rank,
                total_score=entry.total_score,
                metrics=StudentMetrics(
                    student_id=entry.student_id,
                    avg_improvement=entry.avg_improvement,
                    daily_study_minutes=entry.daily_study_minutes,
                    weekly_study_days=entry.weekly_study_days,
                ),
            )
            for entry in sorted(record.entries, key=lambda e: e.rank)
        ),
    )


class HistorySnapshotter:
    """Writes and reads weekly ranking snapshots.

    Each write opens its own transaction so a snapshot header and all of
    its entries become visible together or not at all.

    Attributes:
        _sessionmaker: Factory for snapshot database sessions.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the snapshotter.

        Args:
            sessionmaker: Async sessionmaker bound to the snapshot database.
        """
        self._sessionmaker = sessionmaker

    async def snapshot_week(
        self,
        scope: ScopeKey,
        week_start: date,
        week_end: date,
        ranked: Iterable[RankedStudent],
    ) -> RankingSnapshot:
        """Archive one scope's ranking for one week.

        Args:
            scope: Scope the ranking belongs to.
            week_start: First date of the week.
            week_end: Last date of the week.
            ranked: Ranked students of the scope.

        Returns:
            The stored RankingSnapshot.

        Raises:
            SnapshotExistsError: If the (scope, week_start) key is already
                stored, including when a concurrent writer won the race.
            ValueError: If the week bounds or the ranks are inconsistent.
            DatabaseError: If the write fails for another reason.
        """
        if week_end < week_start:
            raise ValueError(f"week_end {week_end} is before week_start {week_start}")

        entries = tuple(ranked)
        _validate_entries(entries)

        existing = await self.get_snapshot(scope, week_start)
        if existing is not None:
            logger.info(
                "Snapshot already exists: scope=%s, week=%s, id=%s",
                scope,
                week_start,
                existing.id,
            )
            raise SnapshotExistsError(scope, week_start, existing)

        record = RankingSnapshotRecord(
            id=str(uuid4()),
            scope_type=scope.scope_type.value,
            scope_id=scope.scope_id,
            week_start=week_start,
            week_end=week_end,
            student_count=len(entries),
            created_at=utc_now(),
            entries=[
                RankingSnapshotEntryRecord(
                    student_id=entry.student_id,
                    rank=entry.rank,
                    total_score=entry.total_score,
                    avg_improvement=entry.metrics.avg_improvement,
                    daily_study_minutes=entry.metrics.daily_study_minutes,
                    weekly_study_days=entry.metrics.weekly_study_days,
                )
                for entry in entries
            ],
        )

        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    session.add(record)
        except IntegrityError as e:
            existing = await self.get_snapshot(scope, week_start)
            if existing is None:
                raise DatabaseError("Failed to write ranking snapshot", e) from e
            logger.info(
                "Snapshot written concurrently: scope=%s, week=%s, id=%s",
                scope,
                week_start,
                existing.id,
            )
            raise SnapshotExistsError(scope, week_start, existing) from e
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to write ranking snapshot", e) from e

        logger.info(
            "Created ranking snapshot: scope=%s, week=%s..%s, students=%d",
            scope,
            week_start,
            week_end,
            len(entries),
        )

        return _to_domain(record)

    async def snapshot_week_or_existing(
        self,
        scope: ScopeKey,
        week_start: date,
        week_end: date,
        ranked: Iterable[RankedStudent],
    ) -> tuple[RankingSnapshot, bool]:
        """Archive a week, treating an existing snapshot as success.

        Returns:
            Tuple of (snapshot, created). When created is False the
            returned snapshot is the one already stored.
        """
        try:
            return await self.snapshot_week(scope, week_start, week_end, ranked), True
        except SnapshotExistsError as e:
            return e.existing, False

    async def get_snapshot(self, scope: ScopeKey, week_start: date) -> RankingSnapshot | None:
        """Load the snapshot stored for a scope and week, if any."""
        stmt = select(RankingSnapshotRecord).where(
            RankingSnapshotRecord.scope_type == scope.scope_type.value,
            RankingSnapshotRecord.scope_id == scope.scope_id,
            RankingSnapshotRecord.week_start == week_start,
        )

        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                record = result.scalar_one_or_none()
                return _to_domain(record) if record else None
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to load ranking snapshot", e) from e

    async def list_snapshots(
        self,
        scope: ScopeKey,
        limit: int | None = None,
    ) -> list[RankingSnapshot]:
        """List a scope's snapshots, newest week first."""
        stmt = (
            select(RankingSnapshotRecord)
            .where(
                RankingSnapshotRecord.scope_type == scope.scope_type.value,
                RankingSnapshotRecord.scope_id == scope.scope_id,
            )
            .order_by(RankingSnapshotRecord.week_start.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                return [_to_domain(record) for record in result.scalars().all()]
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to list ranking snapshots", e) from e

    async def student_history(
        self,
        student_id: str,
        limit: int | None = None,
    ) -> list[StudentWeekHistory]:
        """Get a student's archived ranks per week, newest week first.

        Args:
            student_id: Student identifier.
            limit: Maximum number of weeks to return.

        Returns:
            One StudentWeekHistory per archived week.
        """
        stmt = (
            select(
                RankingSnapshotEntryRecord.student_id,
                RankingSnapshotRecord.scope_type,
                RankingSnapshotRecord.week_start,
                RankingSnapshotRecord.week_end,
                RankingSnapshotEntryRecord.rank,
                RankingSnapshotEntryRecord.total_score,
            )
            .join(RankingSnapshotRecord, RankingSnapshotEntryRecord.snapshot)
            .where(RankingSnapshotEntryRecord.student_id == student_id)
            .order_by(RankingSnapshotRecord.week_start.desc())
        )

        rows = await self._fetch_rows(stmt)
        history = list(self._collect_history(rows).values())
        return history[:limit] if limit is not None else history

    async def week_history(self, week_start: date) -> dict[str, StudentWeekHistory]:
        """Get every student's archived ranks for one week, keyed by student id."""
        stmt = (
            select(
                RankingSnapshotEntryRecord.student_id,
                RankingSnapshotRecord.scope_type,
                RankingSnapshotRecord.week_start,
                RankingSnapshotRecord.week_end,
                RankingSnapshotEntryRecord.rank,
                RankingSnapshotEntryRecord.total_score,
            )
            .join(RankingSnapshotRecord, RankingSnapshotEntryRecord.snapshot)
            .where(RankingSnapshotRecord.week_start == week_start)
        )

        rows = await self._fetch_rows(stmt)
        return {key[0]: item for key, item in self._collect_history(rows).items()}

    async def _fetch_rows(self, stmt) -> list:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                return list(result.all())
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to load ranking history", e) from e

    @staticmethod
    def _collect_history(rows: list) -> dict[tuple[str, date], StudentWeekHistory]:
        """Fold (student, scope, week, rank, score) rows into per-week items."""
        collected: dict[tuple[str, date], dict] = {}

        for student_id, scope_type, week_start, week_end, rank, total_score in rows:
            item = collected.setdefault(
                (student_id, week_start),
                {
                    "student_id": student_id,
                    "week_start": week_start,
                    "week_end": week_end,
                    "total_score": total_score,
                },
            )
            item[f"{ScopeType(scope_type).value}_rank"] = rank
            if scope_type == ScopeType.GLOBAL.value:
                item["total_score"] = total_score

        return {key: StudentWeekHistory(**item) for key, item in collected.items()}

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Ranking service: the engine's entry point.

This module provides the RankingService that handles:
- Per-student metrics and composite scores
- Ranking a single scope
- Whole-population runs across school, district, and global scopes
- Weekly snapshots, rank movement, and podium achievements

The service reads from two external collaborators, the Session Store and
the Student Directory, once per run. Their failures propagate unchanged.

Example:
    >>> service = RankingService(settings.ranking, HistorySnapshotter(get_sessionmaker()))
    >>> ranking = await service.rank_population(store, directory, now=utc_now())
    >>> week_start, week_end = service.week_bounds(utc_now())
    >>> result = await service.snapshot_population(ranking, week_start, week_end)
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta
from typing import Any, Protocol

from src.core.config.settings import RankingSettings
from src.domains.ranking.aggregator import SessionAggregator, SessionInput
from src.domains.ranking.exceptions import RankingError, SnapshotExistsError
from src.domains.ranking.grouper import PopulationRanking, ScopeGrouper
from src.domains.ranking.history import HistorySnapshotter
from src.domains.ranking.models import (
    RankedStudent,
    RankingSnapshot,
    ScopeKey,
    ScoredStudent,
    StudentMetrics,
    StudentScope,
)
from src.domains.ranking.movement import (
    Achievement,
    RankChange,
    award_achievements,
    detect_rank_changes,
)
from src.domains.ranking.ranker import RankingResult, Ranker
from src.domains.ranking.scoring import ScoreCalculator
from src.utils.datetime import week_bounds

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Read-only source of study sessions."""

    async def fetch_sessions(
        self,
        student_ids: Sequence[str],
    ) -> Mapping[str, Sequence[SessionInput]]:
        """Fetch the sessions of the given students, keyed by student id."""
        ...


class StudentDirectory(Protocol):
    """Read-only source of student scope attributes."""

    async def list_students(self) -> Sequence[StudentScope]:
        """List the students to rank with their school and district."""
        ...


class SnapshotRunResult:
    """Result of snapshotting every scope of a population run.

    Attributes:
        week_start: First date of the archived week.
        week_end: Last date of the archived week.
        created: Snapshots written by this run.
        existing: Snapshots that were already stored for the week.
    """

    def __init__(self, week_start: date, week_end: date) -> None:
        """Initialize an empty result.

        Args:
            week_start: First date of the archived week.
            week_end: Last date of the archived week.
        """
        self.week_start = week_start
        self.week_end = week_end
        self.created: list[RankingSnapshot] = []
        self.existing: list[RankingSnapshot] = []

    @property
    def snapshots(self) -> list[RankingSnapshot]:
        """All snapshots for the week, new and pre-existing."""
        return self.created + self.existing

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "week_start": str(self.week_start),
            "week_end": str(self.week_end),
            "snapshots_created": len(self.created),
            "snapshots_existing": len(self.existing),
        }


class RankingService:
    """Scoring and ranking engine.

    Attributes:
        settings: Ranking policy.
        aggregator: Session list -> StudentMetrics.
        calculator: StudentMetrics -> composite score.
        grouper: Population -> per-scope rankings.
    """

    def __init__(
        self,
        settings: RankingSettings | None = None,
        snapshotter: HistorySnapshotter | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            settings: Ranking policy. Defaults to RankingSettings().
            snapshotter: Snapshot store; required for history operations.
        """
        self.settings = settings or RankingSettings()
        self.aggregator = SessionAggregator(self.settings)
        self.calculator = ScoreCalculator(self.settings)
        self.grouper = ScopeGrouper(max_workers=self.settings.max_workers)
        self._snapshotter = snapshotter

    @property
    def snapshotter(self) -> HistorySnapshotter:
        if self._snapshotter is None:
            raise RankingError("No HistorySnapshotter configured for this service")
        return self._snapshotter

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def compute_metrics(
        self,
        student_id: str,
        sessions: Iterable[SessionInput],
        now: datetime,
    ) -> StudentMetrics:
        """Reduce one student's sessions to metrics at the given instant."""
        return self.aggregator.compute_metrics(student_id, sessions, now)

    def score(self, metrics: StudentMetrics) -> ScoredStudent:
        """Attach the composite score to metrics."""
        return self.calculator.score(metrics)

    def score_student(
        self,
        student_id: str,
        sessions: Iterable[SessionInput],
        now: datetime,
    ) -> ScoredStudent:
        """Compute metrics and score for one student."""
        return self.score(self.compute_metrics(student_id, sessions, now))

    # -------------------------------------------------------------------------
    # Ranking
    # -------------------------------------------------------------------------

    def rank_scope(
        self,
        scored_students: Iterable[ScoredStudent],
        scope: ScopeKey | None = None,
    ) -> RankingResult:
        """Rank the students of one scope."""
        return Ranker().rank(scored_students, scope=scope)

    def leaderboard(
        self,
        ranking: RankingResult,
        top_n: int | None = None,
    ) -> list[dict[str, Any]]:
        """Flatten the head of a ranking for display.

        Args:
            ranking: Ranked scope.
            top_n: Rows to keep. Defaults to settings.default_top_n.

        Returns:
            Presentation dicts in rank order.
        """
        limit = self.settings.default_top_n if top_n is None else top_n
        return ranking.to_list(top_n=limit)

    async def rank_population(
        self,
        store: SessionStore,
        directory: StudentDirectory,
        now: datetime,
    ) -> PopulationRanking:
        """Score and rank every directory student in all scopes.

        The directory and the sessions are each fetched once; everything
        after that is pure computation over the fetched data.

        Args:
            store: Session Store.
            directory: Student Directory.
            now: Reference instant for daily and weekly windows.

        Returns:
            PopulationRanking over school, district, and global scopes.
        """
        students = await directory.list_students()
        scopes: dict[str, StudentScope] = {}
        for student in students:
            scopes[student.student_id] = student

        student_ids = list(scopes)
        sessions_by_student = await store.fetch_sessions(student_ids)

        population = [
            self.score_student(student_id, sessions_by_student.get(student_id, ()), now)
            for student_id in student_ids
        ]

        logger.info("Scored population: students=%d, now=%s", len(population), now.isoformat())

        return self.grouper.rank_population(population, scopes)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def week_bounds(self, now: datetime) -> tuple[date, date]:
        """Get the (first, last) dates of the week containing now."""
        return week_bounds(now, self.settings.tzinfo, self.settings.week_start_day)

    async def snapshot_week(
        self,
        scope: ScopeKey,
        week_start: date,
        week_end: date,
        ranked: Iterable[RankedStudent],
    ) -> RankingSnapshot:
        """Archive one scope's ranking for a week.

        Raises:
            SnapshotExistsError: If the scope already has a snapshot for
                the week.
        """
        return await self.snapshotter.snapshot_week(scope, week_start, week_end, ranked)

    async def snapshot_population(
        self,
        ranking: PopulationRanking,
        week_start: date,
        week_end: date,
    ) -> SnapshotRunResult:
        """Archive every scope of a population run for a week.

        Scopes already archived for the week are reported as existing
        rather than failing the run.

        Returns:
            SnapshotRunResult with created and pre-existing snapshots.
        """
        result = SnapshotRunResult(week_start, week_end)

        for scope in sorted(ranking.rankings, key=lambda k: (k.scope_type.value, k.scope_id)):
            try:
                snapshot = await self.snapshotter.snapshot_week(
                    scope, week_start, week_end, ranking.rankings[scope]
                )
                result.created.append(snapshot)
            except SnapshotExistsError as e:
                result.existing.append(e.existing)

        logger.info(
            "Weekly snapshot run complete: week=%s, created=%d, existing=%d",
            week_start,
            len(result.created),
            len(result.existing),
        )
        return result

    async def rank_changes(
        self,
        ranking: PopulationRanking,
        week_start: date,
    ) -> list[RankChange]:
        """Detect rank movement against the week before week_start."""
        previous = await self.snapshotter.week_history(week_start - timedelta(days=7))
        return detect_rank_changes(
            previous,
            ranking.standings(),
            top_threshold=self.settings.top_rank_threshold,
        )

    def achievements(self, ranking: PopulationRanking, week_start: date) -> list[Achievement]:
        """Award podium finishes for the current standings."""
        return award_achievements(
            ranking.standings(),
            week_start,
            podium_size=self.settings.podium_size,
        )

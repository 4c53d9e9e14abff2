# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for RankingService end-to-end runs."""

from datetime import date, datetime, timedelta, timezone

import pytest

from src.core.config.settings import RankingSettings
from src.domains.ranking import (
    RankChangeType,
    RankedStudent,
    RankingError,
    RankingService,
    ScopeKey,
    ScopeType,
    StudentMetrics,
    StudentScope,
)

WEEK_START = date(2026, 10, 11)
WEEK_END = date(2026, 10, 17)


def at(day: int, hour: int = 10) -> datetime:
    return datetime(2026, 10, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def students() -> list[StudentScope]:
    return [
        StudentScope(student_id="A", school_id="SCH-1", district_id="North"),
        StudentScope(student_id="B", school_id="SCH-1", district_id="North"),
        StudentScope(student_id="C", school_id="SCH-2", district_id="North"),
        StudentScope(student_id="D", school_id=None, district_id="South"),
    ]


@pytest.fixture
def sessions(make_session) -> dict[str, list[dict]]:
    """A scores 79, B 36, C 0 (no sessions), D 74."""
    return {
        "A": [
            make_session(at(14, 9), minutes=50, improvement=80),
            make_session(at(14, 11), minutes=50, improvement=80),
            make_session(at(14, 13), minutes=50, improvement=80),
            make_session(at(11), minutes=20, improvement=80),
            make_session(at(12), minutes=20, improvement=80),
            make_session(at(13), minutes=20, improvement=80),
        ],
        "B": [make_session(at(14, 8), minutes=30, improvement=60)],
        "D": [make_session(at(14, 7), minutes=120, improvement=100)],
    }


@pytest.fixture
def service(ranking_settings, snapshotter) -> RankingService:
    return RankingService(ranking_settings, snapshotter)


@pytest.fixture
def store(session_store_factory, sessions):
    return session_store_factory(sessions)


@pytest.fixture
def directory(directory_factory, students):
    return directory_factory(students)


class TestScoring:
    """Tests for single-student scoring."""

    def test_score_student(self, service, sessions, now):
        scored = service.score_student("A", sessions["A"], now)

        assert scored.total_score == 79
        assert scored.metrics.daily_study_minutes == 150

    def test_compute_metrics_then_score(self, service, sessions, now):
        metrics = service.compute_metrics("D", sessions["D"], now)

        assert service.score(metrics).total_score == 74

    def test_service_defaults_settings(self):
        service = RankingService()

        assert service.settings.improvement_window == 10
        assert service.grouper.max_workers == 1


class TestRankPopulation:
    """Tests for RankingService.rank_population."""

    @pytest.mark.asyncio
    async def test_ranks_every_scope(self, service, store, directory, now):
        ranking = await service.rank_population(store, directory, now)

        assert [e.student_id for e in ranking.global_ranking()] == ["A", "D", "B", "C"]
        assert [e.total_score for e in ranking.global_ranking()] == [79, 74, 36, 0]
        assert ranking.school("SCH-1").rank_of("B") == 2
        assert ranking.school("SCH-2").rank_of("C") == 1
        assert ranking.district("North").rank_of("C") == 3
        assert ranking.district("South").rank_of("D") == 1
        assert [(e.student_id, e.scope_type) for e in ranking.exclusions] == [
            ("D", ScopeType.SCHOOL)
        ]

    @pytest.mark.asyncio
    async def test_student_without_sessions_ranks_with_zero(self, service, store, directory, now):
        ranking = await service.rank_population(store, directory, now)

        entry = ranking.global_ranking().get("C")
        assert entry.total_score == 0
        assert entry.metrics.avg_improvement == 0

    @pytest.mark.asyncio
    async def test_store_read_once_with_unique_ids(
        self, service, store, directory_factory, students, now
    ):
        directory = directory_factory(students + [students[0]])

        await service.rank_population(store, directory, now)

        assert len(store.calls) == 1
        assert sorted(store.calls[0]) == ["A", "B", "C", "D"]

    @pytest.mark.asyncio
    async def test_sessions_of_unknown_students_ignored(
        self, service, session_store_factory, sessions, directory, make_session, now
    ):
        sessions["ghost"] = [make_session(at(14), minutes=120, improvement=100)]

        ranking = await service.rank_population(session_store_factory(sessions), directory, now)

        assert "ghost" not in ranking.global_ranking()
        assert len(ranking.global_ranking()) == 4

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, service, failing_store_factory, directory, now):
        error = ConnectionError("session store unavailable")

        with pytest.raises(ConnectionError) as exc_info:
            await service.rank_population(failing_store_factory(error), directory, now)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_empty_directory(self, service, store, directory_factory, now):
        ranking = await service.rank_population(store, directory_factory([]), now)

        assert len(ranking.global_ranking()) == 0
        assert ranking.standings() == []


class TestLeaderboard:
    """Tests for the presentation view of a ranking."""

    @pytest.mark.asyncio
    async def test_defaults_to_configured_top_n(self, store, directory, now):
        service = RankingService(RankingSettings(default_top_n=2))
        ranking = await service.rank_population(store, directory, now)

        rows = service.leaderboard(ranking.global_ranking())

        assert [row["student_id"] for row in rows] == ["A", "D"]
        assert [row["rank"] for row in rows] == [1, 2]
        assert rows[0]["total_score"] == 79

    @pytest.mark.asyncio
    async def test_explicit_top_n_overrides_default(self, store, directory, now):
        service = RankingService(RankingSettings(default_top_n=2))
        ranking = await service.rank_population(store, directory, now)

        rows = service.leaderboard(ranking.global_ranking(), top_n=3)

        assert [row["student_id"] for row in rows] == ["A", "D", "B"]

    @pytest.mark.asyncio
    async def test_default_covers_small_scopes(self, service, store, directory, now):
        ranking = await service.rank_population(store, directory, now)

        rows = service.leaderboard(ranking.global_ranking())

        assert service.settings.default_top_n == 10
        assert len(rows) == 4


class TestSnapshots:
    """Tests for weekly snapshot runs."""

    def test_week_bounds(self, service, now):
        assert service.week_bounds(now) == (WEEK_START, WEEK_END)

    def test_week_bounds_monday_start(self, now):
        service = RankingService(RankingSettings(week_start_day=0))

        assert service.week_bounds(now) == (date(2026, 10, 12), date(2026, 10, 18))

    @pytest.mark.asyncio
    async def test_snapshot_population_is_idempotent(self, service, store, directory, now):
        ranking = await service.rank_population(store, directory, now)

        first = await service.snapshot_population(ranking, WEEK_START, WEEK_END)
        second = await service.snapshot_population(ranking, WEEK_START, WEEK_END)

        assert len(first.created) == 5
        assert first.existing == []
        assert second.created == []
        assert sorted(s.id for s in second.existing) == sorted(s.id for s in first.created)
        assert second.to_dict() == {
            "week_start": "2026-10-11",
            "week_end": "2026-10-17",
            "snapshots_created": 0,
            "snapshots_existing": 5,
        }

    @pytest.mark.asyncio
    async def test_snapshot_matches_ranking(self, service, store, directory, now):
        ranking = await service.rank_population(store, directory, now)
        scope = ScopeKey(scope_type=ScopeType.SCHOOL, scope_id="SCH-1")

        snapshot = await service.snapshot_week(scope, WEEK_START, WEEK_END, ranking.for_scope(scope))

        assert [(e.student_id, e.rank) for e in snapshot.entries] == [("A", 1), ("B", 2)]

    @pytest.mark.asyncio
    async def test_history_requires_snapshotter(self, ranking_settings, store, directory, now):
        service = RankingService(ranking_settings)
        ranking = await service.rank_population(store, directory, now)

        with pytest.raises(RankingError, match="HistorySnapshotter"):
            await service.snapshot_population(ranking, WEEK_START, WEEK_END)


class TestMovementAndAchievements:
    """Tests for rank changes and podium awards."""

    @pytest.mark.asyncio
    async def test_rank_changes_against_previous_week(
        self, snapshotter, store, directory, now
    ):
        service = RankingService(RankingSettings(top_rank_threshold=2), snapshotter)
        previous_start = WEEK_START - timedelta(days=7)
        previous = await service.rank_population(
            store, directory, now - timedelta(days=7)
        )
        await service.snapshot_population(previous, previous_start, previous_start + timedelta(days=6))

        # Sessions after last week's instant only feed the improvement average,
        # which keeps the same order: SCH-1 A=1, B=2; North A=1, B=2, C=3
        current = await service.rank_population(store, directory, now)
        changes = await service.rank_changes(current, WEEK_START)

        assert changes == []

    @pytest.mark.asyncio
    async def test_rank_improvement_and_entering_top(self, snapshotter, directory, store, now):
        service = RankingService(RankingSettings(top_rank_threshold=2), snapshotter)
        previous_start = WEEK_START - timedelta(days=7)
        previous_end = previous_start + timedelta(days=6)

        def entry(sid: str, rank: int) -> RankedStudent:
            return RankedStudent(
                student_id=sid,
                rank=rank,
                total_score=50,
                metrics=StudentMetrics(student_id=sid),
            )

        await snapshotter.snapshot_week(
            ScopeKey(scope_type=ScopeType.DISTRICT, scope_id="North"),
            previous_start,
            previous_end,
            [entry("X", 1), entry("C", 2), entry("B", 3), entry("A", 4)],
        )

        current = await service.rank_population(store, directory, now)
        changes = await service.rank_changes(current, WEEK_START)

        # North now: A=1, B=2, C=3
        assert [(c.student_id, c.change_type, c.old_rank, c.new_rank) for c in changes] == [
            ("A", RankChangeType.RANK_IMPROVED, 4, 1),
            ("A", RankChangeType.ENTERED_TOP, 4, 1),
            ("B", RankChangeType.RANK_IMPROVED, 3, 2),
            ("B", RankChangeType.ENTERED_TOP, 3, 2),
        ]
        assert all(c.scope_type == ScopeType.DISTRICT for c in changes)

    @pytest.mark.asyncio
    async def test_achievements(self, service, store, directory, now):
        ranking = await service.rank_population(store, directory, now)

        achievements = service.achievements(ranking, WEEK_START)

        awarded = {(a.student_id, a.achievement_type) for a in achievements}
        assert awarded == {
            ("A", "school_top_1"),
            ("A", "district_top_1"),
            ("D", "district_top_1"),
            ("B", "school_top_2"),
            ("B", "district_top_2"),
            ("C", "school_top_1"),
            ("C", "district_top_3"),
        }
        assert all(a.week_start == WEEK_START for a in achievements)

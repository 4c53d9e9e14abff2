# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scoring and ranking domain.

This package turns raw study sessions into ranked, archived leaderboards:
- SessionAggregator: Sessions -> StudentMetrics
- ScoreCalculator: StudentMetrics -> composite score (0..100)
- Ranker: Dense, fully tie-broken ranking of one scope
- ScopeGrouper: School, district, and global partitions
- HistorySnapshotter: Immutable weekly snapshots
- RankingService: Entry point combining all of the above
- run_weekly_snapshot: The weekly rank, archive, and compare job

Example:
    from src.domains.ranking import RankingService

    service = RankingService()
    scored = service.score_student("stu-1", sessions, now)
    ranking = service.rank_scope([scored, ...])
"""

from src.domains.ranking.aggregator import SessionAggregator, normalize_sessions
from src.domains.ranking.exceptions import RankingError, SnapshotExistsError
from src.domains.ranking.grouper import PopulationRanking, ScopeGrouper, ScopeGroups
from src.domains.ranking.history import HistorySnapshotter
from src.domains.ranking.jobs import run_weekly_snapshot
from src.domains.ranking.models import (
    GLOBAL_SCOPE_ID,
    ExclusionReason,
    RankedStudent,
    RankingSnapshot,
    ScopeExclusion,
    ScopeKey,
    ScopeType,
    ScoredStudent,
    StudentMetrics,
    StudentScope,
    StudentStanding,
    StudentWeekHistory,
    StudySessionRecord,
)
from src.domains.ranking.movement import (
    Achievement,
    RankChange,
    RankChangeType,
    award_achievements,
    detect_rank_changes,
)
from src.domains.ranking.ranker import Ranker, RankingResult, rank_scope
from src.domains.ranking.scoring import ScoreCalculator
from src.domains.ranking.service import (
    RankingService,
    SessionStore,
    SnapshotRunResult,
    StudentDirectory,
)
from src.utils.numbers import round_half_up

__all__ = [
    # Service
    "RankingService",
    "SessionStore",
    "StudentDirectory",
    "SnapshotRunResult",
    "run_weekly_snapshot",
    # Components
    "SessionAggregator",
    "normalize_sessions",
    "ScoreCalculator",
    "round_half_up",
    "Ranker",
    "RankingResult",
    "rank_scope",
    "ScopeGrouper",
    "ScopeGroups",
    "PopulationRanking",
    "HistorySnapshotter",
    # Movement
    "RankChange",
    "RankChangeType",
    "Achievement",
    "detect_rank_changes",
    "award_achievements",
    # Models
    "GLOBAL_SCOPE_ID",
    "ExclusionReason",
    "RankedStudent",
    "RankingSnapshot",
    "ScopeExclusion",
    "ScopeKey",
    "ScopeType",
    "ScoredStudent",
    "StudentMetrics",
    "StudentScope",
    "StudentStanding",
    "StudentWeekHistory",
    "StudySessionRecord",
    # Errors
    "RankingError",
    "SnapshotExistsError",
]

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Weekly ranking job.

Entry point for whatever external scheduler triggers the weekly run. One
call ranks the whole population, archives every scope for the current
week, and reports rank movement and podium achievements against the
previous week. Delivery of those events is left to the caller.

A re-run for a week that is already archived is safe: existing snapshots
are reported, never replaced.

Example:
    >>> service = RankingService(settings.ranking, HistorySnapshotter(get_sessionmaker()))
    >>> result = await run_weekly_snapshot(service, store, directory)
    >>> result["snapshots_created"]
    14
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from src.domains.ranking.service import RankingService, SessionStore, StudentDirectory
from src.utils.datetime import ensure_utc, utc_now
from src.utils.logging import get_logger, run_context

logger = get_logger(__name__)


async def run_weekly_snapshot(
    service: RankingService,
    store: SessionStore,
    directory: StudentDirectory,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Rank, archive, and compare one week.

    Args:
        service: RankingService with a HistorySnapshotter.
        store: Session Store.
        directory: Student Directory.
        now: Reference instant. Defaults to the current UTC time.

    Returns:
        Run summary with snapshot counts, rank changes, and achievements.

    Raises:
        RankingError: If the service has no HistorySnapshotter.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    week_start, week_end = service.week_bounds(now)
    run_id = str(uuid4())

    with run_context(run_id=run_id, week_start=str(week_start)):
        logger.info("Weekly ranking job started", now=now.isoformat())

        ranking = await service.rank_population(store, directory, now)
        snapshots = await service.snapshot_population(ranking, week_start, week_end)
        changes = await service.rank_changes(ranking, week_start)
        achievements = service.achievements(ranking, week_start)

        logger.info(
            "Weekly ranking job completed",
            students=len(ranking.global_ranking()),
            snapshots_created=len(snapshots.created),
            snapshots_existing=len(snapshots.existing),
            rank_changes=len(changes),
            achievements=len(achievements),
        )

        return {
            "run_id": run_id,
            **snapshots.to_dict(),
            "students_ranked": len(ranking.global_ranking()),
            "leaderboard": service.leaderboard(ranking.global_ranking()),
            "excluded": [e.model_dump(mode="json") for e in ranking.exclusions],
            "rank_changes": [c.model_dump(mode="json") for c in changes],
            "achievements": [
                {**a.model_dump(mode="json"), "achievement_type": a.achievement_type}
                for a in achievements
            ],
        }

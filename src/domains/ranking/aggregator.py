# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Session aggregation into per-student metrics.

This module reduces a student's raw study sessions into three metrics:
- Rolling improvement average over the most recent sessions
- Study minutes within the current local day
- Distinct local dates studied within the current week

Aggregation is a pure function of (sessions, now). Malformed records are
clamped or dropped here so that one bad row never aborts a ranking run.

Usage:
    from src.domains.ranking import SessionAggregator

    aggregator = SessionAggregator(settings.ranking)
    metrics = aggregator.compute_metrics("stu-1", sessions, now=utc_now())
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from fractions import Fraction
from typing import Any

from pydantic import ValidationError

from src.core.config.settings import RankingSettings
from src.domains.ranking.models import StudentMetrics, StudySessionRecord
from src.utils.datetime import ensure_utc, local_date, start_of_day, start_of_week
from src.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

SessionInput = StudySessionRecord | Mapping[str, Any]


def normalize_sessions(
    student_id: str,
    sessions: Iterable[SessionInput],
) -> list[StudySessionRecord]:
    """Validate raw session rows, dropping the ones that cannot be repaired.

    Args:
        student_id: Student the sessions belong to (for logging).
        sessions: Records or raw mappings from the Session Store.

    Returns:
        Valid records, in input order.
    """
    records: list[StudySessionRecord] = []
    dropped = 0

    for raw in sessions:
        if isinstance(raw, StudySessionRecord):
            records.append(raw)
            continue
        try:
            records.append(StudySessionRecord.model_validate(raw))
        except (ValidationError, TypeError) as e:
            dropped += 1
            logger.debug(
                "Dropping malformed session: student=%s, session=%s, error=%s",
                student_id,
                raw.get("id") if isinstance(raw, Mapping) else None,
                str(e),
            )

    if dropped:
        logger.warning(
            "Dropped %d malformed session(s) for student=%s",
            dropped,
            student_id,
        )

    return records


class SessionAggregator:
    """Reduces session lists to StudentMetrics.

    Attributes:
        settings: Ranking policy (window size, neutral score, week start, timezone).
    """

    def __init__(self, settings: RankingSettings | None = None) -> None:
        """Initialize the aggregator.

        Args:
            settings: Ranking policy. Defaults to RankingSettings().
        """
        self.settings = settings or RankingSettings()
        self._tz = self.settings.tzinfo

    def compute_metrics(
        self,
        student_id: str,
        sessions: Iterable[SessionInput],
        now: datetime,
    ) -> StudentMetrics:
        """Compute metrics for one student at a reference instant.

        Args:
            student_id: Student identifier.
            sessions: The student's sessions, in any order.
            now: Reference instant; naive values are treated as UTC.

        Returns:
            StudentMetrics for the student. A student with no sessions gets
            all-zero metrics.
        """
        now = ensure_utc(now)
        records = normalize_sessions(student_id, sessions)

        return StudentMetrics(
            student_id=student_id,
            avg_improvement=self._average_improvement(records),
            daily_study_minutes=self._daily_minutes(records, now),
            weekly_study_days=self._weekly_days(records, now),
        )

    def _average_improvement(self, records: list[StudySessionRecord]) -> int:
        if not records:
            return 0

        recent = sorted(records, key=lambda r: r.created_at, reverse=True)
        recent = recent[: self.settings.improvement_window]
        neutral = self.settings.neutral_improvement
        total = sum(r.effective_improvement(neutral) for r in recent)
        return round_half_up(Fraction(total, len(recent)))

    def _daily_minutes(self, records: list[StudySessionRecord], now: datetime) -> int:
        window_start = start_of_day(now, self._tz)
        return sum(
            r.time_spent_minutes
            for r in records
            if window_start <= r.created_at <= now
        )

    def _weekly_days(self, records: list[StudySessionRecord], now: datetime) -> int:
        window_start = start_of_week(now, self._tz, self.settings.week_start_day)
        days = {
            local_date(r.created_at, self._tz)
            for r in records
            if window_start <= r.created_at <= now
        }
        return len(days)

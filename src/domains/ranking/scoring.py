# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Composite score calculation.

The composite score combines three terms:
- Improvement: avg_improvement * improvement_weight (40 points max)
- Daily effort: min(daily_minutes, cap) * daily_minutes_weight (30 points max)
- Consistency: weekly_days / 7 * consistency_points (30 points max)

Only the final sum is rounded, half-up, using exact rational arithmetic so
that values such as 79.5 always round to 80 regardless of float
representation.
"""

from fractions import Fraction

from src.core.config.settings import RankingSettings
from src.domains.ranking.models import ScoredStudent, StudentMetrics
from src.utils.numbers import round_half_up

DAYS_PER_WEEK = 7


class ScoreCalculator:
    """Pure StudentMetrics -> total score function.

    Example:
        >>> calculator = ScoreCalculator()
        >>> calculator.total_score(StudentMetrics(
        ...     student_id="a", avg_improvement=80,
        ...     daily_study_minutes=150, weekly_study_days=4,
        ... ))
        79
    """

    def __init__(self, settings: RankingSettings | None = None) -> None:
        self._settings = settings or RankingSettings()
        # Exact rationals from the decimal text of each weight
        self._improvement_weight = Fraction(str(self._settings.improvement_weight))
        self._daily_weight = Fraction(str(self._settings.daily_minutes_weight))
        self._consistency_points = Fraction(str(self._settings.consistency_points))

    def total_score(self, metrics: StudentMetrics) -> int:
        """Compute the composite score for one student's metrics."""
        daily_minutes = min(metrics.daily_study_minutes, self._settings.daily_minutes_cap)
        weekly_days = min(metrics.weekly_study_days, DAYS_PER_WEEK)

        total = (
            metrics.avg_improvement * self._improvement_weight
            + daily_minutes * self._daily_weight
            + Fraction(weekly_days, DAYS_PER_WEEK) * self._consistency_points
        )
        return round_half_up(total)

    def score(self, metrics: StudentMetrics) -> ScoredStudent:
        """Attach the composite score to the metrics."""
        return ScoredStudent(
            student_id=metrics.student_id,
            metrics=metrics,
            total_score=self.total_score(metrics),
        )

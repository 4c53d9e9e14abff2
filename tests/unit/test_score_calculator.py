# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the composite score formula."""

from fractions import Fraction

import pytest

from src.core.config.settings import RankingSettings
from src.domains.ranking import ScoreCalculator, StudentMetrics, round_half_up


def metrics(avg: int = 0, minutes: int = 0, days: int = 0, student_id: str = "stu") -> StudentMetrics:
    return StudentMetrics(
        student_id=student_id,
        avg_improvement=avg,
        daily_study_minutes=minutes,
        weekly_study_days=days,
    )


@pytest.fixture
def calculator(ranking_settings) -> ScoreCalculator:
    return ScoreCalculator(ranking_settings)


class TestRoundHalfUp:
    """Tests for the rounding rule."""

    def test_half_goes_up(self):
        assert round_half_up(Fraction(1, 2)) == 1
        assert round_half_up(Fraction(5, 2)) == 3
        assert round_half_up(Fraction(159, 2)) == 80

    def test_below_half_goes_down(self):
        assert round_half_up(Fraction(554, 7)) == 79

    def test_integers_unchanged(self):
        assert round_half_up(0) == 0
        assert round_half_up(42) == 42


class TestScoreCalculator:
    """Tests for ScoreCalculator.total_score."""

    def test_example_student(self, calculator):
        """80 improvement, 150 minutes (capped at 120), 4 days -> 79."""
        assert calculator.total_score(metrics(avg=80, minutes=150, days=4)) == 79

    def test_zero_metrics_score_zero(self, calculator):
        assert calculator.total_score(metrics()) == 0

    def test_maximum_is_one_hundred(self, calculator):
        assert calculator.total_score(metrics(avg=100, minutes=120, days=7)) == 100

    def test_daily_minutes_are_capped(self, calculator):
        capped = calculator.total_score(metrics(avg=50, minutes=120, days=2))
        over = calculator.total_score(metrics(avg=50, minutes=600, days=2))

        assert capped == over

    def test_consistency_term(self, calculator):
        assert calculator.total_score(metrics(days=3)) == 13
        assert calculator.total_score(metrics(avg=50, minutes=60, days=7)) == 65

    def test_only_final_sum_is_rounded(self, calculator):
        # 0.4 + 0.25 + 4.2857... = 4.94 -> 5; rounding each term would give 4
        assert calculator.total_score(metrics(avg=1, minutes=1, days=1)) == 5

    def test_exact_half_rounds_up(self, calculator):
        assert calculator.total_score(metrics(minutes=2)) == 1
        assert calculator.total_score(metrics(avg=5, minutes=2)) == 3

    def test_score_stays_within_bounds(self, calculator):
        for avg in (0, 1, 33, 50, 99, 100):
            for minutes in (0, 1, 59, 119, 120, 1000):
                for days in range(8):
                    score = calculator.total_score(metrics(avg=avg, minutes=minutes, days=days))
                    assert 0 <= score <= 100

    def test_custom_weights(self):
        calculator = ScoreCalculator(
            RankingSettings(
                improvement_weight=1.0,
                daily_minutes_weight=0.0,
                consistency_points=0.0,
            )
        )

        assert calculator.total_score(metrics(avg=73, minutes=90, days=5)) == 73

    def test_score_attaches_metrics(self, calculator):
        m = metrics(avg=80, minutes=150, days=4, student_id="A")

        scored = calculator.score(m)

        assert scored.student_id == "A"
        assert scored.metrics == m
        assert scored.total_score == 79

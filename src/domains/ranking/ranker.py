# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Ranking of scored students within one scope.

Students are ordered by:
1. total_score, descending
2. avg_improvement, descending
3. weekly_study_days, descending
4. student_id, ascending

The order is total, so ranks are dense and sequential (1..N) with no
shared positions: two students with equal scores still receive distinct
ranks decided by the tie-breaks above.
"""

from collections.abc import Iterable, Iterator

from src.domains.ranking.models import RankedStudent, ScoredStudent, ScopeKey


def ranking_sort_key(student: ScoredStudent) -> tuple[int, int, int, str]:
    """Sort key implementing the scope ordering."""
    return (
        -student.total_score,
        -student.metrics.avg_improvement,
        -student.metrics.weekly_study_days,
        student.student_id,
    )


class RankingResult:
    """Ordered ranking of one scope.

    Supports iteration in rank order, O(1) lookup by student id, and
    truncated views for display.

    Attributes:
        scope: The ranked scope, if known.
        entries: RankedStudent tuple in rank order.
    """

    def __init__(
        self,
        entries: Iterable[RankedStudent],
        scope: ScopeKey | None = None,
    ) -> None:
        self.scope = scope
        self.entries: tuple[RankedStudent, ...] = tuple(entries)
        self._by_id = {entry.student_id: entry for entry in self.entries}

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[RankedStudent]:
        return iter(self.entries)

    def __contains__(self, student_id: object) -> bool:
        return student_id in self._by_id

    def get(self, student_id: str) -> RankedStudent | None:
        """Look up a student's ranked entry."""
        return self._by_id.get(student_id)

    def rank_of(self, student_id: str) -> int | None:
        """Get a student's rank, or None if not in this scope."""
        entry = self._by_id.get(student_id)
        return entry.rank if entry else None

    def top(self, n: int) -> tuple[RankedStudent, ...]:
        """Get the first n entries without re-ranking."""
        return self.entries[: max(n, 0)]

    def to_list(self, top_n: int | None = None) -> list[dict]:
        """Flatten to presentation dicts, optionally truncated."""
        entries = self.entries if top_n is None else self.top(top_n)
        return [entry.to_dict() for entry in entries]


class Ranker:
    """Stateless scope ranker."""

    def rank(
        self,
        scored_students: Iterable[ScoredStudent],
        scope: ScopeKey | None = None,
    ) -> RankingResult:
        """Order and rank the students of one scope.

        Args:
            scored_students: Students of a single scope. Student ids must be
                unique.
            scope: Optional scope identity carried on the result.

        Returns:
            RankingResult with ranks 1..N. Empty input gives an empty result.

        Raises:
            ValueError: If a student id appears more than once.
        """
        ordered = sorted(scored_students, key=ranking_sort_key)

        seen: set[str] = set()
        for student in ordered:
            if student.student_id in seen:
                raise ValueError(f"Duplicate student in scope: {student.student_id}")
            seen.add(student.student_id)

        return RankingResult(
            (
                RankedStudent(
                    student_id=student.student_id,
                    metrics=student.metrics,
                    total_score=student.total_score,
                    rank=position,
                )
                for position, student in enumerate(ordered, start=1)
            ),
            scope=scope,
        )


def rank_scope(
    scored_students: Iterable[ScoredStudent],
    scope: ScopeKey | None = None,
) -> RankingResult:
    """Rank one scope with a fresh Ranker."""
    return Ranker().rank(scored_students, scope=scope)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Week-over-week rank movement and podium achievements.

Both functions are pure: they compare current standings with last week's
archived history and return event records. Delivering those events
(notifications, badges) belongs to the caller.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict

from src.domains.ranking.models import ScopeType, StudentStanding, StudentWeekHistory

MOVEMENT_SCOPES = (ScopeType.SCHOOL, ScopeType.DISTRICT)


class RankChangeType(str, Enum):
    """Kinds of week-over-week rank movement."""

    RANK_IMPROVED = "rank_improved"
    ENTERED_TOP = "entered_top"


class RankChange(BaseModel):
    """A student's rank moved within one scope type."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    scope_type: ScopeType
    change_type: RankChangeType
    old_rank: int
    new_rank: int


class Achievement(BaseModel):
    """A podium finish in one scope for one week."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    scope_type: ScopeType
    scope_id: str
    rank: int
    week_start: date

    @property
    def achievement_type(self) -> str:
        """Stable code, e.g. "school_top_1"."""
        return f"{self.scope_type.value}_top_{self.rank}"


def detect_rank_changes(
    previous: Mapping[str, StudentWeekHistory],
    current: Iterable[StudentStanding],
    top_threshold: int = 10,
) -> list[RankChange]:
    """Compare current standings with the previous week's archive.

    A school or district rank that got numerically smaller yields
    RANK_IMPROVED. Crossing from outside the top ``top_threshold`` into it
    additionally yields ENTERED_TOP. Students without a rank in either week
    produce no events for that scope type.

    Args:
        previous: Previous week's history keyed by student id.
        current: Current standings.
        top_threshold: Size of the "top" band.

    Returns:
        RankChange events in input order.
    """
    changes: list[RankChange] = []

    for standing in current:
        before = previous.get(standing.student_id)
        if before is None:
            continue

        for scope_type in MOVEMENT_SCOPES:
            old_rank = before.rank_for(scope_type)
            new_rank = standing.rank_for(scope_type)
            if old_rank is None or new_rank is None:
                continue

            if new_rank < old_rank:
                changes.append(
                    RankChange(
                        student_id=standing.student_id,
                        scope_type=scope_type,
                        change_type=RankChangeType.RANK_IMPROVED,
                        old_rank=old_rank,
                        new_rank=new_rank,
                    )
                )
            if new_rank <= top_threshold < old_rank:
                changes.append(
                    RankChange(
                        student_id=standing.student_id,
                        scope_type=scope_type,
                        change_type=RankChangeType.ENTERED_TOP,
                        old_rank=old_rank,
                        new_rank=new_rank,
                    )
                )

    return changes


def award_achievements(
    current: Iterable[StudentStanding],
    week_start: date,
    podium_size: int = 3,
) -> list[Achievement]:
    """Award school and district podium finishes.

    Args:
        current: Current standings.
        week_start: Week the achievements belong to.
        podium_size: Ranks 1..podium_size earn an achievement.

    Returns:
        Achievement records, school before district per student.
    """
    achievements: list[Achievement] = []

    for standing in current:
        for scope_type, scope_id in (
            (ScopeType.SCHOOL, standing.school_id),
            (ScopeType.DISTRICT, standing.district_id),
        ):
            rank = standing.rank_for(scope_type)
            if scope_id is None or rank is None or rank > podium_size:
                continue
            achievements.append(
                Achievement(
                    student_id=standing.student_id,
                    scope_type=scope_type,
                    scope_id=scope_id,
                    rank=rank,
                    week_start=week_start,
                )
            )

    return achievements

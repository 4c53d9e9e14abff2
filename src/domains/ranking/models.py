# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for the ranking domain.

This module defines Pydantic models and enums for:
- Raw study-session input records
- Derived per-student metrics and scores
- Scope identity (school, district, global)
- Ranked results, snapshots, and history views

All models are frozen: metrics and scores are recomputed on every run and
snapshots are immutable once written.
"""

import math
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.utils.datetime import ensure_utc, parse_iso
from src.utils.numbers import round_half_up, to_float

GLOBAL_SCOPE_ID = "all"


class ScopeType(str, Enum):
    """Grouping boundaries a student is ranked within."""

    SCHOOL = "school"
    DISTRICT = "district"
    GLOBAL = "global"


class ExclusionReason(str, Enum):
    """Why a student is missing from a scope's ranking."""

    MISSING_SCHOOL = "missing_school"
    MISSING_DISTRICT = "missing_district"
    NOT_IN_DIRECTORY = "not_in_directory"


class StudySessionRecord(BaseModel):
    """One study session as supplied by the Session Store.

    Validation clamps what can be clamped: negative, missing, or non-finite
    minutes become 0 and improvement/quiz scores are bounded to 0..100 (a
    NaN score counts as missing). Fractions round half-up. A record without
    a parseable timestamp fails validation and is dropped by the aggregator.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    student_id: str | None = None
    created_at: datetime
    time_spent_minutes: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("time_spent_minutes", "time_spent"),
    )
    improvement_score: int | None = Field(default=None, ge=0, le=100)
    quiz_accuracy: int | None = Field(default=None, ge=0, le=100)

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, value: Any) -> datetime:
        if isinstance(value, str):
            return parse_iso(value)
        if isinstance(value, datetime):
            return ensure_utc(value)
        raise ValueError(f"invalid timestamp: {value!r}")

    @field_validator("time_spent_minutes", mode="before")
    @classmethod
    def clamp_minutes(cls, value: Any) -> int:
        if value is None:
            return 0
        minutes = to_float(value)
        if not math.isfinite(minutes):
            return 0
        return max(round_half_up(minutes), 0)

    @field_validator("improvement_score", "quiz_accuracy", mode="before")
    @classmethod
    def clamp_percentage(cls, value: Any) -> int | None:
        if value is None:
            return None
        score = to_float(value)
        if math.isnan(score):
            return None
        return round_half_up(min(max(score, 0.0), 100.0))

    def effective_improvement(self, neutral: int) -> int:
        """Improvement value used in the rolling average.

        A recorded quiz accuracy wins over the session's own improvement
        score; with neither, the neutral value is used.
        """
        if self.quiz_accuracy is not None:
            return self.quiz_accuracy
        if self.improvement_score is not None:
            return self.improvement_score
        return neutral


class StudentMetrics(BaseModel):
    """Per-student metrics reduced from the session list."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    avg_improvement: int = Field(default=0, ge=0, le=100)
    daily_study_minutes: int = Field(default=0, ge=0)
    weekly_study_days: int = Field(default=0, ge=0, le=7)


class ScoredStudent(BaseModel):
    """Metrics plus the composite score."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    metrics: StudentMetrics
    total_score: int = Field(ge=0)


class RankedStudent(BaseModel):
    """A scored student with its position inside one scope."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    metrics: StudentMetrics
    total_score: int = Field(ge=0)
    rank: int = Field(ge=1)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to the shape consumed by the presentation layer."""
        return {
            "student_id": self.student_id,
            "rank": self.rank,
            "total_score": self.total_score,
            "avg_improvement": self.metrics.avg_improvement,
            "daily_study_minutes": self.metrics.daily_study_minutes,
            "weekly_study_days": self.metrics.weekly_study_days,
        }


class StudentScope(BaseModel):
    """Scope attributes of one student from the Student Directory."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    school_id: str | None = None
    district_id: str | None = None

    @field_validator("school_id", "district_id", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class ScopeKey(BaseModel):
    """Identity of one ranked group, e.g. (school, "SCH-001")."""

    model_config = ConfigDict(frozen=True)

    scope_type: ScopeType
    scope_id: str

    def __str__(self) -> str:
        return f"{self.scope_type.value}:{self.scope_id}"


class ScopeExclusion(BaseModel):
    """A student left out of one scope type, with the reason."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    scope_type: ScopeType
    reason: ExclusionReason


class StudentStanding(BaseModel):
    """A student's current ranks across all scope types."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    metrics: StudentMetrics
    total_score: int = Field(ge=0)
    school_id: str | None = None
    district_id: str | None = None
    school_rank: int | None = None
    district_rank: int | None = None
    global_rank: int | None = None

    def rank_for(self, scope_type: ScopeType) -> int | None:
        """Get the current rank for a scope type."""
        return {
            ScopeType.SCHOOL: self.school_rank,
            ScopeType.DISTRICT: self.district_rank,
            ScopeType.GLOBAL: self.global_rank,
        }[scope_type]


class RankingSnapshot(BaseModel):
    """Immutable archived ranking of one scope for one week."""

    model_config = ConfigDict(frozen=True)

    id: str
    scope: ScopeKey
    week_start: date
    week_end: date
    created_at: datetime
    entries: tuple[RankedStudent, ...] = ()

    def rank_of(self, student_id: str) -> int | None:
        """Get a student's archived rank, or None if absent."""
        for entry in self.entries:
            if entry.student_id == student_id:
                return entry.rank
        return None


class StudentWeekHistory(BaseModel):
    """One week of a student's archived standings across scopes."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    week_start: date
    week_end: date
    school_rank: int | None = None
    district_rank: int | None = None
    global_rank: int | None = None
    total_score: int = 0

    def rank_for(self, scope_type: ScopeType) -> int | None:
        """Get the archived rank for a scope type."""
        return {
            ScopeType.SCHOOL: self.school_rank,
            ScopeType.DISTRICT: self.district_rank,
            ScopeType.GLOBAL: self.global_rank,
        }[scope_type]

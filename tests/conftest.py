# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across the unit tests:
- A fixed reference instant (Wednesday 2026-10-14 15:00 UTC)
- Session record builders
- In-memory Session Store and Student Directory fakes
- An in-memory SQLite snapshot database
"""

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from src.core.config.settings import RankingSettings, clear_settings_cache
from src.domains.ranking import HistorySnapshotter, StudentScope
from src.infrastructure.database import build_sessionmaker, create_tables


# =============================================================================
# Fakes
# =============================================================================


class FakeSessionStore:
    """Session Store backed by a dict of student id -> sessions."""

    def __init__(self, sessions: Mapping[str, Sequence[Any]] | None = None) -> None:
        self.sessions = dict(sessions or {})
        self.calls: list[list[str]] = []

    async def fetch_sessions(self, student_ids: Sequence[str]) -> dict[str, Sequence[Any]]:
        self.calls.append(list(student_ids))
        return {sid: self.sessions[sid] for sid in student_ids if sid in self.sessions}


class FailingSessionStore:
    """Session Store whose reads always fail."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    async def fetch_sessions(self, student_ids: Sequence[str]) -> dict[str, Sequence[Any]]:
        raise self.error


class FakeDirectory:
    """Student Directory backed by a list of StudentScope."""

    def __init__(self, students: Sequence[StudentScope]) -> None:
        self.students = list(students)

    async def list_students(self) -> list[StudentScope]:
        return list(self.students)


# =============================================================================
# Time and Session Fixtures
# =============================================================================


@pytest.fixture
def now() -> datetime:
    """Provide the reference instant: Wednesday 2026-10-14 15:00 UTC.

    The Sunday-started week runs from 2026-10-11 to 2026-10-17.
    """
    return datetime(2026, 10, 14, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def ranking_settings() -> RankingSettings:
    """Provide default ranking policy, independent of the environment."""
    return RankingSettings(
        improvement_window=10,
        neutral_improvement=50,
        daily_minutes_cap=120,
        improvement_weight=0.4,
        daily_minutes_weight=0.25,
        consistency_points=30,
        week_start_day=6,
        timezone="UTC",
    )


@pytest.fixture
def make_session() -> Callable[..., dict[str, Any]]:
    """Provide a builder for raw session rows."""
    counter = {"n": 0}

    def _make(
        created_at: datetime,
        minutes: int | None = 30,
        improvement: int | None = None,
        quiz: int | None = None,
    ) -> dict[str, Any]:
        counter["n"] += 1
        return {
            "id": f"sess-{counter['n']}",
            "created_at": created_at,
            "time_spent_minutes": minutes,
            "improvement_score": improvement,
            "quiz_accuracy": quiz,
        }

    return _make


@pytest.fixture
def days_ago(now: datetime) -> Callable[[int], datetime]:
    """Provide a helper returning now minus a number of days."""
    return lambda days: now - timedelta(days=days)


@pytest.fixture
def session_store_factory() -> Callable[..., FakeSessionStore]:
    return FakeSessionStore


@pytest.fixture
def failing_store_factory() -> Callable[..., FailingSessionStore]:
    return FailingSessionStore


@pytest.fixture
def directory_factory() -> Callable[..., FakeDirectory]:
    return FakeDirectory


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Drop cached settings between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create an in-memory SQLite engine with the snapshot tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def db_sessionmaker(db_engine):
    """Create a sessionmaker bound to the test engine."""
    return build_sessionmaker(db_engine)


@pytest.fixture
def snapshotter(db_sessionmaker) -> HistorySnapshotter:
    """Create a HistorySnapshotter over the test database."""
    return HistorySnapshotter(db_sessionmaker)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line("markers", "slow: mark test as slow running")

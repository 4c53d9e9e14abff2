# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the snapshot store.

Example:
    from src.infrastructure.database import get_session, init_database

    await init_database(settings)
    async with get_session() as session:
        result = await session.execute(select(RankingSnapshotRecord))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    build_sessionmaker,
    check_database_connection,
    close_database,
    create_tables,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "build_sessionmaker",
    "check_database_connection",
    "close_database",
    "create_tables",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
]

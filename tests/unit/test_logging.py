# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging configuration."""

import logging

import structlog

from src.core.config.settings import DatabaseSettings, Settings
from src.utils.logging import bind_context, clear_context, get_logger, run_context, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def teardown_method(self):
        structlog.reset_defaults()
        clear_context()
        logging.getLogger("sqlalchemy.engine").setLevel(logging.NOTSET)

    def test_level_applied_to_engine_loggers(self):
        setup_logging(Settings(log_level="DEBUG", _env_file=None))

        assert logging.getLogger("src").level == logging.DEBUG
        assert logging.getLogger("sqlalchemy").level == logging.WARNING

    def test_database_echo_enables_sql_logging(self):
        setup_logging(Settings(database=DatabaseSettings(echo=True), _env_file=None))

        assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
        assert logging.getLogger("sqlalchemy").level == logging.WARNING

    def test_sql_logging_quiet_without_echo(self):
        setup_logging(Settings(database=DatabaseSettings(echo=False), _env_file=None))

        assert logging.getLogger("sqlalchemy.engine").getEffectiveLevel() == logging.WARNING

    def test_production_renders_json(self, capsys):
        setup_logging(Settings(environment="production", log_level="INFO", _env_file=None))

        get_logger("src.test").info("ranking run", students=3)

        out = capsys.readouterr().out
        assert '"event": "ranking run"' in out
        assert '"students": 3' in out


class TestContext:
    """Tests for context binding."""

    def test_bind_and_clear(self):
        bind_context(run_id="r-1")
        assert structlog.contextvars.get_contextvars() == {"run_id": "r-1"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_run_context_restores_outer_values(self):
        bind_context(caller="scheduler")

        with run_context(run_id="r-2"):
            assert structlog.contextvars.get_contextvars() == {
                "caller": "scheduler",
                "run_id": "r-2",
            }

        assert structlog.contextvars.get_contextvars() == {"caller": "scheduler"}
        clear_context()

    def test_run_context_restores_on_error(self):
        try:
            with run_context(run_id="r-3"):
                raise RuntimeError("run failed")
        except RuntimeError:
            pass

        assert structlog.contextvars.get_contextvars() == {}

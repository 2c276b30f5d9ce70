# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for pagetree.logging_config: structlog + stdlib bridge."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest
import structlog

from pagetree.logging_config import configure, resolve_level


@pytest.fixture(autouse=True)
def _reset_logging():
    """Ensure clean logging state before/after each test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    noisy_levels = {name: logging.getLogger(name).level for name in ("asyncio", "playwright")}
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    for name, level in noisy_levels.items():
        logging.getLogger(name).setLevel(level)
    structlog.reset_defaults()


class TestConsoleRenderer:
    def test_handler_on_stderr(self):
        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_output_is_human_readable(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.console").info("hello world")
        captured = capsys.readouterr()
        assert "hello world" in captured.err
        assert not captured.err.strip().startswith("{")
        assert captured.out == ""

    def test_includes_log_level(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.level").warning("test warn")
        assert "warn" in capsys.readouterr().err.lower()


class TestStream:
    def test_records_go_to_given_stream(self, capsys):
        buf = io.StringIO()
        configure(json_output=True, stream=buf)
        logging.getLogger("pagetree.cli").info("to buffer")
        assert json.loads(buf.getvalue().strip())["event"] == "to buffer"
        assert capsys.readouterr().err == ""

    def test_console_on_non_tty_stream_has_no_colors(self):
        buf = io.StringIO()
        configure(stream=buf)
        logging.getLogger("test.plain").info("plain text")
        assert "plain text" in buf.getvalue()
        assert "\x1b[" not in buf.getvalue()


class TestJSONRenderer:
    def test_output_is_valid_json(self, capsys):
        configure(json_output=True)
        logging.getLogger("test.json").info("json test")
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed["event"] == "json test"

    def test_includes_logger_name_and_timestamp(self, capsys):
        configure(json_output=True)
        logging.getLogger("pagetree.extractor").info("name test")
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed["logger"] == "pagetree.extractor"
        assert parsed["level"] == "info"
        assert "timestamp" in parsed

    def test_contextvars_in_output(self, capsys):
        configure(json_output=True)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(url="https://example.com")
        try:
            structlog.get_logger("test.ctx").info("ctx test")
            parsed = json.loads(capsys.readouterr().err.strip())
            assert parsed["url"] == "https://example.com"
        finally:
            structlog.contextvars.clear_contextvars()


class TestLogLevel:
    def test_default_level_is_info(self):
        configure()
        assert logging.getLogger().level == logging.INFO

    def test_custom_level(self):
        configure(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_level_falls_back_to_info(self):
        configure(level="NONEXISTENT")
        assert logging.getLogger().level == logging.INFO

    def test_debug_filtered_at_info(self, capsys):
        configure(level="INFO")
        logging.getLogger("test.filtered").debug("quiet")
        assert "quiet" not in capsys.readouterr().err

    def test_noisy_loggers_quieted(self):
        configure(level="DEBUG")
        assert logging.getLogger("playwright").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING

    def test_level_alias_and_case(self):
        configure(level=" warn ")
        assert logging.getLogger().level == logging.WARNING

    def test_noisy_loggers_follow_stricter_root(self):
        configure(level="ERROR")
        assert logging.getLogger("playwright").level == logging.ERROR

    def test_no_handler_stacking(self):
        configure(json_output=False)
        configure(json_output=True)
        configure(json_output=False)
        assert len(logging.getLogger().handlers) == 1


class TestResolveLevel:
    def test_verbose_wins(self, monkeypatch):
        monkeypatch.setenv("PAGETREE_LOG_LEVEL", "ERROR")
        assert resolve_level(verbose=True) == "DEBUG"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PAGETREE_LOG_LEVEL", " warning ")
        assert resolve_level() == "WARNING"

    def test_default_info(self, monkeypatch):
        monkeypatch.delenv("PAGETREE_LOG_LEVEL", raising=False)
        assert resolve_level() == "INFO"

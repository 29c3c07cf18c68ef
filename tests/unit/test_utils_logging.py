"""
Unit tests for logging utilities.

Tests the logging configuration and the structured pipeline logger.
"""

import logging
from unittest.mock import patch

import pytest

from inline_rust.utils.exceptions import SourceLocation
from inline_rust.utils.logging import ExpansionLogger, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    monkeypatch.delenv("INLINE_RUST_LOG_LEVEL", raising=False)
    yield
    setup_logging()


class TestLoggingSetup:
    """Test logging setup and configuration."""

    def test_setup_logging_default(self):
        """Test default logging setup."""
        setup_logging()

        logger = logging.getLogger("inline_rust")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_setup_logging_debug_level(self):
        setup_logging(level="debug")
        assert logging.getLogger("inline_rust").level == logging.DEBUG

    def test_setup_logging_invalid_level(self):
        """Test that an unknown level falls back to WARNING."""
        setup_logging(level="INVALID")
        assert logging.getLogger("inline_rust").level == logging.WARNING

    def test_setup_logging_environment_variable(self, monkeypatch):
        monkeypatch.setenv("INLINE_RUST_LOG_LEVEL", "ERROR")
        setup_logging()
        assert logging.getLogger("inline_rust").level == logging.ERROR

    def test_setup_logging_replaces_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger("inline_rust").handlers) == 1

    def test_setup_logging_with_file(self, tmp_path):
        """Test logging setup with file output."""
        log_file = tmp_path / "inline_rust.log"
        setup_logging(level="INFO", log_file=str(log_file))

        logger = logging.getLogger("inline_rust")
        handler_types = [type(h).__name__ for h in logger.handlers]
        assert "StreamHandler" in handler_types
        assert "FileHandler" in handler_types

        logger.info("Test message")
        for handler in logger.handlers:
            handler.flush()
        assert "Test message" in log_file.read_text()

        for handler in logger.handlers:
            handler.close()


class TestGetLogger:
    def test_nested_under_package(self):
        assert get_logger("tools.script").name == "inline_rust.tools.script"

    def test_package_names_unchanged(self):
        assert get_logger("inline_rust.expander").name == "inline_rust.expander"
        assert get_logger("inline_rust").name == "inline_rust"


class TestExpansionLogger:
    """Test the structured pipeline events."""

    def setup_method(self):
        self.events = ExpansionLogger("inline_rust.tests")

    def test_logger_name(self):
        assert self.events.logger.name == "inline_rust.tests"

    def test_unit_start(self):
        with patch.object(self.events.logger, "info") as mock_info:
            self.events.log_unit_start("pkg.mod", "mod.py")
        mock_info.assert_called_once_with("Expanding inline Rust in module 'pkg.mod' (mod.py)")

    def test_snippet_expanded(self):
        with patch.object(self.events.logger, "debug") as mock_debug:
            self.events.log_snippet_expanded("sym_q0", SourceLocation("mod.py", 3, 12), 2)
        message = mock_debug.call_args[0][0]
        assert "mod.py:3:12" in message
        assert "'sym_q0'" in message
        assert "2 args" in message

    def test_compile_events(self):
        with patch.object(self.events.logger, "info") as mock_info:
            self.events.log_compile_start("mod.rs", "libmod.so")
            self.events.log_compile_finished("libmod.so", 1.23456)
        messages = [call[0][0] for call in mock_info.call_args_list]
        assert messages == ["Compiling mod.rs -> libmod.so", "Compiled libmod.so in 1.235s"]

    def test_cache_events_truncate_key(self):
        with patch.object(self.events.logger, "debug") as mock_debug:
            self.events.log_cache_hit("0123456789abcdef")
            self.events.log_cache_miss("fedcba9876543210")
        messages = [call[0][0] for call in mock_debug.call_args_list]
        assert messages == ["Cache hit for library 01234567...", "Cache miss for library fedcba98..."]

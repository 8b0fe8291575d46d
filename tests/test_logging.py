"""
Tests for the logging configuration module.

Tests console/file logging setup, environment overrides, log retention and
the per-pass trace logger.
"""

import logging
import os
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from photosync.utils.logging import (
    CONSOLE_FORMAT,
    DATE_FORMAT,
    TRACE_LOGGER_NAME,
    ColoredFormatter,
    cleanup_old_logs,
    get_log_file_path,
    get_log_level_from_env,
    get_logger,
    get_trace_log_path,
    get_trace_logger,
    setup_logging,
    setup_trace_logger,
)


@pytest.fixture(autouse=True)
def reset_loggers():
    """Restore the package loggers after each test."""
    yield
    for name in ("photosync", TRACE_LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        logger.propagate = True


class TestGetLogLevelFromEnv:
    """Tests for get_log_level_from_env function."""

    @pytest.mark.parametrize("value", ["1", "true", "yes"])
    def test_debug_mode_from_env(self, value):
        with patch.dict(os.environ, {"PHOTOSYNC_DEBUG": value}):
            assert get_log_level_from_env() == logging.DEBUG

    def test_default_is_info(self):
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_level_from_env() == logging.INFO

    def test_log_level_warning(self):
        with patch.dict(os.environ, {"PHOTOSYNC_LOG_LEVEL": "warning"}, clear=True):
            assert get_log_level_from_env() == logging.WARNING

    def test_invalid_level_defaults_to_info(self):
        with patch.dict(os.environ, {"PHOTOSYNC_LOG_LEVEL": "LOUD"}, clear=True):
            assert get_log_level_from_env() == logging.INFO


class TestGetLogFilePath:
    """Tests for get_log_file_path function."""

    def test_custom_log_file_from_env(self):
        with patch.dict(os.environ, {"PHOTOSYNC_LOG_FILE": "/tmp/custom.log"}):
            assert get_log_file_path() == Path("/tmp/custom.log")

    @pytest.mark.parametrize("value", ["none", "DISABLED"])
    def test_log_file_disabled(self, value):
        with patch.dict(os.environ, {"PHOTOSYNC_LOG_FILE": value}):
            assert get_log_file_path() is None

    def test_daily_file_in_log_dir(self, tmp_path):
        with patch.dict(os.environ, {}, clear=True):
            path = get_log_file_path(tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("photosync_")
        assert path.suffix == ".log"


class TestColoredFormatter:
    """Tests for ColoredFormatter class."""

    def test_formatter_with_colors_disabled(self):
        formatter = ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_colors=False)
        assert formatter.use_colors is False

    @patch("sys.stderr")
    def test_non_tty_disables_colors(self, mock_stderr):
        mock_stderr.isatty.return_value = False
        formatter = ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_colors=True)
        assert formatter.use_colors is False

    @patch.dict(os.environ, {"NO_COLOR": "1"})
    @patch("sys.stderr")
    def test_respects_no_color_env(self, mock_stderr):
        mock_stderr.isatty.return_value = True
        formatter = ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_colors=True)
        assert formatter.use_colors is False

    def test_format_record_without_colors(self):
        formatter = ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_colors=False)
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg="Test message",
            args=(),
            exc_info=None,
        )
        result = formatter.format(record)
        assert "Test message" in result
        assert "\033[" not in result


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_returns_package_logger(self):
        logger = setup_logging(enable_file_logging=False)
        assert logger.name == "photosync"
        assert logger.propagate is False

    def test_verbose_sets_debug(self):
        logger = setup_logging(verbose=True, enable_file_logging=False)
        assert logger.level == logging.DEBUG

    def test_clears_handlers(self):
        setup_logging(enable_file_logging=False)
        logger = setup_logging(enable_file_logging=False)
        assert len(logger.handlers) == 1

    def test_writes_log_file(self, tmp_path):
        with patch.dict(os.environ, {}, clear=True):
            logger = setup_logging(log_dir=tmp_path, use_colors=False)
        logger.info("hello file")
        for handler in logger.handlers:
            handler.flush()

        log_files = list(tmp_path.glob("photosync_*.log"))
        assert len(log_files) == 1
        assert "hello file" in log_files[0].read_text()


class TestGetLogger:
    """Tests for get_logger function."""

    def test_prefixes_non_package_names(self):
        assert get_logger("mymodule").name == "photosync.mymodule"

    def test_keeps_package_names(self):
        assert get_logger("photosync.sync.engine").name == "photosync.sync.engine"


class TestCleanupOldLogs:
    """Tests for log retention."""

    def _make_logs(self, directory, prefix, count):
        for index in range(count):
            path = directory / f"{prefix}_2024010{index}.log"
            path.write_text("x")
            mtime = time.time() - (count - index) * 60
            os.utime(path, (mtime, mtime))

    def test_keeps_most_recent_of_each_kind(self, tmp_path):
        self._make_logs(tmp_path, "photosync", 5)
        self._make_logs(tmp_path, "trace", 4)

        deleted = cleanup_old_logs(tmp_path, keep_count=2)

        assert deleted == 5
        assert len(list(tmp_path.glob("photosync_*.log"))) == 2
        assert len(list(tmp_path.glob("trace_*.log"))) == 2
        # Newest files survive
        assert (tmp_path / "photosync_20240104.log").exists()

    def test_zero_keep_count_disables_cleanup(self, tmp_path):
        self._make_logs(tmp_path, "photosync", 3)
        assert cleanup_old_logs(tmp_path, keep_count=0) == 0

    def test_missing_directory(self, tmp_path):
        assert cleanup_old_logs(tmp_path / "missing") == 0


class TestTraceLogger:
    """Tests for the per-pass trace logger."""

    def test_trace_log_path(self, tmp_path):
        path = get_trace_log_path(tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("trace_")

    def test_get_trace_logger_name(self):
        assert get_trace_logger().name == TRACE_LOGGER_NAME

    def test_setup_writes_to_file(self, tmp_path):
        log_file = tmp_path / "trace.log"
        logger = setup_trace_logger(log_file=log_file)
        logger.info("UPLOADED: IMG_0001.JPG")
        for handler in logger.handlers:
            handler.flush()

        assert logger.propagate is False
        assert "UPLOADED: IMG_0001.JPG" in log_file.read_text()

    def test_setup_does_not_accumulate_handlers(self, tmp_path):
        setup_trace_logger(log_file=tmp_path / "a.log")
        logger = setup_trace_logger(log_file=tmp_path / "b.log")
        assert len(logger.handlers) == 1

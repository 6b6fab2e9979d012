"""Tests for logger.py -- setup_logging() and JsonFormatter.

Covers:
- stderr handler, optional file handler
- Debug level override
- REFMGR_LOG_LEVEL and config-file level handling
- JSON formatter output
- charset_normalizer silencing

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from reference_manager.logger import JsonFormatter, setup_logging


def _record(msg="Hello %s", args=("world",), exc_info=None, level=logging.INFO):
    return logging.LogRecord(
        name="reference_manager.sync.engine",
        level=level,
        pathname="engine.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("reference_manager.logger.logging.basicConfig")
    def test_logs_to_stderr(self, mock_basic, monkeypatch):
        """A single stderr handler is passed to basicConfig by default."""
        monkeypatch.delenv("REFMGR_LOG_LEVEL", raising=False)
        setup_logging()

        mock_basic.assert_called_once()
        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    @patch("reference_manager.logger.logging.basicConfig")
    def test_default_level_is_warning(self, mock_basic, monkeypatch):
        monkeypatch.delenv("REFMGR_LOG_LEVEL", raising=False)
        setup_logging()

        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("reference_manager.logger.logging.basicConfig")
    def test_config_level_used(self, mock_basic, monkeypatch):
        """The level from the config file applies when no env var is set."""
        monkeypatch.delenv("REFMGR_LOG_LEVEL", raising=False)
        setup_logging(level="info")

        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("reference_manager.logger.logging.basicConfig")
    def test_env_level_beats_config(self, mock_basic, monkeypatch):
        monkeypatch.setenv("REFMGR_LOG_LEVEL", "ERROR")
        setup_logging(level="INFO")

        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("reference_manager.logger.logging.basicConfig")
    def test_unknown_level_falls_back(self, mock_basic, monkeypatch):
        monkeypatch.setenv("REFMGR_LOG_LEVEL", "CHATTY")
        setup_logging()

        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("reference_manager.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("REFMGR_LOG_LEVEL", "ERROR")
        setup_logging(debug=True)

        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("reference_manager.logger.logging.basicConfig")
    def test_log_file_adds_file_handler(self, mock_basic, tmp_path):
        """log_file adds a FileHandler next to the stderr handler."""
        setup_logging(log_file=str(tmp_path / "sync.log"))

        handlers = mock_basic.call_args[1]["handlers"]
        file_handlers = [
            h for h in handlers if isinstance(h, logging.FileHandler)
        ]
        assert len(handlers) == 2
        assert len(file_handlers) == 1
        for h in file_handlers:
            h.close()

    @patch("reference_manager.logger.logging.basicConfig")
    def test_json_format_uses_json_formatter(self, mock_basic, tmp_path):
        setup_logging(log_format="json", log_file=str(tmp_path / "sync.log"))

        handlers = mock_basic.call_args[1]["handlers"]
        assert all(isinstance(h.formatter, JsonFormatter) for h in handlers)
        for h in handlers:
            if isinstance(h, logging.FileHandler):
                h.close()

    @patch("reference_manager.logger.logging.basicConfig")
    def test_charset_normalizer_silenced(self, _mock_basic, monkeypatch):
        """Encoding detection chatter is hidden unless debugging."""
        monkeypatch.delenv("REFMGR_LOG_LEVEL", raising=False)
        setup_logging(level="INFO")

        assert (
            logging.getLogger("charset_normalizer").level == logging.WARNING
        )


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_output(self):
        """Formatted output is valid JSON with required keys."""
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")

        data = json.loads(formatter.format(_record()))

        assert "ts" in data
        assert data["level"] == "INFO"
        assert data["logger"] == "reference_manager.sync.engine"
        assert data["msg"] == "Hello world"

    def test_includes_exception(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("Invalid base file")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(
            formatter.format(
                _record("failed", (), exc_info, logging.ERROR)
            )
        )

        assert "ValueError" in data["exc"]
        assert "Invalid base file" in data["exc"]

    def test_single_line_output(self):
        output = JsonFormatter().format(_record("line1\nline2", ()))
        assert "\n" not in output

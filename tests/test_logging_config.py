"""
Tests for logging configuration.
"""

import json
import logging
import logging.handlers

from agentlinks.config import settings
from agentlinks.logging_config import JsonFormatter, configured_context, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_hook_context_is_quiet(self):
        setup_logging(context="hook")

        root = logging.getLogger("agentlinks")
        assert root.level == logging.WARNING
        assert root.propagate is False
        assert configured_context() == "hook"

    def test_hook_debug_flag(self, monkeypatch):
        monkeypatch.setattr(settings, "debug_hook", True)
        setup_logging(context="hook")

        assert logging.getLogger("agentlinks").level == logging.DEBUG

    def test_cli_uses_log_level(self, monkeypatch):
        monkeypatch.setattr(settings, "log_level", "error")
        setup_logging(context="cli")

        assert logging.getLogger("agentlinks").level == logging.ERROR

    def test_repeated_setup_replaces_handlers(self):
        setup_logging(context="cli")
        setup_logging(context="cli")

        assert len(logging.getLogger("agentlinks").handlers) == 1

    def test_file_handler(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "log_file_enabled", True)
        monkeypatch.setattr(settings, "log_dir", str(tmp_path / "logs"))

        setup_logging(context="hook")

        handlers = logging.getLogger("agentlinks").handlers
        file_handlers = [
            h for h in handlers if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert (tmp_path / "logs" / "hook.log").exists()


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_one_object_per_record(self):
        record = logging.LogRecord(
            "agentlinks.hooks", logging.WARNING, __file__, 1, "Captured %s", ("a.ts",), None
        )

        entry = json.loads(JsonFormatter("hook").format(record))

        assert entry["message"] == "Captured a.ts"
        assert entry["level"] == "WARNING"
        assert entry["context"] == "hook"
        assert entry["logger"] == "agentlinks.hooks"

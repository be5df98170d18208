"""
Logging configuration for AgentLinks.

Sets up console logging on stderr (stdout is reserved for command output and
hook responses) plus an optional rotating log file under the XDG state
directory.
"""

import json
import logging
import logging.handlers
from datetime import datetime, timezone

from agentlinks.config import settings

STANDARD_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured_context: str | None = None


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def __init__(self, context: str):
        super().__init__()
        self.context = context

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "context": self.context,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _make_formatter(context: str) -> logging.Formatter:
    if settings.log_format == "json":
        return JsonFormatter(context)
    return logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)


def _resolve_level(context: str) -> int:
    if context == "hook":
        # Hooks run inside editors; stay quiet unless explicitly debugging
        return logging.DEBUG if settings.debug_hook else logging.WARNING
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def setup_logging(context: str = "cli") -> None:
    """
    Configure the ``agentlinks`` logger hierarchy for this process.

    Args:
        context: Invocation context ("cli" or "hook"). Used for the log file
            name and to pick the hook-specific verbosity.

    Note:
        Calling this more than once per process replaces the handlers
        installed by the previous call.
    """
    global _configured_context

    root = logging.getLogger("agentlinks")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    level = _resolve_level(context)
    root.setLevel(level)
    root.propagate = False

    formatter = _make_formatter(context)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if settings.log_file_enabled:
        log_dir = settings.log_directory
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{context}.log",
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    _configured_context = context
    root.debug("Logging configured for context=%s level=%s", context, level)


def configured_context() -> str | None:
    """Return the context passed to the last ``setup_logging`` call."""
    return _configured_context

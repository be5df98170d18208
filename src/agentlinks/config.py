"""
AgentLinks Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables prefixed with ``AGENTLINKS_``.
"""

import os
import sys
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR_NAME = "AgentLinks"
STORE_FILE_NAME = "links.sqlite"


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for AgentLinks logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/agentlinks if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/agentlinks if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "agentlinks" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "agentlinks" / "logs")

    # Fallback for development/testing environments without HOME
    return "./logs"


def get_default_store_path(platform: str | None = None) -> str:
    """
    Get the per-platform default location of the link store file.

    - macOS: ~/Library/Application Support/AgentLinks/links.sqlite
    - Windows: %APPDATA%/AgentLinks/links.sqlite
    - Others: $XDG_DATA_HOME/agentlinks/links.sqlite (~/.local/share fallback)

    Args:
        platform: Platform identifier, defaults to ``sys.platform``

    Returns:
        str: Path to the SQLite file
    """
    platform = platform or sys.platform
    home = Path.home()

    if platform == "darwin":
        base = home / "Library" / "Application Support" / APP_DIR_NAME
    elif platform == "win32":
        appdata = os.getenv("APPDATA")
        base = (Path(appdata) if appdata else home / "AppData" / "Roaming") / APP_DIR_NAME
    else:
        xdg_data_home = os.getenv("XDG_DATA_HOME")
        data_home = Path(xdg_data_home) if xdg_data_home else home / ".local" / "share"
        base = data_home / APP_DIR_NAME.lower()

    return str(base / STORE_FILE_NAME)


def get_default_cursor_db_path(platform: str | None = None) -> str:
    """Location of Cursor's global ``state.vscdb`` key-value store."""
    platform = platform or sys.platform
    home = Path.home()

    if platform == "darwin":
        base = home / "Library" / "Application Support" / "Cursor"
    elif platform == "win32":
        appdata = os.getenv("APPDATA")
        base = (Path(appdata) if appdata else home / "AppData" / "Roaming") / "Cursor"
    else:
        base = home / ".config" / "Cursor"

    return str(base / "User" / "globalStorage" / "state.vscdb")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTLINKS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Link store
    db_path: str = ""  # Empty = per-platform default
    store_busy_timeout_seconds: float = 30.0  # Wait for competing writers

    # Conversation sources
    cursor_db_path: str = ""  # Empty = per-platform default
    claude_projects_dir: str = ""  # Empty = ~/.claude/projects
    cursor_min_conversation_size: int = 100  # Skip near-empty composer blobs
    search_limit: int = 20

    # Auto-linking
    autolink_window_days: float = 14.0
    autolink_min_score: float = 0.2
    autolink_file_weight: float = 0.7
    autolink_recency_weight: float = 0.3

    # Hook capture
    debug_hook: bool = False  # Verbose logging for hook invocations
    enrichment_timeout_seconds: float = 5.0  # Time box for summary lookups
    git_timeout_seconds: float = 10.0  # Time box for each git command
    hook_stdin_timeout_seconds: float = 0.1  # Idle limit while reading a hook payload

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_file_enabled: bool = False  # Enable file-based logging
    log_max_bytes: int = 5_242_880  # 5MB per log file
    log_backup_count: int = 3  # Keep 3 backup files

    @property
    def links_db_path(self) -> Path:
        """Get the link store path, using the platform default if not specified."""
        if self.db_path:
            return Path(self.db_path).expanduser()
        return Path(get_default_store_path())

    @property
    def cursor_db_file(self) -> Path:
        """Get the Cursor state database path."""
        if self.cursor_db_path:
            return Path(self.cursor_db_path).expanduser()
        return Path(get_default_cursor_db_path())

    @property
    def claude_projects_directory(self) -> Path:
        """Get the Claude Code projects directory."""
        if self.claude_projects_dir:
            return Path(self.claude_projects_dir).expanduser()
        return Path.home() / ".claude" / "projects"

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())


# Global settings instance
settings = Settings()

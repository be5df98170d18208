"""
Tests for configuration management.
"""

from pathlib import Path

import pytest

from agentlinks.config import (
    Settings,
    get_default_cursor_db_path,
    get_default_store_path,
    get_xdg_state_dir,
)


@pytest.fixture(autouse=True)
def clear_agentlinks_env(monkeypatch):
    """Ensure AGENTLINKS_* overrides in the environment don't affect defaults."""
    for name in (
        "AGENTLINKS_DB_PATH",
        "AGENTLINKS_AUTOLINK_WINDOW_DAYS",
        "AGENTLINKS_AUTOLINK_MIN_SCORE",
        "AGENTLINKS_DEBUG_HOOK",
        "AGENTLINKS_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


class TestSettings:
    """Tests for Settings configuration."""

    def test_default_autolink_settings(self):
        """Test default scoring window, threshold and weights."""
        settings = Settings(_env_file=None)

        assert settings.autolink_window_days == 14
        assert settings.autolink_min_score == 0.2
        assert settings.autolink_file_weight == 0.7
        assert settings.autolink_recency_weight == 0.3

    def test_default_time_boxes(self):
        """Test default timeouts for external calls."""
        settings = Settings(_env_file=None)

        assert settings.enrichment_timeout_seconds == 5.0
        assert settings.git_timeout_seconds == 10.0
        assert settings.store_busy_timeout_seconds == 30.0
        assert settings.hook_stdin_timeout_seconds == 0.1

    def test_db_path_from_environment(self, monkeypatch, tmp_path):
        """Test AGENTLINKS_DB_PATH overrides the store location."""
        target = tmp_path / "custom.sqlite"
        monkeypatch.setenv("AGENTLINKS_DB_PATH", str(target))

        settings = Settings(_env_file=None)

        assert settings.links_db_path == target

    def test_empty_db_path_uses_platform_default(self):
        """Test an empty db_path falls back to the per-platform default."""
        settings = Settings(_env_file=None, db_path="")

        assert settings.links_db_path == Path(get_default_store_path())

    def test_debug_hook_from_environment(self, monkeypatch):
        """Test boolean parsing of AGENTLINKS_DEBUG_HOOK."""
        monkeypatch.setenv("AGENTLINKS_DEBUG_HOOK", "1")

        assert Settings(_env_file=None).debug_hook is True

    def test_claude_projects_default(self):
        """Test the Claude Code projects directory default."""
        settings = Settings(_env_file=None, claude_projects_dir="")

        assert settings.claude_projects_directory == Path.home() / ".claude" / "projects"

    def test_log_directory_default_is_xdg_state(self):
        """Test the log directory defaults to the XDG state directory."""
        settings = Settings(_env_file=None, log_dir="")

        assert settings.log_directory == Path(get_xdg_state_dir())


class TestDefaultPaths:
    """Tests for per-platform default locations."""

    def test_store_path_macos(self):
        path = get_default_store_path("darwin")
        assert path.endswith(str(Path("Library/Application Support/AgentLinks/links.sqlite")))

    def test_store_path_windows_uses_appdata(self, monkeypatch, tmp_path):
        monkeypatch.setenv("APPDATA", str(tmp_path))
        path = get_default_store_path("win32")
        assert Path(path) == tmp_path / "AgentLinks" / "links.sqlite"

    def test_store_path_linux_uses_xdg_data_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        path = get_default_store_path("linux")
        assert Path(path) == tmp_path / "agentlinks" / "links.sqlite"

    def test_store_path_linux_fallback(self, monkeypatch):
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        path = get_default_store_path("linux")
        assert Path(path) == Path.home() / ".local" / "share" / "agentlinks" / "links.sqlite"

    def test_cursor_db_path_ends_with_state_vscdb(self):
        for platform in ("darwin", "win32", "linux"):
            assert get_default_cursor_db_path(platform).endswith("state.vscdb")

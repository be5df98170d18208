"""
Pytest configuration and fixtures for AgentLinks tests.

This module provides a link store backed by a temporary SQLite file, record
builders, and isolation of the global settings, reader registry and logger.
"""

import logging
from datetime import UTC, datetime
from typing import Generator

import pytest

from agentlinks.config import settings
from agentlinks.db.connection import LinkStore
from agentlinks.models.records import CommitInput, ConversationUpsert
from agentlinks.readers.registry import reset_default_registry

COMMIT_TIME = datetime(2025, 3, 14, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Point every settings-derived path at the test's temporary directory."""
    monkeypatch.setattr(settings, "db_path", str(tmp_path / "links.sqlite"))
    monkeypatch.setattr(settings, "cursor_db_path", str(tmp_path / "cursor" / "state.vscdb"))
    monkeypatch.setattr(settings, "claude_projects_dir", str(tmp_path / "claude" / "projects"))
    monkeypatch.setattr(settings, "log_file_enabled", False)
    monkeypatch.setattr(settings, "debug_hook", False)
    yield


@pytest.fixture(autouse=True)
def isolated_registry():
    """Rebuild the default reader registry for every test."""
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture(autouse=True)
def reset_agentlinks_logger():
    """Drop handlers installed by ``setup_logging`` during a test."""
    yield
    root = logging.getLogger("agentlinks")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def store(tmp_path) -> Generator[LinkStore, None, None]:
    """Open link store on a temporary file."""
    with LinkStore(tmp_path / "store" / "links.sqlite") as link_store:
        yield link_store


@pytest.fixture
def memory_store() -> Generator[LinkStore, None, None]:
    """Open in-memory link store."""
    with LinkStore(":memory:") as link_store:
        yield link_store


@pytest.fixture
def commit_time() -> datetime:
    return COMMIT_TIME


def make_conversation(
    conversation_id: str = "conv-1",
    agent: str = "cursor",
    updated_at: datetime | None = None,
    **kwargs,
) -> ConversationUpsert:
    """Build a conversation write with sensible defaults."""
    kwargs.setdefault("workspace_root", "/work/project")
    return ConversationUpsert(
        conversation_id=conversation_id,
        agent=agent,
        updated_at=updated_at,
        **kwargs,
    )


def make_commit(
    commit_hash: str = "a" * 40,
    changed_files: list[str] | None = None,
    committed_at: datetime = COMMIT_TIME,
    **kwargs,
) -> CommitInput:
    """Build a commit write with sensible defaults."""
    kwargs.setdefault("repo_path", "/work/project")
    kwargs.setdefault("branch", "main")
    kwargs.setdefault("author", "Dev <dev@example.com>")
    kwargs.setdefault("message", "Change things")
    return CommitInput(
        commit_hash=commit_hash,
        committed_at=committed_at,
        changed_files=list(changed_files or []),
        **kwargs,
    )


@pytest.fixture
def conversation_factory():
    return make_conversation


@pytest.fixture
def commit_factory():
    return make_commit

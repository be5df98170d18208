"""
Tests for LinkStore lifecycle, transactions and schema upgrades.
"""

import sqlite3

import pytest

from agentlinks.db.connection import LinkStore
from agentlinks.exceptions import StoreNotInitializedError
from agentlinks.models.records import ConversationUpsert

OLD_CONVERSATIONS_TABLE = """
CREATE TABLE conversations (
    conversation_id VARCHAR(255) PRIMARY KEY,
    agent VARCHAR(50) NOT NULL,
    workspace_root TEXT NOT NULL,
    project_name VARCHAR(255) NOT NULL,
    title TEXT,
    summary TEXT,
    searchable_text TEXT,
    relevant_files JSON NOT NULL,
    attached_folders JSON NOT NULL,
    captured_files JSON NOT NULL,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
)
"""


class TestLifecycle:
    """Tests for open/close handling."""

    def test_open_creates_file_and_parents(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "links.sqlite"
        store = LinkStore(path)

        store.open()
        try:
            assert path.exists()
            assert store.is_open
        finally:
            store.close()

        assert not store.is_open

    def test_open_twice_is_noop(self, tmp_path):
        store = LinkStore(tmp_path / "links.sqlite")
        assert store.open() is store.open()
        store.close()
        store.close()

    def test_use_before_open_raises(self, tmp_path):
        store = LinkStore(tmp_path / "links.sqlite")

        with pytest.raises(StoreNotInitializedError) as exc_info:
            store.get_conversation("c1")

        assert exc_info.value.operation == "get_conversation"

    def test_use_after_close_raises(self, tmp_path):
        store = LinkStore(tmp_path / "links.sqlite").open()
        store.close()

        with pytest.raises(StoreNotInitializedError):
            store.upsert_conversation(ConversationUpsert("c1", "cursor"))

    def test_default_path_comes_from_settings(self, tmp_path):
        store = LinkStore()
        assert store.db_path == tmp_path / "links.sqlite"

    def test_check_connection(self, store):
        assert store.check_connection() is True

    def test_memory_store(self, memory_store):
        memory_store.upsert_conversation(ConversationUpsert("c1", "cursor", title="Hi"))

        assert memory_store.get_conversation("c1").title == "Hi"

    def test_data_persists_across_instances(self, tmp_path):
        path = tmp_path / "links.sqlite"
        with LinkStore(path) as first:
            first.upsert_conversation(ConversationUpsert("c1", "cursor", title="Kept"))

        with LinkStore(path) as second:
            assert second.get_conversation("c1").title == "Kept"

    def test_two_handles_on_one_file(self, tmp_path):
        """Writers on separate handles both land in the shared file."""
        path = tmp_path / "links.sqlite"
        with LinkStore(path) as editor_hook, LinkStore(path) as git_hook:
            editor_hook.upsert_conversation(
                ConversationUpsert("c1", "cursor", captured_files=["a.ts"])
            )
            git_hook.upsert_conversation(
                ConversationUpsert("c1", "cursor", captured_files=["b.ts"])
            )

            assert set(editor_hook.get_conversation("c1").captured_files) == {"a.ts", "b.ts"}


class TestSession:
    """Tests for transactional sessions."""

    def test_rolls_back_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.session() as db:
                from agentlinks.db.repositories import ConversationRepository

                ConversationRepository(db).upsert(ConversationUpsert("c1", "cursor"))
                raise RuntimeError("boom")

        assert store.get_conversation("c1") is None


class TestSchemaUpgrade:
    """Tests for additive migration of older store files."""

    def test_missing_columns_are_added(self, tmp_path):
        path = tmp_path / "old.sqlite"
        conn = sqlite3.connect(path)
        conn.execute(OLD_CONVERSATIONS_TABLE)
        conn.execute(
            "INSERT INTO conversations VALUES "
            "('c1', 'cursor', '/w', 'w', 'Old title', NULL, NULL, '[]', '[]', '[\"a.ts\"]', "
            "'2025-01-01 00:00:00.000000', '2025-01-01 00:00:00.000000')"
        )
        conn.commit()
        conn.close()

        with LinkStore(path) as store:
            store.upsert_conversation(
                ConversationUpsert("c1", "cursor", ai_summary="Generated", last_hook_event="stop")
            )
            stored = store.get_conversation("c1")

        assert stored.title == "Old title"
        assert stored.ai_summary == "Generated"
        assert stored.last_hook_event == "stop"
        assert stored.captured_files == ["a.ts"]

        conn = sqlite3.connect(path)
        columns = {row[1] for row in conn.execute("PRAGMA table_info(conversations)")}
        conn.close()
        assert {"ai_summary", "last_hook_event"} <= columns

"""
Tests for hook event handlers.
"""

import os
from datetime import timedelta
from unittest.mock import patch

import pytest

from agentlinks.exceptions import CommitMetadataError
from agentlinks.hooks.handlers import (
    handle_file_touched,
    handle_session_end,
    link_manually,
    record_commit,
)
from agentlinks.models.canonical import ConversationSummary
from agentlinks.models.db import LinkStatus
from agentlinks.models.records import LinkInput


class SummaryRegistry:
    """Registry stand-in returning fixed summaries by conversation id."""

    def __init__(self, summaries=None):
        self.summaries = summaries or {}

    def get_conversation_summary(self, conversation_id, agent=None, include_files=True):
        return self.summaries.get(conversation_id)


def summary(conversation_id="c1", **kwargs):
    kwargs.setdefault("title", "Fix login")
    return ConversationSummary(
        conversation_id=conversation_id,
        agent="cursor",
        format="modern",
        message_count=4,
        **kwargs,
    )


class TestHandleFileTouched:
    """Tests for handle_file_touched."""

    def test_captures_relative_path(self, store):
        result = handle_file_touched(
            store, "c1", "/work/app/src/a.ts", agent="cursor", workspace_root="/work/app"
        )

        assert result.success
        assert result.message == "Captured file src/a.ts for conversation c1"
        stored = store.get_conversation("c1")
        assert stored.captured_files == ["src/a.ts"]
        assert stored.workspace_root == "/work/app"
        assert stored.project_name == "app"
        assert stored.last_hook_event == "afterFileEdit"

    def test_several_files(self, store):
        result = handle_file_touched(
            store, "c1", ["/w/a.ts", "/w/b.ts", "/w/a.ts"], agent="cursor", workspace_root="/w"
        )

        assert result.message == "Captured 2 file(s) for conversation c1"
        assert result.data["captured_files"] == ["a.ts", "b.ts"]

    @pytest.mark.parametrize("conversation_id, files", [(None, ["/w/a.ts"]), ("c1", []), ("c1", None)])
    def test_nothing_to_capture(self, store, conversation_id, files):
        result = handle_file_touched(store, conversation_id, files, agent="cursor")

        assert result.success
        assert result.message == "No files or conversation to capture"
        assert store.find_conversations() == []

    def test_workspace_from_repository(self, store, tmp_path):
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        source = repo / "lib" / "mod.py"
        source.parent.mkdir()
        source.write_text("")

        handle_file_touched(store, "c1", str(source), agent="claude-code")

        stored = store.get_conversation("c1")
        assert stored.workspace_root == str(repo)
        assert stored.captured_files == ["lib/mod.py"]

    def test_relative_path_without_workspace(self, store, tmp_path, monkeypatch):
        """Test a relative path is resolved against cwd before relativizing."""
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        (repo / "lib").mkdir()
        monkeypatch.chdir(repo / "lib")
        expected_root = os.path.dirname(os.getcwd())

        handle_file_touched(store, "c1", "mod.py", agent="claude-code")

        stored = store.get_conversation("c1")
        assert stored.workspace_root == expected_root
        assert stored.project_name == "repo"
        assert stored.captured_files == ["lib/mod.py"]

    def test_does_not_erase_session_data(self, store):
        handle_session_end(
            store,
            "c1",
            agent="cursor",
            workspace_root="/w",
            registry=SummaryRegistry({"c1": summary(relevant_files=["/w/x.ts"])}),
        )
        handle_file_touched(store, "c1", "/w/y.ts", agent="cursor", workspace_root="/w")

        stored = store.get_conversation("c1")
        assert stored.title == "Fix login"
        assert stored.relevant_files == ["x.ts"]
        assert stored.captured_files == ["y.ts"]


class TestHandleSessionEnd:
    """Tests for handle_session_end."""

    def test_enriched(self, store):
        registry = SummaryRegistry(
            {
                "c1": summary(
                    ai_summary="Reworked token refresh",
                    relevant_files=["/work/app/src/login.ts", "/outside/x.ts"],
                    attached_folders=["/work/app/src"],
                )
            }
        )

        result = handle_session_end(
            store, "c1", agent="cursor", workspace_root="/work/app", registry=registry
        )

        assert result.success
        assert result.message == "Captured session end for conversation c1"
        assert result.data["enriched"] is True
        stored = store.get_conversation("c1")
        assert stored.title == "Fix login"
        assert stored.ai_summary == "Reworked token refresh"
        assert stored.searchable_text == "Fix login Reworked token refresh"
        assert stored.relevant_files == ["src/login.ts", "/outside/x.ts"]
        assert stored.attached_folders == ["src"]
        assert stored.last_hook_event == "stop"

    def test_workspace_from_attached_folder(self, store):
        registry = SummaryRegistry({"c1": summary(attached_folders=["/work/svc"])})

        handle_session_end(store, "c1", agent="cursor", registry=registry)

        assert store.get_conversation("c1").workspace_root == "/work/svc"

    def test_without_summary_keeps_stored_values(self, store):
        handle_session_end(
            store,
            "c1",
            agent="cursor",
            workspace_root="/w",
            registry=SummaryRegistry({"c1": summary(relevant_files=["/w/a.ts"])}),
        )

        result = handle_session_end(
            store, "c1", agent="cursor", event="stop", registry=SummaryRegistry()
        )

        assert result.data["enriched"] is False
        stored = store.get_conversation("c1")
        assert stored.title == "Fix login"
        assert stored.relevant_files == ["a.ts"]
        assert stored.workspace_root == "/w"

    def test_partial_record_for_new_conversation(self, store):
        result = handle_session_end(
            store, "c9", agent="cursor", workspace_root="/w", registry=SummaryRegistry()
        )

        assert result.success
        stored = store.get_conversation("c9")
        assert stored.title is None
        assert stored.relevant_files == []

    def test_missing_conversation_id(self, store):
        result = handle_session_end(store, None, agent="cursor", registry=SummaryRegistry())

        assert result.success
        assert result.message == "No conversation id in payload"


class TestRecordCommit:
    """Tests for record_commit."""

    def test_records_and_links(self, store, conversation_factory, commit_factory, commit_time):
        store.upsert_conversation(
            conversation_factory(
                "c1", captured_files=["src/file.ts"], updated_at=commit_time - timedelta(days=2)
            )
        )
        commit = commit_factory(changed_files=["src/file.ts"])

        with patch("agentlinks.hooks.handlers.read_commit_metadata", return_value=commit):
            result = record_commit(store, repo_path="/work/project")

        assert result.success
        assert result.message == "Commit aaaaaaa recorded and linked to 1 conversation(s)"
        assert result.data["candidates"][0]["conversation_id"] == "c1"
        assert result.data["candidates"][0]["score"] == pytest.approx(0.957, abs=1e-3)
        assert store.get_link("c1", "a" * 40).status == LinkStatus.AUTO

    def test_no_matches(self, store, commit_factory):
        commit = commit_factory(changed_files=["src/file.ts"])
        with patch("agentlinks.hooks.handlers.read_commit_metadata", return_value=commit):
            result = record_commit(store)

        assert result.message == "Commit aaaaaaa recorded (no matching conversations found)"
        assert store.get_commit("a" * 40) is not None

    def test_no_changed_files(self, store, commit_factory):
        with patch(
            "agentlinks.hooks.handlers.read_commit_metadata", return_value=commit_factory()
        ):
            result = record_commit(store)

        assert result.message == "Commit aaaaaaa recorded (no changed files)"
        assert store.get_commit("a" * 40).changed_files == []

    def test_git_failure_writes_nothing(self, store):
        with patch(
            "agentlinks.hooks.handlers.read_commit_metadata",
            side_effect=CommitMetadataError("Could not resolve commit HEAD"),
        ):
            with pytest.raises(CommitMetadataError):
                record_commit(store)

        assert store.find_commits() == []


class TestLinkManually:
    """Tests for link_manually."""

    def test_default_matched_files(self, store, conversation_factory, commit_factory):
        store.upsert_conversation(conversation_factory("c1", captured_files=["src/a.ts"]))
        store.upsert_commit(commit_factory(changed_files=["src/a.ts", "src/b.ts"]))

        result = link_manually(store, "c1", "a" * 40)

        assert result.success
        assert result.message == "Linked conversation c1 to commit aaaaaaa"
        link = store.get_link("c1", "a" * 40)
        assert link.status == LinkStatus.MANUAL
        assert link.confidence == 1.0
        assert link.matched_files == ["src/a.ts"]

    def test_suffix_matching(self, store, conversation_factory, commit_factory):
        store.upsert_conversation(
            conversation_factory("c1", relevant_files=["/work/project/src/a.ts"])
        )
        store.upsert_commit(commit_factory(changed_files=["src/a.ts"]))

        result = link_manually(store, "c1", "a" * 40)

        assert result.data["matched_files"] == ["src/a.ts"]

    def test_explicit_files_and_confidence(self, store, conversation_factory):
        store.upsert_conversation(conversation_factory("c1"))

        result = link_manually(store, "c1", "b" * 40, files=["x.ts"], confidence=0.8)

        assert result.success
        assert result.data == {
            "conversation_id": "c1",
            "commit_hash": "b" * 40,
            "matched_files": ["x.ts"],
            "confidence": 0.8,
            "status": "manual",
        }

    def test_neither_side_known(self, store):
        result = link_manually(store, "ghost", "f" * 40)

        assert not result.success
        assert store.get_link("ghost", "f" * 40) is None

    def test_invalid_confidence(self, store, conversation_factory):
        store.upsert_conversation(conversation_factory("c1"))

        with pytest.raises(ValueError):
            link_manually(store, "c1", "a" * 40, confidence=1.5)

    def test_replaces_auto_link(self, store, conversation_factory, commit_factory):
        store.upsert_conversation(conversation_factory("c1"))
        store.upsert_commit(commit_factory())
        store.upsert_link(LinkInput("c1", "a" * 40, 0.4, LinkStatus.AUTO, ["old.ts"]))

        link_manually(store, "c1", "a" * 40, confidence=0.95)

        link = store.get_link("c1", "a" * 40)
        assert link.status == LinkStatus.MANUAL
        assert link.confidence == 0.95
        assert link.matched_files == []

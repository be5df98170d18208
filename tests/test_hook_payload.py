"""
Tests for hook payload parsing.
"""

import json

import pytest

from agentlinks.hooks.payload import HookPayload, parse_payload


class TestParsePayload:
    """Tests for parse_payload."""

    def test_cursor_shape(self):
        payload = parse_payload(
            json.dumps(
                {
                    "hook_event_name": "afterFileEdit",
                    "conversation_id": "abc",
                    "file_path": "/work/app/src/a.ts",
                    "workspace_roots": ["/work/app", 3, ""],
                    "generation_id": "g1",
                }
            )
        )

        assert payload.hook_event_name == "afterFileEdit"
        assert payload.conversation_id == "abc"
        assert payload.workspace_roots == ["/work/app"]
        assert payload.workspace_hint == "/work/app"
        assert payload.touched_files == ["/work/app/src/a.ts"]
        assert payload.model_extra == {"generation_id": "g1"}

    def test_claude_code_shape(self):
        payload = parse_payload(
            json.dumps(
                {
                    "hook_event_name": "PostToolUse",
                    "session_id": "sess-1",
                    "cwd": "/work/app",
                    "tool_name": "Edit",
                    "tool_input": {"file_path": "/work/app/b.py", "old_string": "x"},
                }
            )
        )

        assert payload.conversation_id_for("claude-code") == "claude-code:sess-1"
        assert payload.workspace_hint == "/work/app"
        assert payload.touched_files == ["/work/app/b.py"]

    def test_legacy_shape(self):
        payload = parse_payload(
            json.dumps(
                {
                    "event": "afterFileEdit",
                    "conversationId": "abc",
                    "files": ["a.ts", "a.ts", "b.ts"],
                    "workspaceRoot": "/work/app",
                }
            )
        )

        assert payload.hook_event_name == "afterFileEdit"
        assert payload.conversation_id == "abc"
        assert payload.workspace_hint == "/work/app"
        assert payload.touched_files == ["a.ts", "b.ts"]

    @pytest.mark.parametrize("raw", [None, "", "   ", "{not json", "[1, 2]", '{"files": 5}'])
    def test_unparsable_is_empty(self, raw):
        payload = parse_payload(raw)

        assert payload.hook_event_name is None
        assert payload.conversation_id_for("cursor") is None
        assert payload.touched_files == []

    def test_event_argument_overrides_payload(self):
        payload = parse_payload('{"hook_event_name": "stop"}', event="afterFileEdit")
        assert payload.hook_event_name == "afterFileEdit"

    def test_event_argument_without_payload(self):
        assert parse_payload(None, event="stop").hook_event_name == "stop"


class TestHookPayload:
    """Tests for derived payload values."""

    def test_bare_file_string_becomes_list(self):
        assert HookPayload(files="a.ts").files == ["a.ts"]

    def test_non_dict_tool_input_ignored(self):
        assert HookPayload(tool_input="oops").tool_input == {}

    def test_prefixed_session_not_prefixed_twice(self):
        payload = HookPayload(session_id="claude-code:s1")
        assert payload.conversation_id_for("claude-code") == "claude-code:s1"

    def test_session_id_for_other_agents_is_bare(self):
        assert HookPayload(session_id="s1").conversation_id_for("cursor") == "s1"

    def test_conversation_id_wins_over_session(self):
        payload = HookPayload(conversation_id="c1", session_id="s1")
        assert payload.conversation_id_for("claude-code") == "c1"

    def test_workspace_hint_absent(self):
        assert HookPayload().workspace_hint is None

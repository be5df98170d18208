"""
Tests for the Windsurf reader.
"""

import json
import sqlite3

import pytest

from agentlinks.models.canonical import MessageRole
from agentlinks.readers.windsurf import WINDSURF_CHAT_KEYS, WindsurfReader

CHAT_DATA = {
    "tabs": [
        {
            "tabId": "tab-1",
            "chatTitle": "Speed up build",
            "bubbles": [
                {
                    "type": "user",
                    "rawText": "Why is the build slow?",
                    "selections": [{"uri": {"fsPath": "/work/site/webpack.config.js"}}],
                },
                {"type": "ai", "text": "Source maps are enabled."},
                {"type": "ai", "text": ""},
            ],
        },
        {"tabId": "empty", "bubbles": []},
        {"bubbles": [{"type": "user", "text": "Untitled tab question"}]},
    ]
}

AGENT_DATA = {
    "name": "Cascade flow",
    "status": "completed",
    "createdAt": 1_741_953_600_000,
    "lastUpdatedAt": 1_741_953_700_000,
    "conversation": [
        {
            "type": 1,
            "text": "Rename the API module",
            "timestamp": 1_741_953_600_000,
            "context": {"selections": [{"uri": {"fsPath": "/work/api/module.py"}}]},
        },
        {"type": 2, "text": "Renamed."},
    ],
}


@pytest.fixture
def windsurf_db(tmp_path):
    path = tmp_path / "state.vscdb"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE ItemTable (key TEXT UNIQUE, value BLOB)")
    conn.execute("CREATE TABLE cursorDiskKV (key TEXT UNIQUE, value BLOB)")
    # Second candidate key; the first is absent in this version
    conn.execute(
        "INSERT INTO ItemTable VALUES (?, ?)", (WINDSURF_CHAT_KEYS[1], json.dumps(CHAT_DATA))
    )
    conn.execute("INSERT INTO ItemTable VALUES (?, ?)", (WINDSURF_CHAT_KEYS[2], "{broken"))
    conn.execute(
        "INSERT INTO cursorDiskKV VALUES (?, ?)", ("agentData:flow-1", json.dumps(AGENT_DATA))
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def reader(windsurf_db):
    return WindsurfReader(db_path=windsurf_db)


class TestWindsurfReader:
    """Tests for chat panels and agent conversations."""

    def test_ids(self, reader):
        assert reader.get_conversation_ids() == [
            "windsurf:chat:tab-1",
            "windsurf:chat:chat-2",
            "windsurf:agent:agentData:flow-1",
        ]

    def test_chat_conversation(self, reader):
        conversation = reader.get_conversation("windsurf:chat:tab-1")

        assert conversation.title == "Speed up build"
        assert [m.role for m in conversation.messages] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
        ]
        assert conversation.files == ["/work/site/webpack.config.js"]
        assert conversation.metadata["source"] == "windsurf-chat"
        assert conversation.created_at.tzinfo is not None

    def test_chat_title_from_first_user_message(self, reader):
        assert reader.get_conversation("windsurf:chat:chat-2").title == "Untitled tab question"

    def test_agent_conversation(self, reader):
        conversation = reader.get_conversation("windsurf:agent:agentData:flow-1")

        assert conversation.title == "Cascade flow"
        assert conversation.messages[0].role == MessageRole.USER
        assert conversation.files == ["/work/api/module.py"]
        assert conversation.metadata == {"source": "windsurf-agent", "status": "completed"}
        assert conversation.updated_at.timestamp() * 1000 == 1_741_953_700_000

    @pytest.mark.parametrize(
        "conversation_id",
        [
            "windsurf:chat:missing",
            "windsurf:agent:otherData:x",
            "windsurf:agent:agentData:absent",
            "windsurf:unknown:x",
            "cursor-id",
        ],
    )
    def test_unresolvable_ids(self, reader, conversation_id):
        assert reader.get_conversation(conversation_id) is None

    def test_project_filter_uses_files(self, reader):
        assert reader.get_conversation_ids("/work/api") == ["windsurf:agent:agentData:flow-1"]
        assert [c.conversation_id for c in reader.get_conversations_by_project("/work/site")] == [
            "windsurf:chat:tab-1"
        ]

    def test_search(self, reader):
        results = reader.search_conversations("source maps")
        assert [c.conversation_id for c in results] == ["windsurf:chat:tab-1"]
        assert reader.search_conversations("source maps", project_path="/work/api") == []

    def test_missing_database(self, tmp_path):
        reader = WindsurfReader(db_path=tmp_path / "absent.vscdb")
        assert not reader.is_available()
        assert reader.get_conversation_ids() == []

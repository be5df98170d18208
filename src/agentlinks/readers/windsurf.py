"""
Windsurf conversation reader.

Windsurf is a VS Code fork with two places for chat data in its global
``state.vscdb``:

- tabbed chat panels in ``ItemTable``, stored under whichever key of
  ``WINDSURF_CHAT_KEYS`` this version uses (tried in order)
- flow/agent conversations in ``cursorDiskKV`` under ``composerData:``,
  ``agentData:`` or ``flowData:`` keys

Ids are ``windsurf:chat:<tab id>`` and ``windsurf:agent:<key>``.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Iterator, Optional

from agentlinks.models.canonical import (
    CanonicalConversation,
    CanonicalMessage,
    MessageRole,
)
from agentlinks.readers.base import BaseConversationReader, ReaderError, ReaderMetadata
from agentlinks.readers.sqlite_store import ITEM_TABLE, KV_TABLE, KeyValueDatabase
from agentlinks.readers.utils import (
    decode_json_value,
    file_times,
    make_title,
    safe_get_nested,
    unique,
)
from agentlinks.utils.timeutils import from_epoch_ms

logger = logging.getLogger(__name__)

ID_PREFIX = "windsurf:"

WINDSURF_CHAT_KEYS = (
    "workbench.panel.aichat.view.aichat.chatdata",
    "aiChat.chatdata",
    "chat.data",
    "cascade.chatdata",
)

AGENT_KEY_PREFIXES = ("composerData:", "agentData:", "flowData:")

INSTALL_DIR_NAMES = ("Windsurf", "windsurf", ".windsurf")


def windsurf_install_dirs(platform: Optional[str] = None) -> list[Path]:
    """Existing Windsurf data directories on this machine."""
    platform = platform or sys.platform
    home = Path.home()
    bases: list[Path]
    if platform == "darwin":
        bases = [home / "Library" / "Application Support"]
    elif platform == "win32":
        appdata = os.getenv("APPDATA")
        local_appdata = os.getenv("LOCALAPPDATA")
        bases = [
            Path(appdata) if appdata else home / "AppData" / "Roaming",
            Path(local_appdata) if local_appdata else home / "AppData" / "Local",
        ]
    else:
        bases = [home / ".config", home / ".local" / "share"]
    return [b / name for name in INSTALL_DIR_NAMES for b in bases if (b / name).is_dir()]


def _tab_id(tab: dict[str, Any], index: int) -> str:
    return tab.get("tabId") or f"chat-{index}"


def _selection_paths(selections: Any) -> list[str]:
    paths = []
    for selection in selections or []:
        fs_path = safe_get_nested(selection, "uri", "fsPath")
        if isinstance(fs_path, str) and fs_path:
            paths.append(fs_path)
    return paths


def _is_user(bubble: dict[str, Any]) -> bool:
    return bubble.get("type") in ("user", 1) or bubble.get("role") == "user"


class WindsurfReader(BaseConversationReader):
    """Reader for Windsurf chat panels and flow/agent conversations."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self._metadata = ReaderMetadata(
            agent="windsurf",
            version="1.0.0",
            storage="sqlite",
            id_prefix=ID_PREFIX,
            description="Reader for Windsurf chat and agent conversations",
        )
        if db_path is None:
            db_path = self._find_global_db()
        self.db = KeyValueDatabase(db_path) if db_path else None

    @staticmethod
    def _find_global_db() -> Optional[Path]:
        for install_dir in windsurf_install_dirs():
            candidate = install_dir / "User" / "globalStorage" / "state.vscdb"
            if candidate.is_file():
                return candidate
        return None

    def is_available(self) -> bool:
        return self.db is not None and self.db.exists()

    def _chat_data(self) -> Iterator[tuple[str, dict[str, Any]]]:
        """Decoded chat data under each candidate key that resolves."""
        for key in WINDSURF_CHAT_KEYS:
            try:
                raw = self.db.get(ITEM_TABLE, key)
                if raw is None:
                    continue
                data = decode_json_value(raw)
            except ReaderError as e:
                self.log_error(f"Failed to parse chat key {key}", e)
                continue
            if isinstance(data, dict) and isinstance(data.get("tabs"), list):
                yield key, data

    def _agent_keys(self) -> list[str]:
        if not self.db.has_table(KV_TABLE):
            return []
        keys: list[str] = []
        for prefix in AGENT_KEY_PREFIXES:
            keys.extend(self.db.keys_with_prefix(KV_TABLE, prefix))
        return keys

    def _all_ids(self) -> list[str]:
        if not self.is_available():
            return []
        ids: list[str] = []
        try:
            for _, data in self._chat_data():
                for index, tab in enumerate(data["tabs"]):
                    if isinstance(tab, dict) and tab.get("bubbles"):
                        ids.append(f"{ID_PREFIX}chat:{_tab_id(tab, index)}")
            ids.extend(f"{ID_PREFIX}agent:{key}" for key in self._agent_keys())
        except ReaderError as e:
            self.log_error("Failed to get conversation ids", e)
        return unique(ids)

    def get_conversation_ids(self, project_path: Optional[str] = None) -> list[str]:
        """
        Conversation ids. Windsurf records no project on a conversation, so
        a project filter keeps ids whose referenced files contain the path.
        """
        ids = self._all_ids()
        if not project_path:
            return ids
        return [
            conversation_id
            for conversation_id in ids
            if self._in_project(self.get_conversation(conversation_id), project_path)
        ]

    @staticmethod
    def _in_project(conversation: Optional[CanonicalConversation], project_path: str) -> bool:
        if conversation is None:
            return False
        needle = project_path.lower()
        return any(needle in f.lower() for f in conversation.files)

    def get_conversation(self, conversation_id: str) -> Optional[CanonicalConversation]:
        if not self.is_available() or not self.owns(conversation_id):
            return None
        kind, _, ident = self.strip_prefix(conversation_id).partition(":")
        try:
            if kind == "chat":
                return self._chat_conversation(ident, conversation_id)
            if kind == "agent":
                return self._agent_conversation(ident, conversation_id)
        except ReaderError as e:
            self.log_error(f"Failed to get conversation {conversation_id}", e)
        return None

    def _chat_conversation(
        self, tab_id: str, conversation_id: str
    ) -> Optional[CanonicalConversation]:
        for _, data in self._chat_data():
            tab = next(
                (
                    t
                    for index, t in enumerate(data["tabs"])
                    if isinstance(t, dict) and _tab_id(t, index) == tab_id
                ),
                None,
            )
            if tab is None or not tab.get("bubbles"):
                continue

            messages: list[CanonicalMessage] = []
            title = tab.get("chatTitle") or None
            for index, bubble in enumerate(tab["bubbles"]):
                if not isinstance(bubble, dict):
                    continue
                content = bubble.get("rawText") or bubble.get("text") or ""
                if not isinstance(content, str) or not content.strip():
                    continue
                role = MessageRole.USER if _is_user(bubble) else MessageRole.ASSISTANT
                if title is None and role == MessageRole.USER:
                    title = make_title(content)
                messages.append(
                    CanonicalMessage(
                        role=role,
                        content=content,
                        files=unique(_selection_paths(bubble.get("selections"))),
                        metadata={"index": index},
                    )
                )

            # Chat panels carry no timestamps; the database's own times stand in
            created_at, updated_at = file_times(self.db.path)
            return CanonicalConversation(
                conversation_id=conversation_id,
                agent=self.agent,
                created_at=created_at,
                updated_at=updated_at,
                messages=messages,
                title=title,
                files=unique(f for m in messages for f in m.files),
                metadata={"source": "windsurf-chat", "tab_id": tab_id},
            )
        return None

    def _agent_conversation(
        self, key: str, conversation_id: str
    ) -> Optional[CanonicalConversation]:
        if not key.startswith(AGENT_KEY_PREFIXES):
            return None
        raw = self.db.get(KV_TABLE, key)
        if raw is None:
            return None
        data = decode_json_value(raw)
        if not isinstance(data, dict) or not isinstance(data.get("conversation"), list):
            return None

        messages: list[CanonicalMessage] = []
        files: list[str] = []
        for index, bubble in enumerate(data["conversation"]):
            if not isinstance(bubble, dict):
                continue
            content = bubble.get("text") or ""
            if not isinstance(content, str) or not content.strip():
                continue
            bubble_files = _selection_paths(safe_get_nested(bubble, "context", "selections"))
            files.extend(bubble_files)
            messages.append(
                CanonicalMessage(
                    role=MessageRole.USER if _is_user(bubble) else MessageRole.ASSISTANT,
                    content=content,
                    timestamp=from_epoch_ms(bubble.get("timestamp")),
                    files=unique(bubble_files),
                    metadata={"index": index},
                )
            )

        file_created, file_modified = file_times(self.db.path)
        created_at = from_epoch_ms(data.get("createdAt")) or file_created
        updated_at = from_epoch_ms(data.get("lastUpdatedAt")) or created_at or file_modified

        return CanonicalConversation(
            conversation_id=conversation_id,
            agent=self.agent,
            created_at=created_at,
            updated_at=updated_at,
            messages=messages,
            title=data.get("name") or "Untitled",
            files=unique(files),
            metadata={
                k: v
                for k, v in {"source": "windsurf-agent", "status": data.get("status")}.items()
                if v is not None
            },
        )

    def search_conversations(
        self,
        query: str,
        project_path: Optional[str] = None,
        limit: int = 20,
    ) -> list[CanonicalConversation]:
        """Search, applying the file-based project filter per conversation."""
        results: list[CanonicalConversation] = []
        for conversation_id in self._all_ids():
            if len(results) >= limit:
                break
            conversation = self.get_conversation(conversation_id)
            if conversation is None:
                continue
            if project_path and not self._in_project(conversation, project_path):
                continue
            if conversation.matches(query):
                results.append(conversation)
        return results

    def get_conversations_by_project(
        self, project_path: str
    ) -> list[CanonicalConversation]:
        conversations = [
            c
            for c in (self.get_conversation(i) for i in self._all_ids())
            if self._in_project(c, project_path)
        ]
        return self.sort_by_updated_at(conversations)

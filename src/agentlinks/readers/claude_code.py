"""
Claude Code conversation reader.

Claude Code writes one JSONL transcript per session under
``~/.claude/projects/<escaped project path>/<session>.jsonl`` where the
project path is escaped by replacing every ``/`` with ``-``. Each line is a
JSON object; user/assistant lines carry a ``message`` whose ``content`` is
either a string or a list of typed blocks (text, tool_use, tool_result).
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Optional

from agentlinks.config import settings
from agentlinks.models.canonical import (
    CanonicalConversation,
    CanonicalMessage,
    MessageRole,
)
from agentlinks.readers.base import BaseConversationReader, ReaderMetadata
from agentlinks.readers.utils import (
    extract_text_content,
    file_times,
    files_from_tool_input,
    make_title,
    unique,
)
from agentlinks.utils.timeutils import parse_timestamp

logger = logging.getLogger(__name__)

ID_PREFIX = "claude-code:"


def escape_project_path(project_path: str) -> str:
    """Directory name Claude Code uses for a project path."""
    return project_path.replace("/", "-")


def unescape_project_path(escaped: str) -> str:
    """
    Best-effort inverse of ``escape_project_path``.

    Lossy: dashes that were part of the original path become slashes.
    """
    return escaped.replace("-", "/")


class ClaudeCodeReader(BaseConversationReader):
    """Reader for Claude Code JSONL session transcripts."""

    def __init__(self, projects_dir: Optional[Path] = None) -> None:
        self._metadata = ReaderMetadata(
            agent="claude-code",
            version="1.0.0",
            storage="jsonl",
            id_prefix=ID_PREFIX,
            description="Reader for Claude Code session transcripts",
        )
        self.projects_dir = Path(projects_dir or settings.claude_projects_directory)

    def is_available(self) -> bool:
        return self.projects_dir.is_dir()

    def _project_dirs(self, project_path: Optional[str] = None) -> list[Path]:
        if not self.is_available():
            return []
        if project_path:
            candidate = self.projects_dir / escape_project_path(project_path.rstrip("/"))
            return [candidate] if candidate.is_dir() else []
        return sorted(p for p in self.projects_dir.iterdir() if p.is_dir())

    def _session_files(self, project_path: Optional[str] = None) -> Iterator[Path]:
        for project_dir in self._project_dirs(project_path):
            yield from sorted(project_dir.glob("*.jsonl"))

    def list_projects(self) -> list[str]:
        """Project paths (best-effort unescaped) that have transcripts."""
        return [unescape_project_path(p.name) for p in self._project_dirs()]

    def get_conversation_ids(self, project_path: Optional[str] = None) -> list[str]:
        return [f"{ID_PREFIX}{path.stem}" for path in self._session_files(project_path)]

    def find_session_file(self, conversation_id: str) -> Optional[Path]:
        """Locate the transcript of a session in any project directory."""
        session_id = self.strip_prefix(conversation_id)
        if not session_id or "/" in session_id or "\\" in session_id:
            return None
        for project_dir in self._project_dirs():
            candidate = project_dir / f"{session_id}.jsonl"
            if candidate.is_file():
                return candidate
        return None

    def _load_entries(self, file_path: Path) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []
        with file_path.open("r", encoding="utf-8", errors="replace") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug("Skipping invalid JSON line in %s", file_path)
                    continue
                if isinstance(data, dict):
                    entries.append(data)
        return entries

    def get_conversation(self, conversation_id: str) -> Optional[CanonicalConversation]:
        file_path = self.find_session_file(conversation_id)
        if file_path is None:
            return None
        try:
            entries = self._load_entries(file_path)
        except OSError as e:
            self.log_error(f"Failed to read {file_path}", e)
            return None
        return self._to_conversation(entries, conversation_id, file_path)

    def _to_conversation(
        self, entries: list[dict[str, Any]], conversation_id: str, file_path: Path
    ) -> CanonicalConversation:
        messages: list[CanonicalMessage] = []
        files: list[str] = []
        title: Optional[str] = None
        ai_summary: Optional[str] = None
        first_ts = None
        last_ts = None
        session_meta: dict[str, Any] = {}

        for entry in entries:
            if entry.get("type") == "summary" and isinstance(entry.get("summary"), str):
                ai_summary = entry["summary"]
                continue

            message = entry.get("message")
            if not isinstance(message, dict):
                continue

            if not session_meta and entry.get("sessionId"):
                session_meta = {
                    "session_id": entry.get("sessionId"),
                    "version": entry.get("version"),
                    "git_branch": entry.get("gitBranch"),
                    "cwd": entry.get("cwd"),
                }

            timestamp = parse_timestamp(entry.get("timestamp"))
            if timestamp is not None:
                first_ts = first_ts or timestamp
                last_ts = timestamp

            content = message.get("content")
            message_files: list[str] = []
            if isinstance(content, list):
                for block in content:
                    if isinstance(block, dict) and block.get("type") == "tool_use":
                        message_files.extend(files_from_tool_input(block.get("input")))
            files.extend(message_files)

            text = extract_text_content(content)
            if not text.strip():
                continue

            role = MessageRole.USER if entry.get("type") == "user" else MessageRole.ASSISTANT
            if title is None and role == MessageRole.USER:
                title = make_title(text)

            messages.append(
                CanonicalMessage(
                    role=role,
                    content=text,
                    timestamp=timestamp,
                    files=unique(message_files),
                    metadata={
                        "uuid": entry.get("uuid"),
                        "model": message.get("model"),
                        "cwd": entry.get("cwd"),
                        "git_branch": entry.get("gitBranch"),
                        "agent_id": entry.get("agentId"),
                    },
                )
            )

        if first_ts is None or last_ts is None:
            file_created, file_modified = file_times(file_path)
            first_ts = first_ts or file_created
            last_ts = last_ts or file_modified

        metadata = {k: v for k, v in session_meta.items() if v is not None}
        if ai_summary:
            metadata["ai_summary"] = ai_summary

        project_path = session_meta.get("cwd") or unescape_project_path(
            file_path.parent.name
        )

        return CanonicalConversation(
            conversation_id=conversation_id,
            agent=self.agent,
            created_at=first_ts,
            updated_at=last_ts,
            messages=messages,
            project_path=project_path,
            title=title,
            files=unique(files),
            folders=[project_path] if session_meta.get("cwd") else [],
            metadata=metadata,
        )

    def search_conversations(
        self,
        query: str,
        project_path: Optional[str] = None,
        limit: int = 20,
    ) -> list[CanonicalConversation]:
        """
        Search with a raw-text prefilter: only transcripts whose file text
        contains the query are parsed.
        """
        results: list[CanonicalConversation] = []
        needle = query.lower()
        for file_path in self._session_files(project_path):
            if len(results) >= limit:
                break
            try:
                raw = file_path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                self.log_error(f"Failed to read {file_path}", e)
                continue
            if needle not in raw.lower():
                continue
            conversation = self._to_conversation(
                self._load_entries(file_path), f"{ID_PREFIX}{file_path.stem}", file_path
            )
            if conversation.matches(query):
                results.append(conversation)
        return results

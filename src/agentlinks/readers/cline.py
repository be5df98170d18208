"""
Cline-family conversation readers (Cline, Roo Code, Kilo Code).

These VS Code extensions share one layout: every task is a directory under
``<globalStorage>/<extension id>/tasks/<task id>/`` holding

- ``ui_messages.json``: what the user saw, entries ``{ts, type: say|ask, say,
  ask, text, partial}``
- ``api_conversation_history.json``: the raw model conversation, used for
  file references (tool inputs and paths mentioned in tool results)
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from agentlinks.models.canonical import (
    CanonicalConversation,
    CanonicalMessage,
    MessageRole,
)
from agentlinks.readers.base import BaseConversationReader, ReaderError, ReaderMetadata
from agentlinks.readers.utils import (
    file_times,
    files_from_tool_input,
    load_json_file,
    make_title,
    paths_in_text,
    unique,
    vscode_storage_dirs,
)
from agentlinks.utils.timeutils import from_epoch_ms

logger = logging.getLogger(__name__)

CLINE_EXTENSIONS = {
    "cline": "saoudrizwan.claude-dev",
    "roo-code": "rooveterinaryinc.roo-cline",
    "kilo-code": "kilocode.kilo-code",
}

UI_MESSAGES = "ui_messages.json"
API_HISTORY = "api_conversation_history.json"

# The tool input keys Cline tools use for files (no bare "file")
CLINE_FILE_KEYS = ("path", "file_path", "filePath")


def find_tasks_dirs(variant: str, storage_dirs: Optional[Iterable[Path]] = None) -> list[Path]:
    """Existing ``tasks`` directories of an extension across editors."""
    extension_id = CLINE_EXTENSIONS[variant]
    if storage_dirs is None:
        storage_dirs = vscode_storage_dirs("globalStorage")
    return [
        Path(d) / extension_id / "tasks"
        for d in storage_dirs
        if (Path(d) / extension_id / "tasks").is_dir()
    ]


def files_from_api_history(history: Any) -> list[str]:
    """
    File references in the raw model conversation.

    Tool invocations contribute the paths they were given; tool results
    contribute any path-shaped substrings of their text.
    """
    files: list[str] = []
    if not isinstance(history, list):
        return files
    for message in history:
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, list):
            continue
        for block in content:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "tool_use":
                files.extend(files_from_tool_input(block.get("input"), CLINE_FILE_KEYS))
            elif block.get("type") == "tool_result" and isinstance(block.get("content"), str):
                files.extend(paths_in_text(block["content"]))
    return unique(files)


class ClineReader(BaseConversationReader):
    """Reader for one member of the Cline extension family."""

    def __init__(
        self,
        variant: str = "cline",
        tasks_dirs: Optional[list[Path]] = None,
    ) -> None:
        if variant not in CLINE_EXTENSIONS:
            raise ValueError(f"Unknown Cline variant: {variant}")
        self.variant = variant
        self._metadata = ReaderMetadata(
            agent=variant,
            version="1.0.0",
            storage="json",
            id_prefix=variant,
            description=f"Reader for {variant} task histories",
        )
        self.tasks_dirs = (
            [Path(d) for d in tasks_dirs] if tasks_dirs is not None else find_tasks_dirs(variant)
        )

    def is_available(self) -> bool:
        return any(d.is_dir() for d in self.tasks_dirs)

    def _matches_project(self, task_dir: Path, project_path: str) -> bool:
        history_path = task_dir / API_HISTORY
        if not history_path.is_file():
            return False
        try:
            content = history_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return False
        return project_path.lower() in content.lower()

    def get_conversation_ids(self, project_path: Optional[str] = None) -> list[str]:
        ids = []
        for tasks_dir in self.tasks_dirs:
            try:
                entries = sorted(tasks_dir.iterdir())
            except OSError as e:
                self.log_error(f"Failed to read tasks directory {tasks_dir}", e)
                continue
            for task_dir in entries:
                if not (task_dir / UI_MESSAGES).is_file():
                    continue
                if project_path and not self._matches_project(task_dir, project_path):
                    continue
                ids.append(f"{self.variant}:{task_dir.name}")
        return ids

    def _task_dir(self, conversation_id: str) -> Optional[Path]:
        task_id = self.strip_prefix(conversation_id)
        if not task_id or "/" in task_id or "\\" in task_id:
            return None
        for tasks_dir in self.tasks_dirs:
            candidate = tasks_dir / task_id
            if (candidate / UI_MESSAGES).is_file():
                return candidate
        return None

    def get_conversation(self, conversation_id: str) -> Optional[CanonicalConversation]:
        task_dir = self._task_dir(conversation_id)
        if task_dir is None:
            return None
        try:
            return self._parse_task(task_dir, conversation_id)
        except (ReaderError, OSError) as e:
            self.log_error(f"Failed to parse task {conversation_id}", e)
            return None

    def _parse_task(self, task_dir: Path, conversation_id: str) -> CanonicalConversation:
        ui_path = task_dir / UI_MESSAGES
        ui_messages = load_json_file(ui_path)
        if not isinstance(ui_messages, list):
            raise ReaderError(f"Unexpected ui_messages shape in {ui_path}")

        history: Any = []
        history_path = task_dir / API_HISTORY
        if history_path.is_file():
            try:
                history = load_json_file(history_path)
            except ReaderError as e:
                self.log_error(f"Failed to parse API history for {conversation_id}", e)

        messages: list[CanonicalMessage] = []
        title: Optional[str] = None
        created_at: Optional[datetime] = None
        updated_at: Optional[datetime] = None

        for entry in ui_messages:
            if not isinstance(entry, dict):
                continue
            timestamp = from_epoch_ms(entry.get("ts"))
            if timestamp is not None:
                created_at = created_at or timestamp
                updated_at = timestamp

            if entry.get("partial"):
                continue
            content = entry.get("text") or ""
            if not isinstance(content, str) or not content.strip():
                continue

            role = MessageRole.USER if entry.get("type") == "ask" else MessageRole.ASSISTANT
            if title is None and role == MessageRole.USER:
                title = make_title(content)

            messages.append(
                CanonicalMessage(
                    role=role,
                    content=content,
                    timestamp=timestamp,
                    metadata={"say": entry.get("say"), "ask": entry.get("ask")},
                )
            )

        if created_at is None or updated_at is None:
            file_created, file_modified = file_times(ui_path)
            created_at = created_at or file_created
            updated_at = updated_at or file_modified

        return CanonicalConversation(
            conversation_id=conversation_id,
            agent=self.agent,
            created_at=created_at,
            updated_at=updated_at,
            messages=messages,
            title=title,
            files=files_from_api_history(history),
            metadata={"task_id": task_dir.name, "variant": self.variant},
        )


def create_cline_family_readers(
    storage_dirs: Optional[Iterable[Path]] = None,
) -> list[ClineReader]:
    """One reader per Cline-family extension."""
    storage_dirs = list(storage_dirs) if storage_dirs is not None else None
    return [
        ClineReader(variant, tasks_dirs=find_tasks_dirs(variant, storage_dirs))
        for variant in CLINE_EXTENSIONS
    ]

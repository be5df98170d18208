"""
GitHub Copilot Chat conversation reader.

Copilot Chat keeps one JSON file per chat session under
``<workspaceStorage>/<workspace hash>/chatSessions/<session>.json``; the
workspace folder is recorded in the sibling ``workspace.json``. Each
request's message and each response part may be a bare string or a wrapped
object (``{"text": ...}`` / ``{"value": ...}``).
"""

import logging
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
    load_json_file,
    make_title,
    safe_get_nested,
    unwrap_text,
    uri_to_path,
    vscode_storage_dirs,
)
from agentlinks.utils.timeutils import from_epoch_ms

logger = logging.getLogger(__name__)

ID_PREFIX = "copilot-chat:"


def find_chat_session_dirs(
    storage_dirs: Optional[Iterable[Path]] = None,
) -> list[tuple[Path, str]]:
    """
    ``(chatSessions dir, workspace hash)`` pairs across editors.
    """
    if storage_dirs is None:
        storage_dirs = vscode_storage_dirs("workspaceStorage")
    results = []
    for storage_dir in storage_dirs:
        try:
            workspaces = sorted(Path(storage_dir).iterdir())
        except OSError:
            continue
        for workspace in workspaces:
            chat_dir = workspace / "chatSessions"
            if chat_dir.is_dir():
                results.append((chat_dir, workspace.name))
    return results


def session_to_messages(session: dict[str, Any]) -> list[CanonicalMessage]:
    """Flatten request/response pairs into canonical messages."""
    messages: list[CanonicalMessage] = []
    for index, request in enumerate(session.get("requests") or []):
        if not isinstance(request, dict):
            continue

        user_text = unwrap_text(request.get("message"), "text")
        if user_text.strip():
            messages.append(
                CanonicalMessage(
                    role=MessageRole.USER,
                    content=user_text,
                    timestamp=from_epoch_ms(request.get("timestamp")),
                    metadata={"request_index": index},
                )
            )

        for part_index, part in enumerate(request.get("response") or []):
            value = part.get("value") if isinstance(part, dict) else part
            assistant_text = unwrap_text(value, "value")
            if assistant_text.strip():
                messages.append(
                    CanonicalMessage(
                        role=MessageRole.ASSISTANT,
                        content=assistant_text,
                        metadata={"request_index": index, "part": part_index},
                    )
                )

        error_message = safe_get_nested(request, "result", "errorDetails", "message")
        if isinstance(error_message, str) and error_message:
            messages.append(
                CanonicalMessage(
                    role=MessageRole.ASSISTANT,
                    content=f"Error: {error_message}",
                    metadata={"request_index": index, "is_error": True},
                )
            )
    return messages


class CopilotChatReader(BaseConversationReader):
    """Reader for Copilot Chat session files."""

    def __init__(self, session_dirs: Optional[list[tuple[Path, str]]] = None) -> None:
        self._metadata = ReaderMetadata(
            agent="copilot-chat",
            version="1.0.0",
            storage="json",
            id_prefix=ID_PREFIX,
            description="Reader for GitHub Copilot Chat sessions",
        )
        self.session_dirs = (
            [(Path(d), w) for d, w in session_dirs]
            if session_dirs is not None
            else find_chat_session_dirs()
        )

    def is_available(self) -> bool:
        return any(d.is_dir() for d, _ in self.session_dirs)

    @staticmethod
    def workspace_folder(chat_dir: Path) -> Optional[str]:
        """Folder recorded in the workspace's ``workspace.json``, as a path."""
        workspace_json = chat_dir.parent / "workspace.json"
        if not workspace_json.is_file():
            return None
        try:
            info = load_json_file(workspace_json)
        except (ReaderError, OSError):
            return None
        folder = info.get("folder") if isinstance(info, dict) else None
        return uri_to_path(folder) if isinstance(folder, str) and folder else None

    def get_conversation_ids(self, project_path: Optional[str] = None) -> list[str]:
        ids = []
        for chat_dir, workspace_id in self.session_dirs:
            if project_path:
                folder = self.workspace_folder(chat_dir)
                if not folder or project_path.lower() not in folder.lower():
                    continue
            try:
                files = sorted(chat_dir.glob("*.json"))
            except OSError as e:
                self.log_error(f"Failed to read session directory {chat_dir}", e)
                continue
            ids.extend(f"{ID_PREFIX}{workspace_id}:{f.stem}" for f in files)
        return ids

    def get_conversation(self, conversation_id: str) -> Optional[CanonicalConversation]:
        workspace_id, _, session_id = self.strip_prefix(conversation_id).partition(":")
        if not workspace_id or not session_id or "/" in session_id:
            return None

        for chat_dir, candidate_workspace in self.session_dirs:
            if candidate_workspace != workspace_id:
                continue
            file_path = chat_dir / f"{session_id}.json"
            if not file_path.is_file():
                continue
            try:
                return self._parse_session(file_path, conversation_id, chat_dir)
            except (ReaderError, OSError) as e:
                self.log_error(f"Failed to parse session {conversation_id}", e)
                return None
        return None

    def _parse_session(
        self, file_path: Path, conversation_id: str, chat_dir: Path
    ) -> CanonicalConversation:
        session = load_json_file(file_path)
        if not isinstance(session, dict):
            raise ReaderError(f"Unexpected session shape in {file_path}")

        messages = session_to_messages(session)
        first_user = next((m for m in messages if m.role == MessageRole.USER), None)
        project_path = self.workspace_folder(chat_dir)

        file_created, file_modified = file_times(file_path)
        created_at = from_epoch_ms(session.get("creationDate")) or file_created
        updated_at = from_epoch_ms(session.get("lastMessageDate")) or file_modified

        metadata = {
            "requester": session.get("requesterUsername"),
            "responder": session.get("responderUsername"),
        }
        return CanonicalConversation(
            conversation_id=conversation_id,
            agent=self.agent,
            created_at=created_at,
            updated_at=updated_at,
            messages=messages,
            project_path=project_path,
            title=session.get("customTitle") or (make_title(first_user.content) if first_user else None),
            folders=[project_path] if project_path else [],
            metadata={k: v for k, v in metadata.items() if v is not None},
        )

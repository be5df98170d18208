"""
Cursor conversation reader.

Cursor stores composer conversations in its global ``state.vscdb`` SQLite
file, table ``cursorDiskKV``, one JSON blob per conversation under
``composerData:<composerId>``. Two shapes exist:

- legacy: messages inline in an ordered ``conversation`` array
- modern: a ``_v`` version marker plus ``fullConversationHeadersOnly``, an
  ordered list of ``{bubbleId, type}`` headers; each message body lives
  under its own key ``bubbleId:<composerId>:<bubbleId>``

Message ``type`` 1 is the user, 2 the assistant.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from agentlinks.config import settings
from agentlinks.models.canonical import (
    CanonicalConversation,
    CanonicalMessage,
    CodeBlock,
    ConversationSummary,
    MessageRole,
)
from agentlinks.readers.base import BaseConversationReader, ReaderError, ReaderMetadata
from agentlinks.readers.sqlite_store import KV_TABLE, KeyValueDatabase
from agentlinks.readers.utils import (
    decode_json_value,
    file_times,
    make_title,
    safe_get_nested,
    unique,
)
from agentlinks.utils.timeutils import from_epoch_ms

logger = logging.getLogger(__name__)

COMPOSER_PREFIX = "composerData:"
USER_BUBBLE_TYPE = 1


def composer_key(composer_id: str) -> str:
    return f"{COMPOSER_PREFIX}{composer_id}"


def bubble_key(composer_id: str, bubble_id: str) -> str:
    return f"bubbleId:{composer_id}:{bubble_id}"


def is_modern(composer: dict[str, Any]) -> bool:
    return "_v" in composer and isinstance(
        composer.get("fullConversationHeadersOnly"), list
    )


def _message_files(message: dict[str, Any]) -> list[str]:
    files = [f for f in message.get("relevantFiles") or [] if isinstance(f, str)]
    for selection in safe_get_nested(message, "context", "fileSelections", default=[]) or []:
        fs_path = safe_get_nested(selection, "uri", "fsPath") or safe_get_nested(
            selection, "uri", "path"
        )
        if isinstance(fs_path, str):
            files.append(fs_path)
    return unique(files)


def _message_folders(message: dict[str, Any]) -> list[str]:
    return unique(f for f in message.get("attachedFoldersNew") or [] if isinstance(f, str))


def _code_blocks(message: dict[str, Any]) -> list[CodeBlock]:
    blocks = []
    for block in message.get("suggestedCodeBlocks") or []:
        if not isinstance(block, dict):
            continue
        code = block.get("code") or block.get("codeBlock")
        if not isinstance(code, str):
            continue
        filename = block.get("filename") or safe_get_nested(block, "uri", "fsPath")
        blocks.append(
            CodeBlock(
                language=block.get("language") or block.get("languageId") or "",
                code=code,
                filename=filename if isinstance(filename, str) else None,
            )
        )
    return blocks


def to_message(raw: dict[str, Any], bubble_id: Optional[str] = None) -> CanonicalMessage:
    """Convert a legacy message or a modern bubble to a canonical message."""
    role = MessageRole.USER if raw.get("type") == USER_BUBBLE_TYPE else MessageRole.ASSISTANT
    metadata: dict[str, Any] = {}
    if bubble_id:
        metadata["bubble_id"] = bubble_id
    folders = _message_folders(raw)
    if folders:
        metadata["attached_folders"] = folders
    return CanonicalMessage(
        role=role,
        content=raw.get("text") or "",
        timestamp=from_epoch_ms(raw.get("timestamp")),
        code_blocks=_code_blocks(raw),
        files=_message_files(raw),
        metadata=metadata,
    )


class CursorReader(BaseConversationReader):
    """Reader for Cursor's composer conversations."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        min_conversation_size: Optional[int] = None,
        max_conversations: int = 1000,
    ) -> None:
        self._metadata = ReaderMetadata(
            agent="cursor",
            version="1.0.0",
            storage="sqlite",
            id_prefix=None,  # Cursor hooks report bare composer ids
            description="Reader for Cursor composer conversations (state.vscdb)",
        )
        self.db = KeyValueDatabase(db_path or settings.cursor_db_file)
        self.min_conversation_size = (
            settings.cursor_min_conversation_size
            if min_conversation_size is None
            else min_conversation_size
        )
        self.max_conversations = max_conversations

    def is_available(self) -> bool:
        return self.db.exists()

    def owns(self, conversation_id: str) -> bool:
        # Bare ids belong to Cursor; "cursor:<id>" is accepted too
        return conversation_id.startswith("cursor:") or ":" not in conversation_id

    def _composer_id(self, conversation_id: str) -> str:
        if conversation_id.startswith("cursor:"):
            return conversation_id[len("cursor:") :]
        return conversation_id

    def get_conversation_ids(self, project_path: Optional[str] = None) -> list[str]:
        """
        Composer ids, newest first.

        Near-empty blobs (at most ``min_conversation_size`` characters) are
        skipped. A project filter matches the raw blob text, so modern
        conversations whose file references live only in bubbles are not
        found by it.
        """
        if not self.is_available():
            return []
        try:
            keys = self.db.keys_with_prefix(
                KV_TABLE,
                COMPOSER_PREFIX,
                min_length=self.min_conversation_size,
                value_contains=[project_path] if project_path else None,
                limit=self.max_conversations,
            )
        except ReaderError as e:
            self.log_error("Failed to list conversations", e)
            return []
        return [key[len(COMPOSER_PREFIX) :] for key in keys if len(key) > len(COMPOSER_PREFIX)]

    def load_composer(self, composer_id: str) -> Optional[dict[str, Any]]:
        """Decoded composer blob, or None if absent or unreadable."""
        try:
            raw = self.db.get(KV_TABLE, composer_key(composer_id))
            if raw is None:
                return None
            composer = decode_json_value(raw)
        except ReaderError as e:
            self.log_error(f"Failed to read conversation {composer_id}", e)
            return None
        return composer if isinstance(composer, dict) else None

    def load_bubble(self, composer_id: str, bubble_id: str) -> Optional[dict[str, Any]]:
        """Decoded bubble of a modern conversation, or None."""
        try:
            raw = self.db.get(KV_TABLE, bubble_key(composer_id, bubble_id))
            if raw is None:
                return None
            bubble = decode_json_value(raw)
        except ReaderError as e:
            logger.debug("Bubble %s of %s unreadable: %s", bubble_id, composer_id, e)
            return None
        return bubble if isinstance(bubble, dict) else None

    def iter_raw_messages(
        self, composer_id: str, composer: dict[str, Any]
    ) -> Iterator[tuple[Optional[str], dict[str, Any]]]:
        """
        Yield ``(bubble_id, raw_message)`` in conversation order.

        Modern bubbles are resolved lazily, one lookup per header, so callers
        that stop early never pay for the rest.
        """
        if is_modern(composer):
            for header in composer["fullConversationHeadersOnly"]:
                bubble_id = header.get("bubbleId") if isinstance(header, dict) else None
                if not bubble_id:
                    continue
                bubble = self.load_bubble(composer_id, bubble_id)
                if bubble is None:
                    continue
                if "type" not in bubble and "type" in header:
                    bubble["type"] = header["type"]
                yield bubble_id, bubble
        else:
            for message in composer.get("conversation") or []:
                if isinstance(message, dict):
                    yield message.get("bubbleId"), message

    def _timestamps(self, composer: dict[str, Any]) -> tuple[datetime, datetime]:
        created = from_epoch_ms(composer.get("createdAt"))
        updated = from_epoch_ms(composer.get("lastUpdatedAt"))
        if created is None or updated is None:
            file_created, file_modified = file_times(self.db.path)
            created = created or updated or file_created
            updated = updated or created or file_modified
        return created, updated

    def get_conversation(self, conversation_id: str) -> Optional[CanonicalConversation]:
        if not self.is_available():
            return None
        composer_id = self._composer_id(conversation_id)
        composer = self.load_composer(composer_id)
        if composer is None:
            return None

        messages = [
            to_message(raw, bubble_id)
            for bubble_id, raw in self.iter_raw_messages(composer_id, composer)
        ]
        messages = [m for m in messages if m.content.strip() or m.code_blocks]

        files = unique(
            [
                *_message_files(composer),
                *(f for m in messages for f in m.files),
            ]
        )
        folders = unique(
            [
                *_message_folders(composer),
                *(f for m in messages for f in m.metadata.get("attached_folders", [])),
            ]
        )

        title = composer.get("name") if isinstance(composer.get("name"), str) else None
        if not title:
            first_user = next((m for m in messages if m.role == MessageRole.USER), None)
            title = make_title(first_user.content) if first_user else None

        created_at, updated_at = self._timestamps(composer)
        metadata: dict[str, Any] = {
            "format": "modern" if is_modern(composer) else "legacy",
            "composer_id": composer_id,
        }
        ai_summary = safe_get_nested(composer, "latestConversationSummary", "summary", "summary")
        if isinstance(ai_summary, str) and ai_summary:
            metadata["ai_summary"] = ai_summary

        return CanonicalConversation(
            conversation_id=composer_id,
            agent=self.agent,
            created_at=created_at,
            updated_at=updated_at,
            messages=messages,
            project_path=folders[0] if folders else None,
            title=title,
            files=files,
            folders=folders,
            metadata=metadata,
        )

    def get_conversation_summary(
        self, conversation_id: str, include_files: bool = True
    ) -> Optional[ConversationSummary]:
        """
        Summary without building the full conversation.

        Modern conversations carry title and AI summary on the composer
        blob; bubbles are only resolved when file lists are requested.
        """
        if not self.is_available():
            return None
        composer_id = self._composer_id(conversation_id)
        composer = self.load_composer(composer_id)
        if composer is None:
            return None

        modern = is_modern(composer)
        files: list[str] = list(_message_files(composer))
        folders: list[str] = list(_message_folders(composer))
        first_message: Optional[str] = None

        if modern:
            message_count = len(composer["fullConversationHeadersOnly"])
            title = composer.get("name")
            ai_summary = safe_get_nested(
                composer, "latestConversationSummary", "summary", "summary"
            )
        else:
            message_count = len(composer.get("conversation") or [])
            title = composer.get("name")
            ai_summary = None

        if include_files or not modern:
            for _, raw in self.iter_raw_messages(composer_id, composer):
                files.extend(_message_files(raw))
                folders.extend(_message_folders(raw))
                if first_message is None and raw.get("text"):
                    first_message = raw["text"][:150]

        if not title and not modern and first_message:
            title = make_title(first_message)

        return ConversationSummary(
            conversation_id=composer_id,
            agent=self.agent,
            format="modern" if modern else "legacy",
            message_count=message_count,
            title=title if isinstance(title, str) and title else None,
            ai_summary=ai_summary if isinstance(ai_summary, str) and ai_summary else None,
            relevant_files=unique(files) if include_files else [],
            attached_folders=unique(folders) if include_files else [],
            first_message=first_message,
        )

"""
Base reader protocol, shared defaults and exception classes.

Every AI assistant persists sessions in its own on-disk format. A reader
absorbs one such format and exposes it through the same small contract so
the rest of the system never looks at raw storage.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from agentlinks.models.canonical import CanonicalConversation, ConversationSummary

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 20


class ReaderError(Exception):
    """Base exception for all reader errors."""

    pass


class ReaderFormatError(ReaderError):
    """Raised when stored data is invalid or in an unrecognized shape."""

    pass


@dataclass
class ReaderMetadata:
    """
    Metadata about a reader implementation.

    Attributes:
        agent: Source-system tag stamped on every conversation (e.g. 'cursor')
        version: Reader version using semantic versioning
        storage: Storage technology read ('sqlite', 'jsonl', 'json')
        id_prefix: Prefix of the conversation ids this reader issues, or
            None for readers issuing bare ids
        description: Optional human-readable description
    """

    agent: str
    version: str
    storage: str
    id_prefix: Optional[str] = None
    description: str = ""

    def __post_init__(self) -> None:
        """Validate metadata after initialization."""
        if not self.agent:
            raise ValueError("Reader agent cannot be empty")

        if not self.version:
            raise ValueError("Reader version cannot be empty")

        if self.id_prefix is not None and not self.id_prefix.endswith(":"):
            self.id_prefix = f"{self.id_prefix}:"


@runtime_checkable
class ConversationReader(Protocol):
    """
    Protocol for conversation readers.

    Readers are read-only views over another application's storage. They
    must tolerate missing files and version drift: an unreadable
    conversation yields None, never an exception.
    """

    @property
    def metadata(self) -> ReaderMetadata:
        """Reader metadata (agent tag, id prefix, storage kind)."""
        ...

    @property
    def agent(self) -> str:
        """Source-system tag, e.g. 'cursor' or 'claude-code'."""
        ...

    def is_available(self) -> bool:
        """
        Check whether this assistant's storage exists on this machine.

        Note:
            Must be cheap; it is called before every multi-agent query.
        """
        ...

    def get_conversation_ids(self, project_path: Optional[str] = None) -> list[str]:
        """
        List conversation ids, optionally only those touching a project.

        Args:
            project_path: Project directory (or name) to filter by

        Returns:
            Conversation ids in the reader's natural order
        """
        ...

    def get_conversation(self, conversation_id: str) -> Optional[CanonicalConversation]:
        """
        Read one conversation.

        Returns:
            Canonical conversation, or None if absent or unreadable
        """
        ...

    def get_conversations_by_project(
        self, project_path: str
    ) -> list[CanonicalConversation]:
        ...

    def search_conversations(
        self,
        query: str,
        project_path: Optional[str] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[CanonicalConversation]:
        ...

    def get_conversation_summary(
        self, conversation_id: str, include_files: bool = True
    ) -> Optional[ConversationSummary]:
        ...

    def owns(self, conversation_id: str) -> bool:
        ...


class BaseConversationReader:
    """
    Shared behaviour for readers.

    Subclasses provide ``metadata``, ``is_available``, ``get_conversation_ids``
    and ``get_conversation``; project listing, search, summaries and id
    ownership are derived from those.
    """

    _metadata: ReaderMetadata

    @property
    def metadata(self) -> ReaderMetadata:
        return self._metadata

    @property
    def agent(self) -> str:
        return self._metadata.agent

    def is_available(self) -> bool:  # pragma: no cover - abstract
        raise NotImplementedError

    def get_conversation_ids(self, project_path: Optional[str] = None) -> list[str]:  # pragma: no cover - abstract
        raise NotImplementedError

    def get_conversation(self, conversation_id: str) -> Optional[CanonicalConversation]:  # pragma: no cover - abstract
        raise NotImplementedError

    def owns(self, conversation_id: str) -> bool:
        """Whether ``conversation_id`` was issued by this reader."""
        prefix = self._metadata.id_prefix
        return bool(prefix) and conversation_id.startswith(prefix)

    def strip_prefix(self, conversation_id: str) -> str:
        """Remove this reader's id prefix, if present."""
        prefix = self._metadata.id_prefix
        if prefix and conversation_id.startswith(prefix):
            return conversation_id[len(prefix) :]
        return conversation_id

    def get_conversations_by_project(
        self, project_path: str
    ) -> list[CanonicalConversation]:
        """
        Read every conversation of a project, most recently updated first.

        Args:
            project_path: Project directory (or name)
        """
        conversations = []
        for conversation_id in self.get_conversation_ids(project_path):
            conversation = self.get_conversation(conversation_id)
            if conversation is not None:
                conversations.append(conversation)
        return self.sort_by_updated_at(conversations)

    def search_conversations(
        self,
        query: str,
        project_path: Optional[str] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[CanonicalConversation]:
        """
        Linear scan for conversations whose messages contain ``query``
        (case-insensitive). Stops as soon as ``limit`` matches are found.
        """
        results: list[CanonicalConversation] = []
        if limit <= 0:
            return results

        for conversation_id in self.get_conversation_ids(project_path):
            if len(results) >= limit:
                break
            conversation = self.get_conversation(conversation_id)
            if conversation is None:
                continue
            if conversation.matches(query):
                results.append(conversation)
        return results

    def get_conversation_summary(
        self, conversation_id: str, include_files: bool = True
    ) -> Optional[ConversationSummary]:
        """
        Summary derived from the full conversation.

        Readers with a cheaper path (e.g. lazily resolved messages) override
        this.
        """
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            return None

        first_user = next(
            (m.content for m in conversation.messages if m.role.value == "user"), None
        )
        return ConversationSummary(
            conversation_id=conversation.conversation_id,
            agent=conversation.agent,
            format=self._metadata.storage,
            message_count=len(conversation.messages),
            title=conversation.title,
            ai_summary=conversation.metadata.get("ai_summary"),
            relevant_files=list(conversation.files) if include_files else [],
            attached_folders=list(conversation.folders) if include_files else [],
            first_message=first_user[:150] if first_user else None,
        )

    @staticmethod
    def sort_by_updated_at(
        conversations: list[CanonicalConversation],
    ) -> list[CanonicalConversation]:
        """Sort conversations by ``updated_at``, newest first."""
        return sorted(conversations, key=lambda c: c.updated_at, reverse=True)

    def log_error(self, message: str, error: BaseException) -> None:
        """Log a reader failure with agent context."""
        logger.warning("[%s] %s: %s", self.agent, message, error)
        logger.debug("[%s] %s", self.agent, message, exc_info=error)

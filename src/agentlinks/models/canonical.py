"""
Canonical conversation data models.

Source-agnostic dataclasses produced by the format readers. They are built
on every read and never persisted or cached across processes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class MessageRole(str, Enum):
    """Author of a canonical message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class CodeBlock:
    """Code suggested inside a message."""

    language: str
    code: str
    filename: Optional[str] = None


@dataclass
class CanonicalMessage:
    """Single message in a canonical conversation."""

    role: MessageRole
    content: str
    timestamp: Optional[datetime] = None
    code_blocks: list[CodeBlock] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class CanonicalConversation:
    """One chat session, normalized across source formats."""

    conversation_id: str
    agent: str
    created_at: datetime
    updated_at: datetime
    messages: list[CanonicalMessage] = field(default_factory=list)
    project_path: Optional[str] = None
    title: Optional[str] = None
    files: list[str] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """All message content joined for searching."""
        return "\n".join(m.content for m in self.messages if m.content)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match over message content."""
        needle = query.lower()
        return any(needle in m.content.lower() for m in self.messages if m.content)


@dataclass
class ConversationSummary:
    """
    Lightweight view of a conversation used for metadata enrichment.

    Attributes:
        conversation_id: Reader-scoped conversation id
        agent: Source-system tag
        format: Storage shape the summary was read from (e.g. 'legacy',
            'modern', 'jsonl', 'json')
        message_count: Number of messages (headers for lazily-resolved formats)
        title: Conversation title, if the source records one
        ai_summary: Source-generated summary, if any
        relevant_files: Files referenced by the conversation
        attached_folders: Folders attached as context
        first_message: Beginning of the first user message
    """

    conversation_id: str
    agent: str
    format: str
    message_count: int
    title: Optional[str] = None
    ai_summary: Optional[str] = None
    relevant_files: list[str] = field(default_factory=list)
    attached_folders: list[str] = field(default_factory=list)
    first_message: Optional[str] = None


@dataclass
class AgentSearchResult:
    """Conversations found across several readers, with per-agent counts."""

    conversations: list[CanonicalConversation] = field(default_factory=list)
    by_agent: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.conversations)

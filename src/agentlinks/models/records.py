"""
Write inputs and query results for the link store.

Inputs are plain dataclasses so hook handlers never construct ORM objects
directly; results wrap detached ORM rows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional

from agentlinks.models.db import Commit, Conversation, Link, LinkStatus

Relevance = Literal["direct", "indirect"]


@dataclass
class ConversationUpsert:
    """
    Partial conversation write.

    ``None`` means "not part of this write" for every optional field, so a
    file-touched event that knows nothing about titles or relevant files
    never erases what a session-end event stored.
    """

    conversation_id: str
    agent: str
    workspace_root: Optional[str] = None
    project_name: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    ai_summary: Optional[str] = None
    searchable_text: Optional[str] = None
    relevant_files: Optional[list[str]] = None
    attached_folders: Optional[list[str]] = None
    captured_files: list[str] = field(default_factory=list)
    last_hook_event: Optional[str] = None
    updated_at: Optional[datetime] = None  # Defaults to now

    def values(self) -> dict[str, Any]:
        """Field values keyed by column name, excluding the primary key."""
        return {
            "agent": self.agent,
            "workspace_root": self.workspace_root,
            "project_name": self.project_name,
            "title": self.title,
            "summary": self.summary,
            "ai_summary": self.ai_summary,
            "searchable_text": self.searchable_text,
            "relevant_files": self.relevant_files,
            "attached_folders": self.attached_folders,
            "captured_files": list(self.captured_files),
            "last_hook_event": self.last_hook_event,
            "updated_at": self.updated_at,
        }


@dataclass
class CommitInput:
    """Commit metadata as read from git."""

    commit_hash: str
    repo_path: str
    committed_at: datetime
    branch: str = ""
    author: str = ""
    message: str = ""
    changed_files: list[str] = field(default_factory=list)

    def values(self) -> dict[str, Any]:
        return {
            "repo_path": self.repo_path,
            "branch": self.branch,
            "author": self.author,
            "message": self.message,
            "committed_at": self.committed_at,
            "changed_files": list(self.changed_files),
        }


@dataclass
class LinkInput:
    """Link write; replaces matched files, confidence and status of the pair."""

    conversation_id: str
    commit_hash: str
    confidence: float
    status: LinkStatus = LinkStatus.AUTO
    matched_files: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1, got {self.confidence}")
        self.status = LinkStatus(self.status)

    def values(self) -> dict[str, Any]:
        return {
            "matched_files": list(self.matched_files),
            "confidence": self.confidence,
            "status": self.status,
        }


@dataclass
class LinkedCommit:
    """A link joined with its commit (absent if the commit was never recorded)."""

    link: Link
    commit: Optional[Commit]


@dataclass
class LinkedConversation:
    """A link joined with its conversation (absent if never recorded)."""

    link: Link
    conversation: Optional[Conversation]


@dataclass
class KeywordMatch:
    """Occurrences of one keyword in a conversation's search text."""

    keyword: str
    count: int
    excerpts: list[str] = field(default_factory=list)


@dataclass
class ConversationContext:
    conversation: Conversation
    relevance: Relevance
    keyword_matches: list[KeywordMatch] = field(default_factory=list)


@dataclass
class CommitContext:
    commit: Commit
    relevance: Relevance


@dataclass
class FileContext:
    """Everything the store knows about one file."""

    file_path: str
    conversations: list[ConversationContext] = field(default_factory=list)
    commits: list[CommitContext] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.conversations and not self.commits

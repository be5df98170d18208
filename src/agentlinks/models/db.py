"""
SQLAlchemy database models for the AgentLinks link store.

Three tables: conversations, commits and the links between them. Nothing is
ever deleted, so there are no foreign keys with cascading behaviour; a link
may reference a conversation or commit that was never recorded.
"""

import enum
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as naive UTC.

    SQLite has no timezone support, so values are converted to UTC on the
    way in (keeping lexical order equal to chronological order) and tagged
    with UTC on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect):
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class LinkStatus(str, enum.Enum):
    """How a link between a conversation and a commit was established."""

    AUTO = "auto"  # Produced by the scoring engine
    MANUAL = "manual"  # Asserted by a person


class Conversation(Base):
    """Conversation as seen by the hook pipeline."""

    __tablename__ = "conversations"

    conversation_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    agent: Mapped[str] = mapped_column(String(50), nullable=False)
    workspace_root: Mapped[str] = mapped_column(Text, nullable=False, default="")
    project_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Coalesced on write: a null never erases a stored value
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    searchable_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    relevant_files: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    attached_folders: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # Set-union on write: only ever grows
    captured_files: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    last_hook_event: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_conversations_workspace", "workspace_root"),
        Index("idx_conversations_project", "project_name"),
        Index("idx_conversations_agent", "agent"),
        Index("idx_conversations_updated", "updated_at"),
    )

    def all_files(self) -> list[str]:
        """Relevant and captured files, in that order, without duplicates."""
        seen: dict[str, None] = {}
        for path in [*(self.relevant_files or []), *(self.captured_files or [])]:
            seen.setdefault(path, None)
        return list(seen)

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.conversation_id}, agent={self.agent}, "
            f"workspace={self.workspace_root})>"
        )


class Commit(Base):
    """Git commit recorded by the post-commit hook."""

    __tablename__ = "commits"

    commit_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    repo_path: Mapped[str] = mapped_column(Text, nullable=False)
    branch: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    author: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    committed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    changed_files: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_commits_repo", "repo_path"),
        Index("idx_commits_committed", "committed_at"),
    )

    def __repr__(self) -> str:
        return f"<Commit(hash={self.commit_hash[:12]}, repo={self.repo_path})>"


class Link(Base):
    """Association between a conversation and a commit."""

    __tablename__ = "links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(String(255), nullable=False)
    commit_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    matched_files: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[LinkStatus] = mapped_column(
        Enum(
            LinkStatus,
            native_enum=False,
            create_constraint=True,
            length=16,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("conversation_id", "commit_hash", name="uq_link_pair"),
        CheckConstraint(
            "confidence >= 0 AND confidence <= 1", name="ck_link_confidence"
        ),
        Index("idx_links_conversation", "conversation_id"),
        Index("idx_links_commit", "commit_hash"),
    )

    def __repr__(self) -> str:
        return (
            f"<Link(conversation={self.conversation_id}, "
            f"commit={self.commit_hash[:12]}, status={self.status.value}, "
            f"confidence={self.confidence:.3f})>"
        )

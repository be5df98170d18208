"""
Output schemas for AgentLinks.

Pydantic models used to serialize link store rows for ``--json`` output.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from agentlinks.models.db import LinkStatus
from agentlinks.models.records import FileContext, LinkedCommit, LinkedConversation

# ===== Rows =====


class ConversationResponse(BaseModel):
    """Response schema for a stored conversation."""

    conversation_id: str
    agent: str
    workspace_root: str
    project_name: str
    title: Optional[str] = None
    summary: Optional[str] = None
    ai_summary: Optional[str] = None
    relevant_files: list[str] = Field(default_factory=list)
    attached_folders: list[str] = Field(default_factory=list)
    captured_files: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    last_hook_event: Optional[str] = None

    class Config:
        from_attributes = True


class CommitResponse(BaseModel):
    """Response schema for a recorded commit."""

    commit_hash: str
    repo_path: str
    branch: str
    author: str
    message: str
    committed_at: datetime
    changed_files: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class LinkResponse(BaseModel):
    """Response schema for a conversation-commit link."""

    conversation_id: str
    commit_hash: str
    matched_files: list[str] = Field(default_factory=list)
    confidence: float
    status: LinkStatus
    created_at: datetime

    class Config:
        from_attributes = True


# ===== Composites =====


class LinkedCommitResponse(BaseModel):
    link: LinkResponse
    commit: Optional[CommitResponse] = None


class LinkedConversationResponse(BaseModel):
    link: LinkResponse
    conversation: Optional[ConversationResponse] = None


def linked_commit(item: LinkedCommit) -> dict[str, Any]:
    return LinkedCommitResponse(
        link=LinkResponse.model_validate(item.link),
        commit=CommitResponse.model_validate(item.commit) if item.commit else None,
    ).model_dump(mode="json")


def linked_conversation(item: LinkedConversation) -> dict[str, Any]:
    return LinkedConversationResponse(
        link=LinkResponse.model_validate(item.link),
        conversation=(
            ConversationResponse.model_validate(item.conversation)
            if item.conversation
            else None
        ),
    ).model_dump(mode="json")


def file_context(context: FileContext) -> dict[str, Any]:
    """Serialize a file context query result."""
    return {
        "file_path": context.file_path,
        "conversations": [
            {
                "conversation": ConversationResponse.model_validate(c.conversation).model_dump(
                    mode="json"
                ),
                "relevance": c.relevance,
                "keyword_matches": [
                    {"keyword": m.keyword, "count": m.count, "excerpts": m.excerpts}
                    for m in c.keyword_matches
                ],
            }
            for c in context.conversations
        ],
        "commits": [
            {
                "commit": CommitResponse.model_validate(c.commit).model_dump(mode="json"),
                "relevance": c.relevance,
            }
            for c in context.commits
        ],
    }

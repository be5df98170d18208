"""
Conversation repository.
"""

from datetime import datetime
from pathlib import PurePath
from typing import List, Optional

from sqlalchemy import Text, cast, or_
from sqlalchemy.orm import Session

from agentlinks.db.merge import CONVERSATION_MERGE_POLICY, merge_fields, row_values
from agentlinks.db.repositories.base import BaseRepository
from agentlinks.models.db import Conversation
from agentlinks.models.records import ConversationUpsert
from agentlinks.utils.paths import escape_like
from agentlinks.utils.timeutils import utc_now


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for Conversation model."""

    def __init__(self, session: Session):
        super().__init__(Conversation, session)

    def upsert(self, data: ConversationUpsert) -> Conversation:
        """
        Insert or merge a conversation.

        Text fields coalesce, captured files union, updated_at only moves
        forward and created_at is set once. Everything else is replaced
        when provided.

        Args:
            data: Partial conversation write

        Returns:
            The stored conversation after the merge
        """
        now = utc_now()
        incoming = data.values()
        incoming["updated_at"] = data.updated_at or now
        incoming["created_at"] = now

        existing = self.get(data.conversation_id)
        merged = merge_fields(
            row_values(existing, CONVERSATION_MERGE_POLICY) if existing else None,
            incoming,
            CONVERSATION_MERGE_POLICY,
        )

        if existing is not None:
            for name, value in merged.items():
                setattr(existing, name, value)
            self.session.flush()
            return existing

        workspace_root = merged["workspace_root"] or ""
        merged["workspace_root"] = workspace_root
        merged["project_name"] = merged["project_name"] or (
            PurePath(workspace_root).name if workspace_root else ""
        )
        merged["relevant_files"] = merged["relevant_files"] or []
        merged["attached_folders"] = merged["attached_folders"] or []
        return self.add(Conversation(conversation_id=data.conversation_id, **merged))

    def find(
        self,
        workspace_root: Optional[str] = None,
        project_name: Optional[str] = None,
        file: Optional[str] = None,
        agent: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Conversation]:
        """
        Find conversations matching all given filters.

        Args:
            workspace_root: Exact workspace root
            project_name: Exact project name
            file: Substring of a relevant or captured file path
            agent: Source-system tag
            limit: Maximum number of results

        Returns:
            Conversations ordered by most recently updated first
        """
        query = self.session.query(Conversation)
        if workspace_root:
            query = query.filter(Conversation.workspace_root == workspace_root)
        if project_name:
            query = query.filter(Conversation.project_name == project_name)
        if file:
            pattern = f"%{escape_like(file)}%"
            query = query.filter(
                or_(
                    cast(Conversation.relevant_files, Text).like(pattern, escape="\\"),
                    cast(Conversation.captured_files, Text).like(pattern, escape="\\"),
                )
            )
        if agent:
            query = query.filter(Conversation.agent == agent)

        query = query.order_by(Conversation.updated_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def updated_between(self, start: datetime, end: datetime) -> List[Conversation]:
        """
        Conversations whose last update falls inside [start, end].

        Returns:
            Conversations ordered by most recently updated first
        """
        return (
            self.session.query(Conversation)
            .filter(Conversation.updated_at >= start, Conversation.updated_at <= end)
            .order_by(Conversation.updated_at.desc())
            .all()
        )

    def mentioning(
        self, fragment: str, keywords: Optional[List[str]] = None
    ) -> List[Conversation]:
        """
        Coarse prefilter for the file-context query.

        Matches conversations whose file lists contain ``fragment``
        case-insensitively and, when keywords are given, whose search text
        contains at least one of them.
        """
        pattern = f"%{escape_like(fragment.lower())}%"
        query = self.session.query(Conversation).filter(
            or_(
                cast(Conversation.relevant_files, Text).ilike(pattern, escape="\\"),
                cast(Conversation.captured_files, Text).ilike(pattern, escape="\\"),
            )
        )
        if keywords:
            query = query.filter(
                or_(
                    *[
                        Conversation.searchable_text.ilike(
                            f"%{escape_like(keyword)}%", escape="\\"
                        )
                        for keyword in keywords
                    ]
                )
            )
        return query.order_by(Conversation.updated_at.desc()).all()

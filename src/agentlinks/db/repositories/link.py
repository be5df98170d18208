"""
Link repository.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from agentlinks.db.merge import LINK_MERGE_POLICY, merge_fields, row_values
from agentlinks.db.repositories.base import BaseRepository
from agentlinks.models.db import Commit, Conversation, Link
from agentlinks.models.records import LinkedCommit, LinkedConversation, LinkInput
from agentlinks.utils.timeutils import utc_now


class LinkRepository(BaseRepository[Link]):
    """Repository for Link model."""

    def __init__(self, session: Session):
        super().__init__(Link, session)

    def get_pair(self, conversation_id: str, commit_hash: str) -> Optional[Link]:
        """
        Get the link between a conversation and a commit.

        Returns:
            Link instance or None
        """
        return (
            self.session.query(Link)
            .filter(
                Link.conversation_id == conversation_id,
                Link.commit_hash == commit_hash,
            )
            .first()
        )

    def upsert(self, data: LinkInput) -> Link:
        """
        Insert a link or replace matched files, confidence and status.

        There is at most one link per (conversation, commit) pair and no
        history of earlier values.
        """
        incoming = data.values()
        incoming["created_at"] = utc_now()

        existing = self.get_pair(data.conversation_id, data.commit_hash)
        merged = merge_fields(
            row_values(existing, LINK_MERGE_POLICY) if existing else None,
            incoming,
            LINK_MERGE_POLICY,
        )

        if existing is not None:
            for name, value in merged.items():
                setattr(existing, name, value)
            self.session.flush()
            return existing

        return self.add(
            Link(
                conversation_id=data.conversation_id,
                commit_hash=data.commit_hash,
                **merged,
            )
        )

    def for_conversation(self, conversation_id: str) -> List[LinkedCommit]:
        """
        Links of a conversation joined with their commits.

        Returns:
            Results ordered by commit date, newest first
        """
        rows = (
            self.session.query(Link, Commit)
            .outerjoin(Commit, Commit.commit_hash == Link.commit_hash)
            .filter(Link.conversation_id == conversation_id)
            .order_by(Commit.committed_at.desc(), Link.created_at.desc())
            .all()
        )
        return [LinkedCommit(link=link, commit=commit) for link, commit in rows]

    def for_commit(self, commit_hash: str) -> List[LinkedConversation]:
        """
        Links of a commit joined with their conversations.

        Returns:
            Results ordered by confidence, highest first
        """
        rows = (
            self.session.query(Link, Conversation)
            .outerjoin(Conversation, Conversation.conversation_id == Link.conversation_id)
            .filter(Link.commit_hash == commit_hash)
            .order_by(Link.confidence.desc(), Link.created_at.asc())
            .all()
        )
        return [
            LinkedConversation(link=link, conversation=conversation)
            for link, conversation in rows
        ]

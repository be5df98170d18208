"""
Commit repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Text, cast
from sqlalchemy.orm import Session

from agentlinks.db.merge import COMMIT_MERGE_POLICY, merge_fields, row_values
from agentlinks.db.repositories.base import BaseRepository
from agentlinks.models.db import Commit
from agentlinks.models.records import CommitInput
from agentlinks.utils.paths import escape_like
from agentlinks.utils.timeutils import utc_now


class CommitRepository(BaseRepository[Commit]):
    """Repository for Commit model."""

    def __init__(self, session: Session):
        super().__init__(Commit, session)

    def upsert(self, data: CommitInput) -> Commit:
        """
        Insert a commit or replace its metadata, keeping created_at.

        Args:
            data: Commit metadata

        Returns:
            The stored commit
        """
        incoming = data.values()
        incoming["created_at"] = utc_now()

        existing = self.get(data.commit_hash)
        merged = merge_fields(
            row_values(existing, COMMIT_MERGE_POLICY) if existing else None,
            incoming,
            COMMIT_MERGE_POLICY,
        )

        if existing is not None:
            for name, value in merged.items():
                setattr(existing, name, value)
            self.session.flush()
            return existing

        return self.add(Commit(commit_hash=data.commit_hash, **merged))

    def find(
        self,
        repo_path: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Commit]:
        """
        Find commits by repository and date range (both bounds inclusive).

        Returns:
            Commits ordered by commit date, newest first
        """
        query = self.session.query(Commit)
        if repo_path:
            query = query.filter(Commit.repo_path == repo_path)
        if since is not None:
            query = query.filter(Commit.committed_at >= since)
        if until is not None:
            query = query.filter(Commit.committed_at <= until)

        query = query.order_by(Commit.committed_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def mentioning(self, fragment: str) -> List[Commit]:
        """Commits whose changed files contain ``fragment`` case-insensitively."""
        pattern = f"%{escape_like(fragment.lower())}%"
        return (
            self.session.query(Commit)
            .filter(cast(Commit.changed_files, Text).ilike(pattern, escape="\\"))
            .order_by(Commit.committed_at.desc())
            .all()
        )

"""
Repository layer for link store operations.

Repositories work inside a caller-provided session; transactions are owned
by ``agentlinks.db.connection.LinkStore``.
"""

from agentlinks.db.repositories.base import BaseRepository
from agentlinks.db.repositories.commit import CommitRepository
from agentlinks.db.repositories.conversation import ConversationRepository
from agentlinks.db.repositories.link import LinkRepository

__all__ = [
    "BaseRepository",
    "CommitRepository",
    "ConversationRepository",
    "LinkRepository",
]

"""
Reader registry for dispatching conversation ids and agent names.

The registry holds one reader per source format and routes a conversation
id to the reader that issued it, so callers (hooks, the CLI) never need to
know which assistant produced a conversation.
"""

import logging
from typing import Iterable, Optional

from agentlinks.models.canonical import (
    AgentSearchResult,
    CanonicalConversation,
    ConversationSummary,
)
from agentlinks.readers.base import DEFAULT_SEARCH_LIMIT, ConversationReader

logger = logging.getLogger(__name__)


class ReaderRegistry:
    """
    Registry of conversation readers.

    Example:
        >>> from agentlinks.readers.claude_code import ClaudeCodeReader
        >>> registry = ReaderRegistry()
        >>> registry.register(ClaudeCodeReader())
        >>> registry.get_conversation("claude-code:abc123")
    """

    def __init__(self) -> None:
        """Initialize an empty reader registry."""
        self._readers: list[ConversationReader] = []

    def register(self, reader: ConversationReader) -> None:
        """
        Register a reader.

        Args:
            reader: Reader implementing the ConversationReader protocol

        Raises:
            ValueError: If a reader for the same agent is already registered
        """
        if any(r.agent == reader.agent for r in self._readers):
            raise ValueError(f"Reader already registered for agent: {reader.agent}")
        self._readers.append(reader)
        logger.debug(f"Registered reader: {type(reader).__name__} ({reader.agent})")

    @property
    def readers(self) -> list[ConversationReader]:
        return list(self._readers)

    @property
    def agents(self) -> list[str]:
        return [r.agent for r in self._readers]

    def available_readers(self) -> list[ConversationReader]:
        """Readers whose storage exists on this machine."""
        available = []
        for reader in self._readers:
            try:
                if reader.is_available():
                    available.append(reader)
            except OSError as e:
                logger.debug("Availability check failed for %s: %s", reader.agent, e)
        return available

    def reader_for_agent(self, agent: str) -> Optional[ConversationReader]:
        return next((r for r in self._readers if r.agent == agent), None)

    def reader_for(self, conversation_id: str) -> Optional[ConversationReader]:
        """
        Reader that issued ``conversation_id``.

        Readers with an id prefix are matched first; a reader issuing bare
        ids (Cursor) only claims ids no prefixed reader recognises.
        """
        prefixed = [r for r in self._readers if r.metadata.id_prefix]
        for reader in prefixed:
            if reader.owns(conversation_id):
                return reader
        for reader in self._readers:
            if not reader.metadata.id_prefix and reader.owns(conversation_id):
                return reader
        return None

    def get_conversation(self, conversation_id: str) -> Optional[CanonicalConversation]:
        reader = self.reader_for(conversation_id)
        if reader is None:
            logger.debug("No reader recognises conversation id %s", conversation_id)
            return None
        return reader.get_conversation(conversation_id)

    def get_conversation_summary(
        self,
        conversation_id: str,
        agent: Optional[str] = None,
        include_files: bool = True,
    ) -> Optional[ConversationSummary]:
        """
        Summary of a conversation from whichever reader owns it.

        Args:
            conversation_id: Conversation id as issued by a reader
            agent: Agent hint; used instead of id-based dispatch when given
            include_files: Whether to collect file and folder lists
        """
        reader = self.reader_for_agent(agent) if agent else None
        if reader is None:
            reader = self.reader_for(conversation_id)
        if reader is None or not reader.is_available():
            return None
        return reader.get_conversation_summary(conversation_id, include_files=include_files)

    def search(
        self,
        query: str,
        agents: Optional[Iterable[str]] = None,
        project_path: Optional[str] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> AgentSearchResult:
        """
        Search every available reader (or the named ones).

        Returns:
            Matches across agents, newest first, capped at ``limit``, with
            the number of matches per agent
        """
        wanted = set(agents) if agents else None
        result = AgentSearchResult()
        for reader in self.available_readers():
            if wanted is not None and reader.agent not in wanted:
                continue
            found = reader.search_conversations(query, project_path=project_path, limit=limit)
            result.by_agent[reader.agent] = len(found)
            result.conversations.extend(found)

        result.conversations.sort(key=lambda c: c.updated_at, reverse=True)
        result.conversations = result.conversations[:limit]
        return result


# Global default registry instance
_default_registry: Optional[ReaderRegistry] = None


def get_default_registry() -> ReaderRegistry:
    """
    Get the default reader registry with every built-in reader registered.

    Returns:
        ReaderRegistry (lazily initialized on first call)
    """
    global _default_registry

    if _default_registry is None:
        from agentlinks.readers.claude_code import ClaudeCodeReader
        from agentlinks.readers.cline import create_cline_family_readers
        from agentlinks.readers.copilot import CopilotChatReader
        from agentlinks.readers.cursor import CursorReader
        from agentlinks.readers.windsurf import WindsurfReader

        _default_registry = ReaderRegistry()
        _default_registry.register(CursorReader())
        _default_registry.register(ClaudeCodeReader())
        for reader in create_cline_family_readers():
            _default_registry.register(reader)
        _default_registry.register(CopilotChatReader())
        _default_registry.register(WindsurfReader())

    return _default_registry


def reset_default_registry() -> None:
    """Forget the default registry (it is rebuilt on next use)."""
    global _default_registry
    _default_registry = None

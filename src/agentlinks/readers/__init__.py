"""
Conversation readers for AI coding assistants.

Each reader absorbs one assistant's on-disk format behind the
ConversationReader contract; the registry dispatches ids to readers.
"""

from agentlinks.readers.base import (
    BaseConversationReader,
    ConversationReader,
    ReaderError,
    ReaderFormatError,
    ReaderMetadata,
)
from agentlinks.readers.claude_code import ClaudeCodeReader
from agentlinks.readers.cline import ClineReader, create_cline_family_readers
from agentlinks.readers.copilot import CopilotChatReader
from agentlinks.readers.cursor import CursorReader
from agentlinks.readers.registry import ReaderRegistry, get_default_registry
from agentlinks.readers.windsurf import WindsurfReader

__all__ = [
    "BaseConversationReader",
    "ConversationReader",
    "ReaderError",
    "ReaderFormatError",
    "ReaderMetadata",
    "ClaudeCodeReader",
    "ClineReader",
    "create_cline_family_readers",
    "CopilotChatReader",
    "CursorReader",
    "WindsurfReader",
    "ReaderRegistry",
    "get_default_registry",
]

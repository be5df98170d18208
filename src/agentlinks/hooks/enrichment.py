"""
Time-boxed conversation summary lookups for session-end events.

A hook must return quickly even when an assistant's storage is locked or
huge, so the reader call runs on a daemon thread and is abandoned after
``settings.enrichment_timeout_seconds``. An abandoned lookup does not keep
the hook process alive. Any failure yields None and the handler continues
with partial data.
"""

import logging
import threading
from typing import Any, Optional

from agentlinks.config import settings
from agentlinks.models.canonical import ConversationSummary
from agentlinks.readers.registry import ReaderRegistry, get_default_registry

logger = logging.getLogger(__name__)


def fetch_summary(
    conversation_id: str,
    agent: Optional[str] = None,
    registry: Optional[ReaderRegistry] = None,
    timeout_seconds: Optional[float] = None,
) -> Optional[ConversationSummary]:
    """
    Fetch a conversation summary from whichever reader owns the id.

    Args:
        conversation_id: Conversation id as stored by the hook
        agent: Agent hint for reader dispatch
        registry: Reader registry (defaults to the global one)
        timeout_seconds: Time box (defaults to settings)

    Returns:
        ConversationSummary, or None on timeout, error or unknown id
    """
    registry = registry or get_default_registry()
    timeout_seconds = (
        timeout_seconds
        if timeout_seconds is not None
        else settings.enrichment_timeout_seconds
    )

    outcome: dict[str, Any] = {}

    def _lookup() -> None:
        try:
            outcome["summary"] = registry.get_conversation_summary(
                conversation_id, agent=agent, include_files=True
            )
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=_lookup, daemon=True, name="summary-lookup")
    worker.start()
    worker.join(timeout_seconds)

    if worker.is_alive():
        logger.debug(
            "Summary lookup for %s timed out after %ss", conversation_id, timeout_seconds
        )
        return None
    if "error" in outcome:
        logger.debug("Summary lookup for %s failed: %s", conversation_id, outcome["error"])
        return None
    return outcome.get("summary")

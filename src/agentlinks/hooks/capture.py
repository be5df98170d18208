"""
Hook event dispatch.

Maps an agent's hook event name to a handler:

| agent       | file touched  | session end                       |
|-------------|---------------|-----------------------------------|
| cursor      | afterFileEdit | stop                              |
| claude-code | PostToolUse   | Stop, SubagentStop, SessionEnd    |

Agents without a table of their own accept every name above. Unknown
event names are successful no-ops.
"""

import enum
import io
import logging
import os
import select
import sys
from typing import Optional, TextIO

from agentlinks.config import settings
from agentlinks.db.connection import LinkStore
from agentlinks.hooks.handlers import HookResult, handle_file_touched, handle_session_end
from agentlinks.hooks.payload import parse_payload
from agentlinks.readers.base import ReaderError
from agentlinks.readers.registry import ReaderRegistry, get_default_registry

logger = logging.getLogger(__name__)


class EventKind(str, enum.Enum):
    FILE_TOUCHED = "file-touched"
    SESSION_END = "session-end"


EVENT_KINDS: dict[str, dict[str, EventKind]] = {
    "cursor": {
        "afterFileEdit": EventKind.FILE_TOUCHED,
        "stop": EventKind.SESSION_END,
    },
    "claude-code": {
        "PostToolUse": EventKind.FILE_TOUCHED,
        "Stop": EventKind.SESSION_END,
        "SubagentStop": EventKind.SESSION_END,
        "SessionEnd": EventKind.SESSION_END,
    },
}

ALL_EVENT_KINDS: dict[str, EventKind] = {
    name: kind for table in EVENT_KINDS.values() for name, kind in table.items()
}


def event_kind(agent: str, event: str) -> Optional[EventKind]:
    """Handler kind for an agent's event, or None if the event is not handled."""
    return EVENT_KINDS.get(agent, ALL_EVENT_KINDS).get(event)


STDIN_CHUNK_SIZE = 65536


def _read_until_idle(fd: int, timeout_seconds: float, encoding: str) -> str:
    """Read ``fd`` until EOF or until no data arrives for ``timeout_seconds``."""
    chunks = []
    while True:
        ready, _, _ = select.select([fd], [], [], timeout_seconds)
        if not ready:
            logger.debug("Hook stdin idle for %ss; using what was read", timeout_seconds)
            break
        chunk = os.read(fd, STDIN_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks).decode(encoding, errors="replace")


def read_stdin(
    stream: Optional[TextIO] = None,
    timeout_seconds: Optional[float] = None,
) -> str:
    """
    Hook payload from stdin.

    Empty when stdin is an interactive terminal. A pipe the caller never
    closes is read until it stays idle for ``timeout_seconds`` (defaults to
    settings), so a misbehaving trigger script cannot hang the hook.
    """
    stream = stream if stream is not None else sys.stdin
    if stream is None:
        return ""
    if timeout_seconds is None:
        timeout_seconds = settings.hook_stdin_timeout_seconds
    try:
        if stream.isatty():
            return ""
        try:
            fd = stream.fileno()
        except io.UnsupportedOperation:
            # In-memory stream
            return stream.read()
        if sys.platform == "win32":
            # select() only accepts sockets on Windows
            return stream.read()
        encoding = getattr(stream, "encoding", None) or "utf-8"
        return _read_until_idle(fd, timeout_seconds, encoding)
    except (OSError, ValueError) as e:
        logger.debug("Could not read hook payload from stdin: %s", e)
        return ""


def latest_conversation_id(
    agent: str,
    project_path: str,
    registry: Optional[ReaderRegistry] = None,
) -> Optional[str]:
    """Most recently updated conversation of ``agent`` in ``project_path``."""
    registry = registry or get_default_registry()
    reader = registry.reader_for_agent(agent)
    if reader is None:
        return None
    try:
        if not reader.is_available():
            return None
        conversations = reader.get_conversations_by_project(project_path)
    except (ReaderError, OSError) as e:
        logger.debug("Could not list %s conversations for %s: %s", agent, project_path, e)
        return None
    return conversations[0].conversation_id if conversations else None


def capture_hook(
    store: LinkStore,
    event: Optional[str],
    agent: str = "cursor",
    raw_payload: Optional[str] = None,
    registry: Optional[ReaderRegistry] = None,
) -> HookResult:
    """
    Handle one hook invocation.

    Args:
        store: Open link store
        event: Event name from the command line (falls back to the
            payload's ``hook_event_name``)
        agent: Agent that fired the hook
        raw_payload: JSON payload text (may be empty or malformed)
        registry: Reader registry for summary lookups

    Returns:
        HookResult of the handler, or a successful no-op for unknown events
    """
    payload = parse_payload(raw_payload, event)
    name = payload.hook_event_name
    if not name:
        return HookResult(True, "No event name given")

    kind = event_kind(agent, name)
    if kind is None:
        logger.debug("Ignoring %s event %s", agent, name)
        return HookResult(True, f"Ignored unknown event: {name}")

    conversation_id = payload.conversation_id_for(agent)

    if kind == EventKind.FILE_TOUCHED:
        return handle_file_touched(
            store,
            conversation_id,
            payload.touched_files,
            agent=agent,
            workspace_root=payload.workspace_hint,
            event=name,
        )

    if conversation_id is None and payload.workspace_hint is None:
        # Bare session-end: attribute it to the newest conversation here
        conversation_id = latest_conversation_id(agent, os.getcwd(), registry)

    return handle_session_end(
        store,
        conversation_id,
        agent=agent,
        workspace_root=payload.workspace_hint,
        event=name,
        registry=registry,
    )

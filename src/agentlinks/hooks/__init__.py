"""Hook capture pipeline: turns editor, agent and git hook events into link store writes."""

from agentlinks.hooks.capture import capture_hook, event_kind
from agentlinks.hooks.handlers import (
    HookResult,
    handle_file_touched,
    handle_session_end,
    link_manually,
    record_commit,
)
from agentlinks.hooks.payload import HookPayload, parse_payload

__all__ = [
    "HookPayload",
    "HookResult",
    "capture_hook",
    "event_kind",
    "handle_file_touched",
    "handle_session_end",
    "link_manually",
    "parse_payload",
    "record_commit",
]

"""
Hook payload schema.

Editors and agents deliver hook events as a JSON object on stdin. Three
shapes are accepted and normalized into one ``HookPayload``:

- Cursor: ``conversation_id``, ``file_path``, ``workspace_roots``,
  ``hook_event_name``
- Claude Code: ``session_id``, ``cwd``, ``tool_name``, ``tool_input``,
  ``transcript_path``, ``hook_event_name``
- legacy: ``conversationId``, ``files``, ``workspaceRoot``

Unknown keys are kept (``extra="allow"``) so newer agent versions never
break capture.
"""

import logging
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from agentlinks.readers.utils import files_from_tool_input, unique

logger = logging.getLogger(__name__)

CLAUDE_CODE_ID_PREFIX = "claude-code:"


class HookPayload(BaseModel):
    """Normalized hook event payload."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    hook_event_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("hook_event_name", "event"),
        description="Event name as reported by the agent",
    )

    conversation_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("conversation_id", "conversationId"),
    )

    session_id: Optional[str] = Field(None, description="Claude Code session id")

    file_path: Optional[str] = Field(None, description="File edited (Cursor afterFileEdit)")

    files: list[str] = Field(default_factory=list, description="Files edited (legacy shape)")

    workspace_roots: list[str] = Field(default_factory=list)

    workspace_root: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("workspace_root", "workspaceRoot"),
    )

    cwd: Optional[str] = None

    tool_name: Optional[str] = None

    tool_input: dict[str, Any] = Field(default_factory=dict)

    transcript_path: Optional[str] = None

    @field_validator("files", "workspace_roots", mode="before")
    @classmethod
    def drop_non_strings(cls, value: Any) -> list[str]:
        """Keep only non-empty string entries; a bare string becomes a list."""
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ValueError(f"Expected a list of paths, got {type(value).__name__}")
        return [v for v in value if isinstance(v, str) and v]

    @field_validator("tool_input", mode="before")
    @classmethod
    def tool_input_as_dict(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    def conversation_id_for(self, agent: str) -> Optional[str]:
        """
        Conversation id under which this event is stored.

        Claude Code identifies a conversation by its session; the id is
        prefixed the way the Claude Code reader issues it.
        """
        if self.conversation_id:
            return self.conversation_id
        if self.session_id:
            if agent == "claude-code" and not self.session_id.startswith(CLAUDE_CODE_ID_PREFIX):
                return f"{CLAUDE_CODE_ID_PREFIX}{self.session_id}"
            return self.session_id
        return None

    @property
    def workspace_hint(self) -> Optional[str]:
        """Workspace root the agent reported, if any."""
        if self.workspace_roots:
            return self.workspace_roots[0]
        return self.workspace_root or self.cwd or None

    @property
    def touched_files(self) -> list[str]:
        """Every file this event reports as edited."""
        candidates: list[str] = []
        if self.file_path:
            candidates.append(self.file_path)
        candidates.extend(self.files)
        candidates.extend(files_from_tool_input(self.tool_input))
        return unique(candidates)


def parse_payload(raw: Optional[str], event: Optional[str] = None) -> HookPayload:
    """
    Parse a hook payload, treating anything unparsable as empty.

    Args:
        raw: Raw stdin text (may be empty)
        event: Event name given on the command line; overrides the payload's

    Returns:
        HookPayload (empty when ``raw`` is blank or malformed)
    """
    payload = HookPayload()
    if raw and raw.strip():
        try:
            payload = HookPayload.model_validate_json(raw)
        except ValidationError as e:
            logger.debug("Ignoring malformed hook payload: %s", e)
    if event:
        payload.hook_event_name = event
    return payload

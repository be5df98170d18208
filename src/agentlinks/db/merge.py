"""
Per-field merge policies for link store upserts.

Every upsert is a read-modify-write: the stored row (if any) is merged with
the incoming values field by field according to a policy table, so the
rules for each record type are declared in one place instead of being
spread across hand-written SQL.
"""

import enum
from datetime import datetime
from typing import Any, Mapping, Optional

from agentlinks.utils.timeutils import ensure_utc


class MergePolicy(str, enum.Enum):
    """How an incoming value combines with the stored one."""

    REPLACE = "replace"  # Incoming wins when provided (not None)
    COALESCE = "coalesce"  # Incoming wins when non-blank; never erases
    UNION = "union"  # Ordered set union of lists
    KEEP_EXISTING = "keep_existing"  # Set once, never changed
    LATEST = "latest"  # Later of two datetimes


CONVERSATION_MERGE_POLICY: dict[str, MergePolicy] = {
    "agent": MergePolicy.REPLACE,
    "workspace_root": MergePolicy.REPLACE,
    "project_name": MergePolicy.REPLACE,
    "title": MergePolicy.COALESCE,
    "summary": MergePolicy.COALESCE,
    "ai_summary": MergePolicy.COALESCE,
    "searchable_text": MergePolicy.COALESCE,
    "relevant_files": MergePolicy.REPLACE,
    "attached_folders": MergePolicy.REPLACE,
    "captured_files": MergePolicy.UNION,
    "last_hook_event": MergePolicy.REPLACE,
    "created_at": MergePolicy.KEEP_EXISTING,
    "updated_at": MergePolicy.LATEST,
}

COMMIT_MERGE_POLICY: dict[str, MergePolicy] = {
    "repo_path": MergePolicy.REPLACE,
    "branch": MergePolicy.REPLACE,
    "author": MergePolicy.REPLACE,
    "message": MergePolicy.REPLACE,
    "committed_at": MergePolicy.REPLACE,
    "changed_files": MergePolicy.REPLACE,
    "created_at": MergePolicy.KEEP_EXISTING,
}

LINK_MERGE_POLICY: dict[str, MergePolicy] = {
    "matched_files": MergePolicy.REPLACE,
    "confidence": MergePolicy.REPLACE,
    "status": MergePolicy.REPLACE,
    "created_at": MergePolicy.KEEP_EXISTING,
}


def _union(existing: Optional[list], incoming: Optional[list]) -> list:
    merged: dict[Any, None] = {}
    for item in [*(existing or []), *(incoming or [])]:
        merged.setdefault(item, None)
    return list(merged)


def _latest(existing: Optional[datetime], incoming: Optional[datetime]):
    if existing is None:
        return incoming
    if incoming is None:
        return existing
    return max(ensure_utc(existing), ensure_utc(incoming))


def merge_value(policy: MergePolicy, existing: Any, incoming: Any) -> Any:
    """
    Combine one stored value with one incoming value.

    Args:
        policy: Merge policy for the field
        existing: Stored value (None when the row is new)
        incoming: Value carried by the write (None when not provided)

    Returns:
        The value to store
    """
    if policy is MergePolicy.REPLACE:
        return existing if incoming is None else incoming
    if policy is MergePolicy.COALESCE:
        if incoming is None or (isinstance(incoming, str) and not incoming.strip()):
            return existing
        return incoming
    if policy is MergePolicy.UNION:
        return _union(existing, incoming)
    if policy is MergePolicy.KEEP_EXISTING:
        return incoming if existing is None else existing
    if policy is MergePolicy.LATEST:
        return _latest(existing, incoming)
    raise ValueError(f"Unknown merge policy: {policy}")


def merge_fields(
    existing: Optional[Mapping[str, Any]],
    incoming: Mapping[str, Any],
    policies: Mapping[str, MergePolicy],
) -> dict[str, Any]:
    """
    Merge a full set of fields.

    Fields without a policy are ignored. When ``existing`` is None the row is
    new and every policy degrades to "take the incoming value".

    Returns:
        Dict of merged values for every field named in ``policies``
    """
    merged: dict[str, Any] = {}
    for field_name, policy in policies.items():
        current = existing.get(field_name) if existing is not None else None
        merged[field_name] = merge_value(policy, current, incoming.get(field_name))
    return merged


def row_values(row: Any, policies: Mapping[str, MergePolicy]) -> dict[str, Any]:
    """Read the policy-governed attributes of an ORM row into a dict."""
    return {name: getattr(row, name) for name in policies}

"""
Hook event handlers.

Each handler turns one hook event into link store writes. Handlers degrade
rather than fail: a missing workspace or unreachable summary source leaves
the stored record partial, never absent. Every write is its own store
transaction.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from agentlinks.db.connection import LinkStore
from agentlinks.hooks.enrichment import fetch_summary
from agentlinks.hooks.git import read_commit_metadata
from agentlinks.hooks.workspace import (
    project_name,
    relative_to_workspace,
    resolve_workspace_root,
    workspace_from_context,
)
from agentlinks.models.db import LinkStatus
from agentlinks.models.records import ConversationUpsert, LinkInput
from agentlinks.readers.registry import ReaderRegistry
from agentlinks.readers.utils import unique

logger = logging.getLogger(__name__)

SHORT_HASH_LENGTH = 7
MANUAL_CONFIDENCE = 1.0


@dataclass
class HookResult:
    """Outcome of a hook invocation, printed by the CLI."""

    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)


def handle_file_touched(
    store: LinkStore,
    conversation_id: Optional[str],
    file_paths: Union[str, Iterable[str], None],
    agent: str,
    workspace_root: Optional[str] = None,
    event: str = "afterFileEdit",
) -> HookResult:
    """
    Record that a conversation edited one or more files.

    Args:
        store: Open link store
        conversation_id: Conversation the edit belongs to
        file_paths: Edited file(s), absolute or workspace-relative
        agent: Agent tag stored on the conversation
        workspace_root: Root the agent reported, if any
        event: Hook event name recorded as ``last_hook_event``

    Returns:
        HookResult; a payload without conversation or files is a no-op
    """
    if isinstance(file_paths, str):
        file_paths = [file_paths]
    files = unique(file_paths or [])

    if not conversation_id or not files:
        return HookResult(True, "No files or conversation to capture")

    if not workspace_root:
        # Without a reported root, relative paths are relative to cwd
        files = [os.path.abspath(f) for f in files]

    root = resolve_workspace_root(workspace_root, files[0])
    if root is None:
        root = os.getcwd()
        logger.debug("No workspace for %s; using cwd %s", conversation_id, root)

    captured = unique(relative_to_workspace(f, root) for f in files)
    store.upsert_conversation(
        ConversationUpsert(
            conversation_id=conversation_id,
            agent=agent,
            workspace_root=root,
            project_name=project_name(root),
            captured_files=captured,
            last_hook_event=event,
        )
    )
    logger.debug("Captured %s for %s", captured, conversation_id)

    noun = f"file {captured[0]}" if len(captured) == 1 else f"{len(captured)} file(s)"
    return HookResult(
        True,
        f"Captured {noun} for conversation {conversation_id}",
        {"conversation_id": conversation_id, "captured_files": captured},
    )


def _stored_workspace(store: LinkStore, conversation_id: str) -> Optional[str]:
    existing = store.get_conversation(conversation_id)
    if existing is not None and existing.workspace_root:
        return existing.workspace_root
    return None


def handle_session_end(
    store: LinkStore,
    conversation_id: Optional[str],
    agent: str,
    workspace_root: Optional[str] = None,
    event: str = "stop",
    registry: Optional[ReaderRegistry] = None,
) -> HookResult:
    """
    Record a finished conversation with its title, summary and file lists.

    The summary comes from the owning reader and is time-boxed. Without one,
    only the event and workspace are written; stored titles, summaries and
    file lists stay as they were.

    Args:
        store: Open link store
        conversation_id: Conversation that ended
        agent: Agent tag stored on the conversation
        workspace_root: Root the agent reported, if any
        event: Hook event name recorded as ``last_hook_event``
        registry: Reader registry for the summary lookup (defaults to global)
    """
    if not conversation_id:
        return HookResult(True, "No conversation id in payload")

    summary = fetch_summary(conversation_id, agent=agent, registry=registry)
    folders = summary.attached_folders if summary else []
    files = summary.relevant_files if summary else []

    root = workspace_root or workspace_from_context(folders, files)
    if root is None:
        root = _stored_workspace(store, conversation_id) or os.getcwd()

    title = summary.title if summary else None
    ai_summary = summary.ai_summary if summary else None
    searchable_text = " ".join(part for part in (title, ai_summary) if part) or None

    relevant_files = unique(relative_to_workspace(f, root) for f in files)
    attached_folders = unique(relative_to_workspace(f, root) for f in folders)

    store.upsert_conversation(
        ConversationUpsert(
            conversation_id=conversation_id,
            agent=agent,
            workspace_root=root,
            project_name=project_name(root),
            title=title,
            ai_summary=ai_summary,
            searchable_text=searchable_text,
            relevant_files=relevant_files if summary else None,
            attached_folders=attached_folders if summary else None,
            last_hook_event=event,
        )
    )

    if summary is None:
        logger.debug("No summary available for %s; stored partial record", conversation_id)

    return HookResult(
        True,
        f"Captured session end for conversation {conversation_id}",
        {
            "conversation_id": conversation_id,
            "title": title,
            "enriched": summary is not None,
            "relevant_files": len(relevant_files),
            "attached_folders": len(attached_folders),
        },
    )


def record_commit(
    store: LinkStore,
    repo_path: Optional[str] = None,
    commit_hash: Optional[str] = None,
    branch: Optional[str] = None,
) -> HookResult:
    """
    Record a commit and auto-link it to recent conversations.

    Args:
        store: Open link store
        repo_path: Directory inside the repository (defaults to cwd)
        commit_hash: Commit to record (defaults to HEAD)
        branch: Branch to record (defaults to the current branch)

    Raises:
        CommitMetadataError: If the commit cannot be read; nothing is written
    """
    commit = read_commit_metadata(repo_path or os.getcwd(), commit_hash, branch)
    store.upsert_commit(commit)
    short = commit.commit_hash[:SHORT_HASH_LENGTH]

    data: dict[str, Any] = {
        "commit_hash": commit.commit_hash,
        "branch": commit.branch,
        "changed_files": commit.changed_files,
        "candidates": [],
    }
    if not commit.changed_files:
        return HookResult(True, f"Commit {short} recorded (no changed files)", data)

    scores = store.auto_link_commit(commit.commit_hash)
    data["candidates"] = [
        {
            "conversation_id": s.conversation_id,
            "score": round(s.score, 3),
            "matched_files": s.matched_files,
        }
        for s in scores
    ]
    if scores:
        message = f"Commit {short} recorded and linked to {len(scores)} conversation(s)"
    else:
        message = f"Commit {short} recorded (no matching conversations found)"
    return HookResult(True, message, data)


def _shared_files(changed_files: list[str], conversation_files: set[str]) -> list[str]:
    """Changed files a conversation also touched, matched by equality or suffix."""
    return [
        changed
        for changed in changed_files
        if changed in conversation_files
        or any(f.endswith(changed) or changed.endswith(f) for f in conversation_files)
    ]


def link_manually(
    store: LinkStore,
    conversation_id: str,
    commit_hash: str,
    files: Optional[list[str]] = None,
    confidence: Optional[float] = None,
) -> HookResult:
    """
    Link a conversation and a commit by hand.

    At least one side must already be in the store. Without ``files``, the
    matched files are the commit's changed files the conversation touched.

    Raises:
        ValueError: If ``confidence`` is outside [0, 1]
    """
    confidence = MANUAL_CONFIDENCE if confidence is None else confidence
    conversation = store.get_conversation(conversation_id)
    commit = store.get_commit(commit_hash)
    if conversation is None and commit is None:
        return HookResult(
            False,
            f"Neither conversation {conversation_id} nor commit {commit_hash} "
            "found in the link store",
        )

    matched = list(files or [])
    if not matched and conversation is not None and commit is not None:
        matched = _shared_files(commit.changed_files or [], set(conversation.all_files()))

    link = store.upsert_link(
        LinkInput(
            conversation_id=conversation_id,
            commit_hash=commit_hash,
            confidence=confidence,
            status=LinkStatus.MANUAL,
            matched_files=matched,
        )
    )
    return HookResult(
        True,
        f"Linked conversation {conversation_id} to commit {commit_hash[:SHORT_HASH_LENGTH]}",
        {
            "conversation_id": conversation_id,
            "commit_hash": commit_hash,
            "matched_files": link.matched_files,
            "confidence": link.confidence,
            "status": LinkStatus(link.status).value,
        },
    )

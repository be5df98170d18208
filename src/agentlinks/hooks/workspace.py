"""Workspace root resolution for hook events."""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from agentlinks.utils.paths import relativize

logger = logging.getLogger(__name__)

UNKNOWN_PROJECT = "unknown"


def find_repo_root(path: str) -> Optional[str]:
    """
    Walk up from ``path`` looking for a ``.git`` marker.

    Args:
        path: File or directory inside a repository

    Returns:
        Repository root, or None when no ancestor has a ``.git`` entry
    """
    current = Path(path)
    try:
        if current.is_file():
            current = current.parent
    except OSError:
        return None

    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return str(candidate)
    return None


def resolve_workspace_root(
    explicit: Optional[str] = None,
    file_path: Optional[str] = None,
) -> Optional[str]:
    """
    Workspace root for a file-touched event.

    Order: the root the agent reported, then the enclosing git repository,
    then the file's own directory. A relative ``file_path`` is taken
    relative to the current directory.
    """
    if explicit:
        return explicit
    if not file_path:
        return None
    file_path = os.path.abspath(file_path)
    return find_repo_root(file_path) or os.path.dirname(file_path)


def workspace_from_context(
    folders: Iterable[str],
    files: Iterable[str],
) -> Optional[str]:
    """
    Workspace root derived from a conversation's attached folders, falling
    back to its first referenced absolute file.
    """
    for folder in folders:
        if folder:
            return find_repo_root(folder) or folder
    for file_path in files:
        if file_path and os.path.isabs(file_path):
            return find_repo_root(file_path) or os.path.dirname(file_path)
    return None


def project_name(workspace_root: Optional[str]) -> str:
    """Last path component of the workspace root, or ``unknown``."""
    if not workspace_root:
        return UNKNOWN_PROJECT
    return Path(workspace_root.replace("\\", "/").rstrip("/")).name or UNKNOWN_PROJECT


def relative_to_workspace(file_path: str, workspace_root: Optional[str]) -> str:
    """Path relative to the workspace root when inside it, otherwise as given."""
    return relativize(file_path, workspace_root)

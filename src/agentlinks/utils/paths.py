"""File path normalization used for matching commits against conversations."""

import os
from pathlib import Path
from typing import Iterable, Optional


def normalize_path(file_path: str) -> str:
    """
    Normalize a file path for comparison.

    Converts backslashes to forward slashes, strips one leading slash and
    lowercases, so ``src\\Foo.ts`` and ``/src/foo.ts`` compare equal.

    Args:
        file_path: Raw path as recorded by git, an editor or an agent

    Returns:
        Normalized path (may be empty for inputs like "/" or "")
    """
    normalized = file_path.replace("\\", "/")
    if normalized.startswith("/"):
        normalized = normalized[1:]
    return normalized.lower()


def normalize_paths(file_paths: Iterable[str]) -> set[str]:
    """Normalize a collection of paths, dropping entries that normalize to empty."""
    normalized = set()
    for file_path in file_paths:
        if not isinstance(file_path, str):
            continue
        value = normalize_path(file_path)
        if value:
            normalized.add(value)
    return normalized


def relativize(file_path: str, root: Optional[str]) -> str:
    """
    Express ``file_path`` relative to ``root`` using forward slashes.

    Paths outside the root (or when no root is given) are returned with
    separators converted but otherwise untouched.
    """
    if not root:
        return file_path.replace("\\", "/")

    path = Path(file_path)
    if not path.is_absolute():
        return file_path.replace("\\", "/")

    try:
        relative = os.path.relpath(path, root)
    except ValueError:
        # Different drives on Windows
        return file_path.replace("\\", "/")

    if relative == ".." or relative.startswith(".." + os.sep):
        return file_path.replace("\\", "/")
    return relative.replace("\\", "/")


def escape_like(value: str, escape_char: str = "\\") -> str:
    """Escape SQL LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )

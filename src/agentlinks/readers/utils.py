"""
Utility functions shared by the conversation readers.

Covers editor storage discovery, content extraction, file reference
extraction and timestamp fallbacks.
"""

import json
import os
import re
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterable, Optional
from urllib.parse import unquote, urlparse

from agentlinks.readers.base import ReaderFormatError

# Editors whose storage layout follows VS Code's
VSCODE_FLAVORS = ("Code", "Code - Insiders", "Cursor")

# tool_use input keys that name a file
FILE_INPUT_KEYS = ("path", "file", "file_path", "filePath")

# Absolute-looking paths with an extension inside free text
PATH_IN_TEXT = re.compile(r"(?:/[\w.-]+)+\.\w+")
MAX_PATH_IN_TEXT_LENGTH = 200

TITLE_LENGTH = 100


def app_data_dirs(platform: Optional[str] = None) -> list[Path]:
    """
    Base directories where desktop applications keep per-user data.

    Returns:
        Candidate directories in lookup order (not filtered for existence)
    """
    platform = platform or sys.platform
    home = Path.home()
    if platform == "darwin":
        return [home / "Library" / "Application Support"]
    if platform == "win32":
        appdata = os.getenv("APPDATA")
        return [Path(appdata) if appdata else home / "AppData" / "Roaming"]
    return [home / ".config"]


def vscode_storage_dirs(kind: str, platform: Optional[str] = None) -> list[Path]:
    """
    Existing ``User/<kind>`` directories of VS Code-style editors.

    Args:
        kind: "globalStorage" or "workspaceStorage"
        platform: Platform identifier, defaults to ``sys.platform``

    Returns:
        Directories that exist on this machine
    """
    dirs = []
    for base in app_data_dirs(platform):
        for flavor in VSCODE_FLAVORS:
            candidate = base / flavor / "User" / kind
            if candidate.is_dir():
                dirs.append(candidate)
    return dirs


def extract_text_content(content: Any) -> str:
    """
    Extract text content from a message's content field.

    Content can be:
    - A string (simple message)
    - An array of content items (structured message); only ``text`` items count

    Returns:
        Extracted text content, or empty string if none found
    """
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        text_parts = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                text = item.get("text")
                if isinstance(text, str):
                    text_parts.append(text)
        return "\n".join(text_parts)

    return ""


def unwrap_text(value: Any, key: str) -> str:
    """Return ``value`` if it is a string, else ``value[key]`` if that is one."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        inner = value.get(key)
        if isinstance(inner, str):
            return inner
    return ""


def files_from_tool_input(tool_input: Any, keys: Iterable[str] = FILE_INPUT_KEYS) -> list[str]:
    """File paths named by a tool invocation's input."""
    if not isinstance(tool_input, dict):
        return []
    return [tool_input[k] for k in keys if isinstance(tool_input.get(k), str) and tool_input[k]]


def paths_in_text(text: str) -> list[str]:
    """Path-shaped substrings of ``text`` shorter than 200 characters."""
    return [
        match
        for match in PATH_IN_TEXT.findall(text)
        if len(match) < MAX_PATH_IN_TEXT_LENGTH
    ]


def safe_get_nested(data: Any, *keys: Any, default: Any = None) -> Optional[Any]:
    """
    Safely get a nested dictionary value.

    Example:
        >>> safe_get_nested({"uri": {"fsPath": "/a"}}, "uri", "fsPath")
        '/a'
    """
    current = data
    for key in keys:
        if isinstance(current, dict):
            current = current.get(key, default)
        elif isinstance(current, list) and isinstance(key, int):
            try:
                current = current[key]
            except (IndexError, TypeError):
                return default
        else:
            return default

        if current is None:
            return default

    return current


def make_title(text: str) -> Optional[str]:
    """First 100 characters of ``text``, or None for blank text."""
    if not text or not text.strip():
        return None
    return text[:TITLE_LENGTH]


def load_json_file(path: Path) -> Any:
    """
    Read and decode a JSON file.

    Raises:
        ReaderFormatError: If the file is not valid JSON
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ReaderFormatError(f"Invalid JSON in {path}: {e}") from e


def decode_json_value(value: Any) -> Any:
    """Decode a key-value store value (text or UTF-8 bytes) as JSON."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8", errors="replace")
    if not isinstance(value, str):
        raise ReaderFormatError(f"Unexpected value type: {type(value).__name__}")
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ReaderFormatError(f"Invalid JSON value: {e}") from e


def file_times(path: Path) -> tuple[datetime, datetime]:
    """
    Creation and modification time of a file, as aware UTC datetimes.

    Birth time is used where the platform records it, otherwise ctime.
    """
    stat = path.stat()
    created = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return (
        datetime.fromtimestamp(created, UTC),
        datetime.fromtimestamp(stat.st_mtime, UTC),
    )


def uri_to_path(uri: str) -> str:
    """Convert a ``file://`` URI to a filesystem path; other strings pass through."""
    if not uri.startswith("file://"):
        return uri
    parsed = urlparse(uri)
    path = unquote(parsed.path)
    # file:///c%3A/Users/... on Windows
    if re.match(r"^/[A-Za-z]:", path):
        path = path[1:]
    return path


def unique(items: Iterable[str]) -> list[str]:
    """Drop duplicates and blanks, keeping first-seen order."""
    seen: dict[str, None] = {}
    for item in items:
        if isinstance(item, str) and item:
            seen.setdefault(item, None)
    return list(seen)

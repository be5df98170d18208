"""
File-context query: what conversations and commits know about one file.

SQL narrows the candidates with a case-insensitive match on the file name;
relevance is then decided on normalized paths in Python, since the stored
JSON text cannot be normalized inside SQLite.
"""

import logging
import re
from pathlib import PurePosixPath
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from agentlinks.db.repositories import CommitRepository, ConversationRepository
from agentlinks.models.records import (
    CommitContext,
    ConversationContext,
    FileContext,
    KeywordMatch,
    Relevance,
)
from agentlinks.utils.paths import normalize_path, normalize_paths

logger = logging.getLogger(__name__)

EXCERPT_CONTEXT_CHARS = 50
MAX_EXCERPTS = 3


def classify(target: str, files: Iterable[str]) -> Optional[Relevance]:
    """
    Relevance of a normalized ``target`` path to a set of file paths.

    Returns:
        "direct" on an exact normalized match, "indirect" when a normalized
        path contains the target, None otherwise
    """
    normalized = normalize_paths(files)
    if target in normalized:
        return "direct"
    if any(target in candidate for candidate in normalized):
        return "indirect"
    return None


def extract_excerpts(text: str, keyword: str, max_excerpts: int = MAX_EXCERPTS) -> list[str]:
    """
    Up to ``max_excerpts`` snippets around case-insensitive keyword hits.

    Each snippet keeps 50 characters either side of the hit and is marked
    with "..." where it was truncated.
    """
    excerpts: list[str] = []
    for match in re.finditer(re.escape(keyword), text, re.IGNORECASE):
        if len(excerpts) >= max_excerpts:
            break
        start = max(0, match.start() - EXCERPT_CONTEXT_CHARS)
        end = min(len(text), match.end() + EXCERPT_CONTEXT_CHARS)
        excerpt = text[start:end]
        if start > 0:
            excerpt = "..." + excerpt
        if end < len(text):
            excerpt = excerpt + "..."
        excerpts.append(excerpt)
    return excerpts


def keyword_matches(text: Optional[str], keywords: list[str]) -> list[KeywordMatch]:
    """Per-keyword hit counts and excerpts, omitting keywords with no hits."""
    if not text:
        return []
    matches = []
    for keyword in keywords:
        if not keyword:
            continue
        count = len(re.findall(re.escape(keyword), text, re.IGNORECASE))
        if count:
            matches.append(
                KeywordMatch(
                    keyword=keyword,
                    count=count,
                    excerpts=extract_excerpts(text, keyword),
                )
            )
    return matches


def get_file_context(
    session: Session,
    file_path: str,
    keywords: Optional[list[str]] = None,
    limit: int = 10,
) -> FileContext:
    """
    Conversations and commits touching ``file_path``.

    Args:
        session: Active session
        file_path: File to look up (any separator style or case)
        keywords: When given, only conversations whose search text contains
            at least one keyword are returned, annotated with matches
        limit: Maximum results per kind

    Returns:
        FileContext; empty when the path normalizes to nothing
    """
    keywords = [k for k in (keywords or []) if k and k.strip()]
    target = normalize_path(file_path or "")
    result = FileContext(file_path=file_path)
    if not target:
        logger.debug("File context requested for unusable path %r", file_path)
        return result

    # File names never contain separators, so the raw JSON text can be
    # prefiltered on them regardless of the separator style stored.
    fragment = PurePosixPath(target).name or target

    for conversation in ConversationRepository(session).mentioning(fragment, keywords):
        relevance = classify(target, conversation.all_files())
        if relevance is None:
            continue
        result.conversations.append(
            ConversationContext(
                conversation=conversation,
                relevance=relevance,
                keyword_matches=keyword_matches(conversation.searchable_text, keywords),
            )
        )
        if len(result.conversations) >= limit:
            break

    for commit in CommitRepository(session).mentioning(fragment):
        relevance = classify(target, commit.changed_files or [])
        if relevance is None:
            continue
        result.commits.append(CommitContext(commit=commit, relevance=relevance))
        if len(result.commits) >= limit:
            break

    return result

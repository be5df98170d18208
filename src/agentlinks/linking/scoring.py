"""
Auto-link scoring.

A commit is matched against conversations updated within a window before it.
Each candidate gets

    score = file_weight * file_overlap + recency_weight * recency

where ``file_overlap`` is the share of the commit's files the conversation
referenced and ``recency`` decays linearly from 1 (same instant) to 0 (edge
of the window). Scoring itself is pure; the store-facing helpers below load
candidates and persist the results.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from agentlinks.db.repositories import (
    CommitRepository,
    ConversationRepository,
    LinkRepository,
)
from agentlinks.models.db import Link, LinkStatus
from agentlinks.models.records import LinkInput
from agentlinks.utils.paths import normalize_paths
from agentlinks.utils.timeutils import days_between, ensure_utc, recency_score

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 14.0
DEFAULT_MIN_SCORE = 0.2


@dataclass(frozen=True)
class ScoringWeights:
    """Relative weight of file overlap and recency; should sum to 1."""

    file_overlap: float = 0.7
    recency: float = 0.3

    def __post_init__(self) -> None:
        if self.file_overlap < 0 or self.recency < 0:
            raise ValueError("Scoring weights must be non-negative")
        if self.file_overlap + self.recency > 1.0 + 1e-9:
            raise ValueError("Scoring weights must not sum to more than 1")


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass
class LinkCandidate:
    """Conversation as seen by the scorer."""

    conversation_id: str
    updated_at: datetime
    files: list[str] = field(default_factory=list)


@dataclass
class AutoLinkScore:
    """Score of one candidate conversation for one commit."""

    conversation_id: str
    score: float
    file_overlap: float
    recency: float
    matched_files: list[str] = field(default_factory=list)


def score_candidate(
    commit_files: set[str],
    committed_at: datetime,
    candidate: LinkCandidate,
    window_days: float = DEFAULT_WINDOW_DAYS,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> Optional[AutoLinkScore]:
    """
    Score one candidate against a commit's normalized file set.

    Returns:
        AutoLinkScore, or None when the commit has no files or the candidate
        was updated outside [committed_at - window_days, committed_at]
    """
    if not commit_files:
        return None

    days_diff = days_between(candidate.updated_at, committed_at)
    if days_diff < 0 or days_diff > window_days:
        return None

    matched = sorted(commit_files & normalize_paths(candidate.files))
    file_overlap = len(matched) / len(commit_files)
    recency = recency_score(days_diff, window_days)
    score = min(1.0, weights.file_overlap * file_overlap + weights.recency * recency)

    return AutoLinkScore(
        conversation_id=candidate.conversation_id,
        score=score,
        file_overlap=file_overlap,
        recency=recency,
        matched_files=matched,
    )


def score_candidates(
    changed_files: Iterable[str],
    committed_at: datetime,
    candidates: Iterable[LinkCandidate],
    window_days: float = DEFAULT_WINDOW_DAYS,
    min_score: float = DEFAULT_MIN_SCORE,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[AutoLinkScore]:
    """
    Score and rank candidate conversations for a commit.

    Args:
        changed_files: Files changed by the commit (raw paths)
        committed_at: Commit timestamp
        candidates: Conversations to consider
        window_days: Size of the look-back window
        min_score: Minimum score to keep
        weights: Relative weights of overlap and recency

    Returns:
        Scores >= min_score, highest first (ties broken by conversation id)
    """
    commit_files = normalize_paths(changed_files)
    if not commit_files:
        return []

    committed_at = ensure_utc(committed_at)
    scores = []
    for candidate in candidates:
        scored = score_candidate(commit_files, committed_at, candidate, window_days, weights)
        if scored is not None and scored.score >= min_score:
            scores.append(scored)

    scores.sort(key=lambda s: (-s.score, s.conversation_id))
    return scores


def find_auto_link_candidates(
    session: Session,
    commit_hash: str,
    window_days: float = DEFAULT_WINDOW_DAYS,
    min_score: float = DEFAULT_MIN_SCORE,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[AutoLinkScore]:
    """
    Load a stored commit and score the conversations updated before it.

    Returns:
        Ranked scores; empty when the commit is unknown or changed no files
    """
    commit = CommitRepository(session).get(commit_hash)
    if commit is None:
        logger.debug("No commit %s in store; nothing to score", commit_hash)
        return []
    if not commit.changed_files:
        logger.debug("Commit %s changed no files; skipping auto-link", commit_hash)
        return []

    committed_at = ensure_utc(commit.committed_at)
    window_start = committed_at - timedelta(days=window_days)
    conversations = ConversationRepository(session).updated_between(
        window_start, committed_at
    )
    candidates = [
        LinkCandidate(
            conversation_id=c.conversation_id,
            updated_at=c.updated_at,
            files=c.all_files(),
        )
        for c in conversations
    ]
    scores = score_candidates(
        commit.changed_files, committed_at, candidates, window_days, min_score, weights
    )
    logger.debug(
        "Commit %s: %d candidate(s) in window, %d above %.2f",
        commit_hash,
        len(candidates),
        len(scores),
        min_score,
    )
    return scores


def record_auto_links(
    session: Session, commit_hash: str, scores: Iterable[AutoLinkScore]
) -> list[Link]:
    """
    Persist scores as auto links.

    Pairs that already carry a manual link are left untouched, so re-recording
    a commit never downgrades a human decision.

    Returns:
        Links written
    """
    links = LinkRepository(session)
    written = []
    for scored in scores:
        existing = links.get_pair(scored.conversation_id, commit_hash)
        if existing is not None and existing.status == LinkStatus.MANUAL:
            logger.debug(
                "Keeping manual link %s <-> %s", scored.conversation_id, commit_hash
            )
            continue
        written.append(
            links.upsert(
                LinkInput(
                    conversation_id=scored.conversation_id,
                    commit_hash=commit_hash,
                    confidence=scored.score,
                    status=LinkStatus.AUTO,
                    matched_files=scored.matched_files,
                )
            )
        )
    return written

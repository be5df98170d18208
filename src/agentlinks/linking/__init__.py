"""Commit-to-conversation auto-linking."""

from agentlinks.linking.scoring import (
    AutoLinkScore,
    LinkCandidate,
    ScoringWeights,
    find_auto_link_candidates,
    record_auto_links,
    score_candidates,
)

__all__ = [
    "AutoLinkScore",
    "LinkCandidate",
    "ScoringWeights",
    "find_auto_link_candidates",
    "record_auto_links",
    "score_candidates",
]

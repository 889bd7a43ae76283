"""
Mentoring Logic Module

Provides the deterministic mentor/mentee scoring engine and the match
request lifecycle.
"""

from .contracts import (
    MenteeCandidate,
    MentorCandidate,
    ScoreBreakdown,
    MatchScore,
    MatchingRunResult,
)
from .aggregator import aggregate_scores, batch_aggregate
from .constants import MatchingStatus, MatchType
from .errors import MatchingError, MatchNotFound, NotAssignedMentor, MatchConflict
from .lifecycle import (
    accept_match,
    reject_match,
    expire_overdue_matches,
    manual_match,
    submit_preferences,
)
from .runner import run_matching, initiate_matching, send_selection_emails, auto_send_selection_emails

__all__ = [
    # Scoring
    "aggregate_scores",
    "batch_aggregate",

    # Lifecycle
    "accept_match",
    "reject_match",
    "expire_overdue_matches",
    "manual_match",
    "submit_preferences",
    "run_matching",
    "initiate_matching",
    "send_selection_emails",
    "auto_send_selection_emails",

    # Contracts
    "MenteeCandidate",
    "MentorCandidate",
    "ScoreBreakdown",
    "MatchScore",
    "MatchingRunResult",

    # Enums
    "MatchingStatus",
    "MatchType",

    # Errors
    "MatchingError",
    "MatchNotFound",
    "NotAssignedMentor",
    "MatchConflict",
]

"""
Matching Engine Constants

Defines dimension weights, sub-score values, lifecycle statuses and limits
used by the mentor/mentee matching engine.
"""

import os
from enum import Enum
from typing import Dict, List, Tuple

# =============================================================================
# DIMENSION WEIGHTS
# =============================================================================

# Weights for each scoring dimension (must sum to 1.0)
DIMENSION_WEIGHTS: Dict[str, float] = {
    "industry": 0.30,
    "programme": 0.20,
    "skills": 0.10,
    "preference": 0.40,
}

# =============================================================================
# SUB-SCORE VALUES (percentages)
# =============================================================================

INDUSTRY_EXACT_SCORE = 100
INDUSTRY_RELATED_SCORE = 60
INDUSTRY_PARTIAL_SCORE = 40

PROGRAMME_EXACT_SCORE = 100
PROGRAMME_CONTAINS_SCORE = 80
PROGRAMME_MULTI_WORD_SCORE = 60
PROGRAMME_SINGLE_WORD_SCORE = 30

# 1st choice, 2nd choice, 3rd choice
PREFERENCE_SCORES: Tuple[int, ...] = (100, 80, 60)

# Words of this length or shorter never count as a shared word
MIN_SHARED_WORD_LENGTH = 4

# Keyword families for the "related industry" check
RELATED_INDUSTRIES: Dict[str, List[str]] = {
    "technology": ["software", "it", "tech", "computing", "ai", "data"],
    "finance": ["banking", "investment", "accounting", "consulting"],
    "healthcare": ["medical", "pharmaceutical", "biotech"],
    "education": ["academic", "teaching", "research"],
    "engineering": ["manufacturing", "construction", "automotive"],
}

# =============================================================================
# LIFECYCLE
# =============================================================================

class MatchingStatus(str, Enum):
    """Lifecycle states of a match record."""
    PENDING = "pending_mentor_acceptance"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    AUTO_REJECTED = "auto_rejected"
    EXPIRED = "expired"


ACTIVE_STATUSES = (MatchingStatus.PENDING.value, MatchingStatus.ACCEPTED.value)
CLOSED_STATUSES = (
    MatchingStatus.REJECTED.value,
    MatchingStatus.AUTO_REJECTED.value,
    MatchingStatus.EXPIRED.value,
)


class MatchType(str, Enum):
    """How a match was produced."""
    PREFERRED = "preferred"
    ALGORITHM = "algorithm"
    MANUAL = "manual"


class RegistrationStatus(str, Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProgramStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# =============================================================================
# LIMITS & DEADLINES
# =============================================================================

AUTO_REJECT_DAYS = 3
MAX_MENTEES_PER_MENTOR = 20
REQUIRED_PREFERENCES = 3

DEFAULT_REJECTION_REASON = "No reason provided"
AUTO_REJECT_REASON = f"No response received within {AUTO_REJECT_DAYS} days"

# =============================================================================
# SWEEP & LINKS
# =============================================================================

MATCH_SWEEP_ENABLED = os.getenv("MATCH_SWEEP_ENABLED", "1") == "1"
MATCH_SWEEP_INTERVAL_MINUTES = int(os.getenv("MATCH_SWEEP_INTERVAL_MINUTES", "60"))

# Selection emails go out automatically once registration closes
SELECTION_EMAIL_SWEEP_ENABLED = os.getenv("SELECTION_EMAIL_SWEEP_ENABLED", "1") == "1"
SELECTION_EMAIL_INTERVAL_MINUTES = int(os.getenv("SELECTION_EMAIL_INTERVAL_MINUTES", "360"))

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:8080")

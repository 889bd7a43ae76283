"""
Ranker

Picks the mentor to propose for a mentee from a list of scored candidates.
Preference order wins over raw score; capacity and exclusions are hard filters.
"""

from typing import Dict, Iterable, List, Optional

from .contracts import MatchScore
from .constants import MAX_MENTEES_PER_MENTOR


def filter_available(
    scores: List[MatchScore],
    excluded_mentor_ids: Iterable[str] = (),
    accepted_counts: Optional[Dict[str, int]] = None,
    capacity: int = MAX_MENTEES_PER_MENTOR,
) -> List[MatchScore]:
    """
    Drop excluded mentors and mentors already at capacity.

    Args:
        scores: Scored candidates
        excluded_mentor_ids: Mentors that must not be proposed again
        accepted_counts: mentor_id -> number of accepted matches in the program
        capacity: Max accepted mentees per mentor

    Returns:
        Remaining candidates, order preserved
    """
    excluded = set(excluded_mentor_ids)
    counts = accepted_counts or {}
    return [
        s for s in scores
        if s.mentor_id not in excluded and counts.get(s.mentor_id, 0) < capacity
    ]


def select_best_match(
    available: List[MatchScore],
    preferred_mentor_ids: List[str],
) -> Optional[MatchScore]:
    """
    Choose the mentor to propose.

    The first still-available mentor in the mentee's preference order wins;
    otherwise the highest scoring candidate (the list is expected to be sorted
    by score, highest first).
    """
    if not available:
        return None

    by_mentor = {s.mentor_id: s for s in available}
    for preferred_id in preferred_mentor_ids:
        if preferred_id in by_mentor:
            return by_mentor[preferred_id]

    return available[0]

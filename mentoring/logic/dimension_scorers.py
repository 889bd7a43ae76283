"""
Dimension Scorers

Individual scoring functions for each matching dimension.
Each scorer returns an integer percentage between 0 and 100.
All logic is deterministic.
"""

import math
import re
from typing import List, Optional, Tuple

from .constants import (
    INDUSTRY_EXACT_SCORE,
    INDUSTRY_RELATED_SCORE,
    INDUSTRY_PARTIAL_SCORE,
    PROGRAMME_EXACT_SCORE,
    PROGRAMME_CONTAINS_SCORE,
    PROGRAMME_MULTI_WORD_SCORE,
    PROGRAMME_SINGLE_WORD_SCORE,
    PREFERENCE_SCORES,
    MIN_SHARED_WORD_LENGTH,
    RELATED_INDUSTRIES,
)

_WORD_SPLIT_RE = re.compile(r"[\s-]+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (0.5 -> 1)."""
    return int(math.floor(value + 0.5))


def _normalize(value: Optional[str]) -> str:
    return (value or "").lower().strip()


def _long_words(words: List[str]) -> List[str]:
    return [w for w in words if len(w) >= MIN_SHARED_WORD_LENGTH]


def score_industry(
    mentee_industry: Optional[str],
    mentee_company: Optional[str],
    mentor_industry: Optional[str],
    mentor_company: Optional[str],
) -> int:
    """
    Score industry alignment between mentee and mentor.

    Checks, in order:
    - exact industry or exact company match
    - both sides fall into the same related-industry keyword family
    - the industry strings share a meaningful word
    """
    mentee_ind = _normalize(mentee_industry)
    mentee_comp = _normalize(mentee_company)
    mentor_ind = _normalize(mentor_industry)
    mentor_comp = _normalize(mentor_company)

    if mentee_ind and mentor_ind and mentee_ind == mentor_ind:
        return INDUSTRY_EXACT_SCORE

    if mentee_comp and mentor_comp and mentee_comp == mentor_comp:
        return INDUSTRY_EXACT_SCORE

    for keywords in RELATED_INDUSTRIES.values():
        mentee_match = any(k in mentee_ind or k in mentee_comp for k in keywords)
        mentor_match = any(k in mentor_ind or k in mentor_comp for k in keywords)
        if mentee_match and mentor_match:
            return INDUSTRY_RELATED_SCORE

    if mentee_ind and mentor_ind:
        mentor_words = set(_WORD_SPLIT_RE.split(mentor_ind))
        common = [w for w in _long_words(_WORD_SPLIT_RE.split(mentee_ind)) if w in mentor_words]
        if common:
            return INDUSTRY_PARTIAL_SCORE

    return 0


def score_programme(mentee_programme: Optional[str], mentor_programme: Optional[str]) -> int:
    """Score how close the two academic programmes are."""
    if not mentee_programme or not mentor_programme:
        return 0

    mentee_prog = _NON_ALNUM_RE.sub("", _normalize(mentee_programme))
    mentor_prog = _NON_ALNUM_RE.sub("", _normalize(mentor_programme))
    if not mentee_prog or not mentor_prog:
        return 0

    if mentee_prog == mentor_prog:
        return PROGRAMME_EXACT_SCORE

    if mentee_prog in mentor_prog or mentor_prog in mentee_prog:
        return PROGRAMME_CONTAINS_SCORE

    mentor_words = set(_long_words(mentor_prog.split()))
    common = [w for w in _long_words(mentee_prog.split()) if w in mentor_words]

    if len(common) >= 2:
        return PROGRAMME_MULTI_WORD_SCORE
    if len(common) == 1:
        return PROGRAMME_SINGLE_WORD_SCORE
    return 0


def score_skills(mentee_areas: List[str], mentor_areas: List[str]) -> int:
    """
    Score overlap of areas of mentoring.

    An area matches when equal or when either contains the other. Each mentee
    area counts once; the result averages mentee coverage and mentor coverage.
    """
    if not mentee_areas or not mentor_areas:
        return 0

    mentee_norm = [_normalize(a) for a in mentee_areas]
    mentor_norm = [_normalize(a) for a in mentor_areas]

    matches = 0
    for mentee_area in mentee_norm:
        for mentor_area in mentor_norm:
            if mentee_area == mentor_area or mentee_area in mentor_area or mentor_area in mentee_area:
                matches += 1
                break

    mentee_coverage = matches / len(mentee_areas)
    mentor_coverage = matches / len(mentor_areas)
    return round_half_up((mentee_coverage + mentor_coverage) / 2 * 100)


def score_preference(mentor_id: str, preferred_mentor_ids: List[str]) -> Tuple[int, Optional[int]]:
    """
    Score the mentor's position in the mentee's preference list.

    Returns (score, choice_order); choice_order is 1-based and None when the
    mentor was not picked.
    """
    if not preferred_mentor_ids or mentor_id not in preferred_mentor_ids:
        return 0, None

    index = preferred_mentor_ids.index(mentor_id)
    score = PREFERENCE_SCORES[index] if index < len(PREFERENCE_SCORES) else 0
    return score, index + 1

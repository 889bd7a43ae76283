"""
Score Aggregator

Combines individual dimension scores into an overall match percentage.
"""

from typing import List

from .contracts import MenteeCandidate, MentorCandidate, MatchScore, ScoreBreakdown
from .dimension_scorers import (
    score_industry,
    score_programme,
    score_skills,
    score_preference,
    round_half_up,
)
from .constants import DIMENSION_WEIGHTS


def aggregate_scores(mentee: MenteeCandidate, mentor: MentorCandidate) -> MatchScore:
    """
    Compute all dimension scores for one mentor and aggregate them.

    Args:
        mentee: Mentee to match
        mentor: Candidate mentor

    Returns:
        MatchScore with the breakdown and the weighted total
    """
    industry = score_industry(mentee.industry, mentee.company, mentor.industry, mentor.company)
    programme = score_programme(mentee.programme, mentor.programme)
    skills = score_skills(mentee.areas_of_mentoring, mentor.areas_of_mentoring)
    preference, order = score_preference(mentor.mentor_id, mentee.preferred_mentor_ids)

    total = (
        industry * DIMENSION_WEIGHTS["industry"]
        + programme * DIMENSION_WEIGHTS["programme"]
        + skills * DIMENSION_WEIGHTS["skills"]
        + preference * DIMENSION_WEIGHTS["preference"]
    )

    return MatchScore(
        mentor_id=mentor.mentor_id,
        mentor_registration_id=mentor.registration_id,
        breakdown=ScoreBreakdown(
            industry_score=industry,
            programme_score=programme,
            skills_score=skills,
            preference_score=preference,
        ),
        total_score=max(0, min(100, round_half_up(total))),
        preferred_order=order,
    )


def batch_aggregate(mentee: MenteeCandidate, mentors: List[MentorCandidate]) -> List[MatchScore]:
    """
    Score every candidate mentor, highest total first.

    Ties keep the input order (sorted() is stable).
    """
    scores = [aggregate_scores(mentee, m) for m in mentors]
    return sorted(scores, key=lambda s: s.total_score, reverse=True)

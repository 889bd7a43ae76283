"""
Tests for the per-dimension scorers and score aggregation.
"""

from mentoring.logic.aggregator import aggregate_scores, batch_aggregate
from mentoring.logic.contracts import MenteeCandidate, MentorCandidate
from mentoring.logic.dimension_scorers import (
    round_half_up,
    score_industry,
    score_preference,
    score_programme,
    score_skills,
)


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
    assert round_half_up(0) == 0


# =============================================================================
# INDUSTRY
# =============================================================================

def test_industry_exact_match_is_case_insensitive():
    assert score_industry("Finance", None, " finance ", None) == 100


def test_industry_same_company():
    assert score_industry("Retail", "Acme", "Logistics", "ACME") == 100


def test_industry_related_family():
    # "software" and "data" are both in the technology family
    assert score_industry("Software Development", None, "Data Analytics", None) == 60


def test_industry_related_family_via_company():
    assert score_industry(None, "Global Banking Corp", "Investment Management", None) == 60


def test_industry_shared_long_word():
    assert score_industry("Marine Logistics", None, "Air Logistics", None) == 40


def test_industry_short_shared_word_ignored():
    assert score_industry("Art Law", None, "Sea Law", None) == 0


def test_industry_missing_data_scores_zero():
    assert score_industry(None, None, None, None) == 0
    assert score_industry("Retail", None, None, None) == 0


# =============================================================================
# PROGRAMME
# =============================================================================

def test_programme_exact():
    assert score_programme("Computer Science", "computer science") == 100


def test_programme_punctuation_ignored():
    assert score_programme("B.Eng (Mechanical)", "BEng Mechanical") == 100


def test_programme_containment():
    assert score_programme("Computer Science", "Applied Computer Science") == 80


def test_programme_two_shared_words():
    assert score_programme("Applied Digital Marketing", "Digital Marketing Analytics") == 60


def test_programme_one_shared_word():
    assert score_programme("Civil Engineering", "Electrical Engineering") == 30


def test_programme_no_overlap():
    assert score_programme("Nursing", "Accountancy") == 0
    assert score_programme(None, "Accountancy") == 0


# =============================================================================
# SKILLS
# =============================================================================

def test_skills_full_overlap():
    assert score_skills(["Career Advice", "Networking"], ["networking", "career advice"]) == 100


def test_skills_partial_overlap_averages_both_coverages():
    # 1 of 2 mentee areas matched, 1 of 4 mentor areas: (0.5 + 0.25) / 2
    assert score_skills(["Leadership", "Public Speaking"], ["Leadership", "Finance", "Sales", "Law"]) == 38


def test_skills_substring_counts_as_match():
    assert score_skills(["Career"], ["Career Planning"]) == 100


def test_skills_empty():
    assert score_skills([], ["Leadership"]) == 0
    assert score_skills(["Leadership"], []) == 0


# =============================================================================
# PREFERENCE
# =============================================================================

def test_preference_by_position():
    prefs = ["m1", "m2", "m3"]
    assert score_preference("m1", prefs) == (100, 1)
    assert score_preference("m2", prefs) == (80, 2)
    assert score_preference("m3", prefs) == (60, 3)
    assert score_preference("m4", prefs) == (0, None)


# =============================================================================
# AGGREGATION
# =============================================================================

def _mentee(**kw):
    base = dict(registration_id="r1", industry="Finance", programme="Business", areas_of_mentoring=["Networking"])
    base.update(kw)
    return MenteeCandidate(**base)


def _mentor(mentor_id, **kw):
    base = dict(mentor_id=mentor_id, registration_id=f"reg-{mentor_id}")
    base.update(kw)
    return MentorCandidate(**base)


def test_weighted_total():
    mentee = _mentee(preferred_mentor_ids=["m2", "m1"])
    mentor = _mentor("m1", industry="Finance", programme="Business", areas_of_mentoring=["Networking"])
    score = aggregate_scores(mentee, mentor)

    # 100*0.3 + 100*0.2 + 100*0.1 + 80*0.4
    assert score.total_score == 92
    assert score.breakdown.preference_score == 80
    assert score.preferred_order == 2
    assert score.is_in_preferred_list


def test_total_is_weighted_sum_rounded():
    mentee = _mentee(industry="Marine Logistics", programme="Civil Engineering", areas_of_mentoring=["Law"])
    mentor = _mentor(
        "m1",
        industry="Air Logistics",
        programme="Electrical Engineering",
        areas_of_mentoring=["Law", "Sales", "Tax", "Audit", "Risk", "Data", "Ops", "HR", "PR", "IT"],
    )
    score = aggregate_scores(mentee, mentor)

    # skills: (1/1 + 1/10) / 2
    assert score.breakdown.industry_score == 40
    assert score.breakdown.programme_score == 30
    assert score.breakdown.skills_score == 55
    assert score.total_score == round_half_up(40 * 0.30 + 30 * 0.20 + 55 * 0.10 + 0 * 0.40)
    assert score.preferred_order is None


def test_batch_sorted_descending_and_stable():
    mentee = _mentee(industry="Finance", programme=None, areas_of_mentoring=[])
    mentors = [_mentor("a"), _mentor("b"), _mentor("c", industry="Finance")]

    ranked = batch_aggregate(mentee, mentors)

    assert [s.mentor_id for s in ranked] == ["c", "a", "b"]

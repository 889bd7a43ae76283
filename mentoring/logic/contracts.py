"""
Data Contracts for the Matching Engine

Pydantic models for scoring inputs (MenteeCandidate, MentorCandidate), the
per-mentor score result (MatchScore) and the request bodies of the matching API.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


# =============================================================================
# SCORING INPUTS
# =============================================================================

class MenteeCandidate(BaseModel):
    """Everything the scorers need to know about a mentee."""
    registration_id: str
    user_id: Optional[str] = None
    industry: Optional[str] = None
    company: Optional[str] = None
    programme: Optional[str] = None
    areas_of_mentoring: List[str] = Field(default_factory=list)
    preferred_mentor_ids: List[str] = Field(default_factory=list)


class MentorCandidate(BaseModel):
    """An approved mentor registration flattened with the mentor's profile."""
    mentor_id: str
    registration_id: str
    industry: Optional[str] = None
    company: Optional[str] = None
    programme: Optional[str] = None
    areas_of_mentoring: List[str] = Field(default_factory=list)


# =============================================================================
# SCORING OUTPUT
# =============================================================================

class ScoreBreakdown(BaseModel):
    """Per-dimension sub-scores, each an integer percentage."""
    industry_score: int = Field(default=0, ge=0, le=100)
    programme_score: int = Field(default=0, ge=0, le=100)
    skills_score: int = Field(default=0, ge=0, le=100)
    preference_score: int = Field(default=0, ge=0, le=100)


class MatchScore(BaseModel):
    """Score of one mentor for one mentee."""
    mentor_id: str
    mentor_registration_id: str
    breakdown: ScoreBreakdown
    total_score: int = Field(ge=0, le=100)
    preferred_order: Optional[int] = None

    @property
    def is_in_preferred_list(self) -> bool:
        return self.preferred_order is not None


class MatchingRunResult(BaseModel):
    """Summary returned by a program-wide matching run."""
    total_mentees: int = 0
    matched: int = 0
    pending: int = 0
    needs_manual: int = 0
    errors: int = 0


# =============================================================================
# REQUEST BODIES
# =============================================================================

class RejectMatchRequest(BaseModel):
    reason: Optional[str] = None


class MenteePreferencesRequest(BaseModel):
    preferred_mentor_ids: List[str] = Field(..., alias="preferredMentorIds")
    validated_student_id: Optional[str] = Field(default=None, alias="validatedStudentId")
    token: Optional[str] = None

    class Config:
        populate_by_name = True


class ManualMatchRequest(BaseModel):
    mentee_id: str = Field(..., alias="menteeId")
    mentor_id: str = Field(..., alias="mentorId")

    class Config:
        populate_by_name = True
